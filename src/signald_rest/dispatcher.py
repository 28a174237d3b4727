"""
Message dispatch — validate a recipient list, materialize attachments once,
issue one send command per recipient or per group.

Sends are not transactional: when one fails, the sends already accepted by
signald stay delivered and the remaining ones are not attempted.
"""

import logging
from typing import Optional, Sequence

from signald_rest.attachments import materialize_attachments
from signald_rest.errors import ValidationError
from signald_rest.groups import decode_group_id, is_group_id
from signald_rest.signald import Signald

logger = logging.getLogger(__name__)


class MessageDispatcher:
    def __init__(self, signald: Signald, attachment_tmp_dir: str):
        self._signald = signald
        self._attachment_tmp_dir = attachment_tmp_dir

    async def send_message(
        self,
        number: str,
        message: str,
        recipients: Sequence[str],
        attachments: Sequence[str] = (),
        is_group: Optional[bool] = None,
    ) -> None:
        """Send a message.

        ``is_group`` selects the legacy mode: True means the single recipient
        is a group id, False means every recipient is a phone number. Left as
        None, recipients are classified by their ``group.`` prefix and must
        not mix numbers and groups.
        """
        if not recipients:
            raise ValidationError("Please specify at least one recipient")

        if is_group is None:
            numbers, groups = self._classify(recipients)
        elif is_group:
            if len(recipients) > 1:
                raise ValidationError("More than one group is currently not allowed")
            numbers, groups = [], [decode_group_id(recipients[0])]
        else:
            numbers, groups = list(recipients), []
        if not all(numbers) or not all(groups):
            raise ValidationError("Empty recipient: specify a phone number or a group id")

        with materialize_attachments(attachments, self._attachment_tmp_dir) as paths:
            for group_id in groups:
                await self._signald.send(number, message, group_id=group_id, attachments=paths)
            for recipient in numbers:
                await self._signald.send(number, message, recipient=recipient, attachments=paths)
        logger.debug("Sent message from %s to %d recipient(s), %d group(s)", number, len(numbers), len(groups))

    @staticmethod
    def _classify(recipients: Sequence[str]) -> tuple[list[str], list[str]]:
        numbers: list[str] = []
        groups: list[str] = []
        for recipient in recipients:
            if is_group_id(recipient):
                groups.append(recipient)
            else:
                numbers.append(recipient)
        if numbers and groups:
            raise ValidationError(
                "Signal Messenger Groups and phone numbers cannot be specified together in one request! "
                "Please split them up into multiple REST API calls."
            )
        return numbers, [decode_group_id(group) for group in groups]
