"""
Public group identifiers.

signald hands out opaque internal group ids. Callers only ever see
``"group." + base64(internal_id)``, which also tells group targets apart from
phone numbers in a recipient list.
"""

import base64
import binascii

from signald_rest.errors import InvalidGroupIdError
from signald_rest.models.group import DaemonGroup, GroupEntry

GROUP_PREFIX = "group."


def encode_group_id(internal_id: str) -> str:
    return GROUP_PREFIX + base64.b64encode(internal_id.encode("utf-8")).decode("ascii")


def decode_group_id(public_id: str) -> str:
    """Reverse encode_group_id. The prefix is optional."""
    encoded = public_id[len(GROUP_PREFIX):] if public_id.startswith(GROUP_PREFIX) else public_id
    try:
        return base64.b64decode(encoded, validate=True).decode("utf-8")
    except (binascii.Error, ValueError):
        raise InvalidGroupIdError()


def is_group_id(recipient: str) -> bool:
    return recipient.startswith(GROUP_PREFIX)


def to_group_entry(group: DaemonGroup, number: str) -> GroupEntry:
    """Project a daemon group into its public view for the given account."""
    members = [member.number for member in group.members]
    return GroupEntry(
        name=group.name,
        id=encode_group_id(group.group_id),
        internal_id=group.group_id,
        members=members,
        active=number in members,
        blocked=bool(group.blocked),
    )
