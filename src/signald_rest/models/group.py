"""
Group models — signald group_list payload and its public projection.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from signald_rest.models.command import Address


class DaemonGroup(BaseModel):
    """One entry of a group_list reply."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    group_id: str = Field(alias="groupId")
    name: str = ""
    members: list[Address] = Field(default_factory=list)
    blocked: Optional[bool] = None


class GroupList(BaseModel):
    groups: list[DaemonGroup] = Field(default_factory=list)


class GroupEntry(BaseModel):
    name: str
    id: str
    internal_id: str
    members: list[str] = Field(default_factory=list)
    active: bool = False
    blocked: bool = False
