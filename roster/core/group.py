"""
Core group data models.
"""

from datetime import date

from pydantic import BaseModel

from roster.core.uuid import UUID

from .member import MemberData

MAX_DESCRIPTION_LENGTH = 100

GROUP_MUTABLE_FIELDS = ("name", "founded_on", "image_url", "description")


class GroupData(BaseModel):
    group_id: UUID
    name: str
    founded_on: date
    image_url: str | None
    description: str
    members: list[MemberData]


class GroupUpdate(BaseModel):
    name: str | None = None
    founded_on: date | None = None
    image_url: str | None = None
    description: str | None = None
