"""
Core member data models.
"""

from datetime import date

from pydantic import BaseModel

from roster.core.uuid import UUID

# Fields a caller may change through an update. Identity and group links
# are never copied from incoming records.
MEMBER_MUTABLE_FIELDS = ("user_name", "email", "date_of_birth")


class MemberData(BaseModel):
    member_id: UUID
    user_name: str
    email: str
    date_of_birth: date
    # UUIDs are not JSON serializable, so we use strings
    group_ids: list[str] | None = None


class MemberReference(BaseModel):
    """
    The identity of a member, as supplied when replacing a group's members.
    """

    member_id: UUID


class MemberUpdate(BaseModel):
    user_name: str | None = None
    email: str | None = None
    date_of_birth: date | None = None
