"""
ORM for member information.
"""

from datetime import date
from typing import TYPE_CHECKING

from sqlmodel import Field, Relationship, SQLModel

from roster.core.member import MemberData
from roster.core.uuid import UUID, uuid7
from roster.database.group import GroupMembership

if TYPE_CHECKING:
    from .group import Group


class Member(SQLModel, table=True):
    member_id: UUID = Field(primary_key=True, default_factory=uuid7)

    user_name: str
    email: str
    date_of_birth: date

    # Inverse side of Group.members; only the membership service writes it.
    groups: list["Group"] = Relationship(
        back_populates="members",
        link_model=GroupMembership,
        sa_relationship_kwargs=dict(lazy="joined"),
    )

    def to_core(self, include_groups=True) -> MemberData:
        return MemberData(
            member_id=self.member_id,
            user_name=self.user_name,
            email=self.email,
            date_of_birth=self.date_of_birth,
            group_ids=[str(x.group_id) for x in self.groups]
            if include_groups
            else None,
        )
