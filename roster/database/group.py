"""
Group ORM
"""

from datetime import date
from typing import TYPE_CHECKING, Optional

from sqlmodel import Field, Relationship, SQLModel

from roster.core.group import GroupData
from roster.core.uuid import UUID, uuid7

if TYPE_CHECKING:
    from .member import Member


class GroupMembership(SQLModel, table=True):
    """
    A link between a group and one of its members. The same row backs both
    `Group.members` and `Member.groups`.
    """

    __tablename__ = "group_membership"

    group_id: Optional[UUID] = Field(
        primary_key=True, foreign_key="group.group_id", ondelete="CASCADE"
    )
    member_id: Optional[UUID] = Field(
        primary_key=True, foreign_key="member.member_id", ondelete="CASCADE"
    )


class Group(SQLModel, table=True):
    group_id: UUID = Field(primary_key=True, default_factory=uuid7)

    name: str
    founded_on: date
    image_url: str | None = None
    description: str = Field(default="")

    members: list["Member"] = Relationship(
        back_populates="groups",
        link_model=GroupMembership,
        sa_relationship_kwargs=dict(lazy="joined"),
    )

    def has_member(self, member_id: UUID) -> bool:
        """
        Check if the member with `member_id` is linked to this group.
        """
        return any(member.member_id == member_id for member in self.members)

    def to_core(self) -> GroupData:
        """
        Convert this Group ORM object to a GroupData core object.
        """
        return GroupData(
            group_id=self.group_id,
            name=self.name,
            founded_on=self.founded_on,
            image_url=self.image_url,
            description=self.description,
            members=[member.to_core(include_groups=False) for member in self.members],
        )
