"""
Errors raised by the entity store and the membership service.
"""

from typing import Any


class RosterError(Exception):
    pass


class NotFound(RosterError):
    """
    A group or member identity did not resolve to a stored record.
    `entity_kind` is either "group" or "member".
    """

    entity_kind: str = "entity"

    def __init__(self, entity_id: Any = None, message: str | None = None):
        self.entity_id = entity_id
        super().__init__(
            message or f"The {self.entity_kind} with the given id was not found"
        )


class GroupNotFound(NotFound):
    entity_kind = "group"


class MemberNotFound(NotFound):
    entity_kind = "member"


class NotAssociated(RosterError):
    """
    Both the group and the member exist, but they are not linked.
    """

    def __init__(self, group_id: Any = None, member_id: Any = None):
        self.group_id = group_id
        self.member_id = member_id
        super().__init__("The member with the given id is not associated to the group")


class InvalidInput(RosterError):
    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(message)


class StorageError(RosterError):
    pass
