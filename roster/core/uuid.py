"""
UUID creation. Required because uuid7 was not part of the python standard as of 3.12
"""

from uuid import UUID as UUID

from uuid_extensions import uuid7 as uuid7

__ALL__ = ["UUID", "uuid7", "as_uuid"]


def as_uuid(value: UUID | str) -> UUID | None:
    """
    Interpret an opaque identity as a UUID. Anything that does not parse
    can never match a stored record, so `None` is returned rather than raising.
    """
    if isinstance(value, UUID):
        return value

    try:
        return UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        return None
