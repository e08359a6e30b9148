"""
Meta functionality for the database.
"""

from .group import Group, GroupMembership
from .member import Member

ALL_TABLES = (
    Group,
    GroupMembership,
    Member,
)
