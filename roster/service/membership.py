"""
Service layer implementing the links between groups and their members.

This is the only module that mutates `Group.members` (and, through the shared
link table, `Member.groups`). Existence is re-checked against the database on
every call; nothing is cached between calls. Callers own the transaction, so
an exception raised here rolls back everything done inside it.
"""

from collections.abc import Mapping
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from structlog.typing import FilteringBoundLogger

from roster.core.errors import (
    GroupNotFound,
    InvalidInput,
    MemberNotFound,
    NotAssociated,
    StorageError,
)
from roster.core.uuid import UUID
from roster.database.group import Group
from roster.database.member import Member

from . import groups as groups_service
from . import members as members_service


async def _flush(conn: AsyncSession, log: FilteringBoundLogger):
    try:
        await conn.flush()
    except SQLAlchemyError as e:
        await log.aerror("membership.storage_error", error=str(e))
        raise StorageError("Could not store the group membership") from e


async def _read_group(
    group_id: UUID | str, conn: AsyncSession, log: FilteringBoundLogger
) -> Group:
    try:
        return await groups_service.read_with_members(
            group_id=group_id, conn=conn, log=log
        )
    except GroupNotFound:
        await log.ainfo("membership.group_not_found")
        raise


async def _read_member(
    member_id: UUID | str, conn: AsyncSession, log: FilteringBoundLogger
) -> Member:
    try:
        return await members_service.read_current(member_id=member_id, conn=conn)
    except MemberNotFound:
        await log.ainfo("membership.member_not_found", missing_member_id=member_id)
        raise


def _identity_of(entry: Any) -> Any:
    """
    Pull the member identity out of anything that carries one: a
    MemberReference, MemberData or Member record, a mapping with a
    `member_id` key, or a bare identity. Every other field is ignored.
    """
    if isinstance(entry, Mapping):
        return entry.get("member_id")

    return getattr(entry, "member_id", entry)


async def add_member(
    group_id: UUID | str,
    member_id: UUID | str,
    conn: AsyncSession,
    log: FilteringBoundLogger,
) -> Group:
    """
    Link a member to a group. Linking a member that is already in the group
    changes nothing and still succeeds.

    Parameters
    ----------
    group_id: UUID | str
        The ID of the group.
    member_id: UUID | str
        The ID of the member to add.
    conn: AsyncSession
        The database session.
    log: FilteringBoundLogger
        Logger instance.

    Returns
    -------
    Group
        The group, with its members loaded.

    Raises
    ------
    MemberNotFound
        If the member does not exist. Checked before the group.
    GroupNotFound
        If the group does not exist.
    """
    log = log.bind(group_id=group_id, member_id=member_id)

    member = await _read_member(member_id, conn, log)
    group = await _read_group(group_id, conn, log)

    if group.has_member(member.member_id):
        await log.ainfo("membership.member_already_linked")
        return group

    group.members.append(member)
    await _flush(conn, log)

    await log.ainfo("membership.member_added", number_of_members=len(group.members))

    return group


async def read_member(
    group_id: UUID | str,
    member_id: UUID | str,
    conn: AsyncSession,
    log: FilteringBoundLogger,
) -> Member:
    """
    Read a single member of a group.

    Raises
    ------
    GroupNotFound
        If the group does not exist.
    MemberNotFound
        If the member does not exist.
    NotAssociated
        If both exist but the member is not linked to the group.
    """
    log = log.bind(group_id=group_id, member_id=member_id)

    group = await _read_group(group_id, conn, log)
    member = await _read_member(member_id, conn, log)

    if not group.has_member(member.member_id):
        await log.ainfo("membership.member_not_linked")
        raise NotAssociated(group_id=group.group_id, member_id=member.member_id)

    await log.adebug("membership.member_found")

    return member


async def list_members(
    group_id: UUID | str,
    conn: AsyncSession,
    log: FilteringBoundLogger,
) -> list[Member]:
    """
    All members currently linked to a group. The order carries no meaning.

    Raises
    ------
    GroupNotFound
        If the group does not exist.
    """
    log = log.bind(group_id=group_id)

    group = await _read_group(group_id, conn, log)

    await log.adebug("membership.listed", number_of_members=len(group.members))

    return list(group.members)


async def replace_members(
    group_id: UUID | str,
    members: list[Any],
    conn: AsyncSession,
    log: FilteringBoundLogger,
) -> Group:
    """
    Replace the whole member set of a group. Members that were linked before
    but are not in `members` are unlinked.

    Every identity is resolved before the group is touched, so one unknown
    member leaves the group exactly as it was.

    Parameters
    ----------
    group_id: UUID | str
        The ID of the group.
    members: list
        The new members. Only the identity of each entry is used; it may be
        a MemberReference, MemberData, Member, a mapping with `member_id`, or
        a bare ID. Repeated identities are linked once. A single entry that
        is not wrapped in a list is rejected.
    conn: AsyncSession
        The database session.
    log: FilteringBoundLogger
        Logger instance.

    Raises
    ------
    InvalidInput
        If `members` is not a list, tuple or set of entries.
    GroupNotFound
        If the group does not exist.
    MemberNotFound
        For the first identity that does not resolve.
    """
    if not isinstance(members, (list, tuple, set, frozenset)):
        await log.ainfo(
            "membership.replace.not_a_list", members_type=type(members).__name__
        )
        raise InvalidInput(
            field="members", message="The members to link must be given as a list"
        )

    member_ids = [_identity_of(entry) for entry in members]

    log = log.bind(group_id=group_id, number_of_requested_members=len(member_ids))

    group = await _read_group(group_id, conn, log)

    resolved: dict[UUID, Member] = {}

    for member_id in member_ids:
        member = await _read_member(member_id, conn, log)
        resolved.setdefault(member.member_id, member)

    previous = {member.member_id for member in group.members}

    group.members = list(resolved.values())
    await _flush(conn, log)

    await log.ainfo(
        "membership.members_replaced",
        number_of_members=len(resolved),
        number_unlinked=len(previous - resolved.keys()),
        number_linked=len(resolved.keys() - previous),
    )

    return group


async def remove_member(
    group_id: UUID | str,
    member_id: UUID | str,
    conn: AsyncSession,
    log: FilteringBoundLogger,
) -> None:
    """
    Unlink a member from a group. Neither record is otherwise changed.

    Raises
    ------
    MemberNotFound
        If the member does not exist. Checked before the group.
    GroupNotFound
        If the group does not exist.
    NotAssociated
        If the member is not linked to the group.
    """
    log = log.bind(group_id=group_id, member_id=member_id)

    member = await _read_member(member_id, conn, log)
    group = await _read_group(group_id, conn, log)

    if not group.has_member(member.member_id):
        await log.ainfo("membership.member_not_linked")
        raise NotAssociated(group_id=group.group_id, member_id=member.member_id)

    group.members.remove(member)
    await _flush(conn, log)

    await log.ainfo("membership.member_removed")
