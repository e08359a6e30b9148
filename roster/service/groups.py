"""
Service layer for groups.
"""

from collections.abc import Mapping
from datetime import date

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from structlog.typing import FilteringBoundLogger

from roster.core.errors import GroupNotFound, InvalidInput, StorageError
from roster.core.group import GROUP_MUTABLE_FIELDS, MAX_DESCRIPTION_LENGTH, GroupUpdate
from roster.core.uuid import UUID, as_uuid
from roster.database.group import Group
from roster.database.member import Member


def validate_description(description: str) -> str:
    if len(description) > MAX_DESCRIPTION_LENGTH:
        raise InvalidInput(
            field="description",
            message=(
                "The group description cannot be longer than "
                f"{MAX_DESCRIPTION_LENGTH} characters."
            ),
        )

    return description


async def create(
    name: str,
    founded_on: date,
    image_url: str | None,
    description: str,
    conn: AsyncSession,
    log: FilteringBoundLogger,
) -> Group:
    """
    Create a new group. Groups always start without members; use the
    membership service to link them.

    Parameters
    ----------
    name: str
        Display name of the group.
    founded_on: date
        The date the group was founded.
    image_url: str | None
        A reference to the group's image.
    description: str
        Free text, at most `MAX_DESCRIPTION_LENGTH` characters.

    Raises
    ------
    InvalidInput
        If the description is too long.
    """

    log = log.bind(name=name, founded_on=founded_on)

    try:
        validate_description(description)
    except InvalidInput:
        await log.ainfo("group.create.invalid_description")
        raise

    group = Group(
        name=name,
        founded_on=founded_on,
        image_url=image_url,
        description=description,
        members=[],
    )

    group = await save(group, conn=conn, log=log)

    await log.ainfo("group.created", group_id=group.group_id)

    return group


async def save(group: Group, conn: AsyncSession, log: FilteringBoundLogger) -> Group:
    """
    Persist a group together with its member links. Identity is generated on
    first save, after that the record is updated in place.

    Raises
    ------
    StorageError
        If the database rejects the write.
    """
    conn.add(group)

    try:
        await conn.flush()
    except SQLAlchemyError as e:
        await log.ainfo("group.save.failed", error=str(e))
        raise StorageError(f"Could not save group {group.group_id}") from e

    return group


async def get_group_list(
    conn: AsyncSession,
    log: FilteringBoundLogger,
    for_member: UUID | None = None,
) -> list[Group]:
    """
    Get a list of all groups.

    Parameters
    ----------
    conn: AsyncSession
        The database session.
    log: FilteringBoundLogger
        Logger instance.
    for_member: UUID | None
        If given, only the groups this member is linked to.

    Returns
    -------
    list[Group]
        A list of groups in the database.
    """
    log = log.bind(for_member=for_member)
    if for_member:
        result = await conn.execute(
            select(Group).where(Group.members.any(Member.member_id == for_member))
        )
    else:
        result = await conn.execute(select(Group))

    groups = result.unique().scalars().all()
    await log.adebug("group.listed", number_of_groups=len(groups))
    return list(groups)


async def find_by_id(group_id: UUID | str, conn: AsyncSession) -> Group | None:
    identity = as_uuid(group_id)

    if identity is None:
        return None

    return await conn.get(Group, identity)


async def read_by_id(
    group_id: UUID | str,
    conn: AsyncSession,
    log: FilteringBoundLogger,
) -> Group:
    """
    Read a group by its ID.

    Raises
    ------
    GroupNotFound
        If the group does not exist.
    """
    log = log.bind(group_id=group_id)
    group = await find_by_id(group_id=group_id, conn=conn)
    if group is None:
        await log.ainfo("group.not_found")
        raise GroupNotFound(group_id)
    await log.adebug("group.found")
    return group


async def read_with_members(
    group_id: UUID | str,
    conn: AsyncSession,
    log: FilteringBoundLogger,
) -> Group:
    """
    Read a group by its ID, always (re)loading the members linked to it
    from the database.

    Raises
    ------
    GroupNotFound
        If the group does not exist.
    """
    log = log.bind(group_id=group_id)
    identity = as_uuid(group_id)

    group = None

    if identity is not None:
        result = await conn.execute(
            select(Group)
            .where(Group.group_id == identity)
            .options(selectinload(Group.members))
            .execution_options(populate_existing=True)
        )
        group = result.unique().scalar_one_or_none()

    if group is None:
        await log.ainfo("group.not_found")
        raise GroupNotFound(group_id)

    await log.adebug("group.found", number_of_members=len(group.members))
    return group


async def update(
    group_id: UUID | str,
    changes: GroupUpdate | Mapping,
    conn: AsyncSession,
    log: FilteringBoundLogger,
) -> Group:
    """
    Update the details of a group. Only the fields listed in
    `GROUP_MUTABLE_FIELDS` are ever copied, so neither the identity nor the
    members of the group can be changed here.

    Raises
    ------
    GroupNotFound
        If the group does not exist.
    InvalidInput
        If the new description is too long.
    """
    log = log.bind(group_id=group_id)

    if isinstance(changes, Mapping):
        changes = GroupUpdate.model_validate(changes)

    group = await read_by_id(group_id=group_id, conn=conn, log=log)
    supplied = changes.model_dump(exclude_unset=True)

    if supplied.get("description") is not None:
        try:
            validate_description(supplied["description"])
        except InvalidInput:
            await log.ainfo("group.update.invalid_description")
            raise

    for field in GROUP_MUTABLE_FIELDS:
        if field in supplied and (field == "image_url" or supplied[field] is not None):
            setattr(group, field, supplied[field])

    group = await save(group, conn=conn, log=log)
    await log.ainfo("group.updated", fields=sorted(supplied))
    return group


async def delete_group(
    group_id: UUID | str,
    conn: AsyncSession,
    log: FilteringBoundLogger,
) -> None:
    """
    Delete a group by its ID. Links to its members are removed with it.

    Raises
    ------
    GroupNotFound
        If the group does not exist.
    StorageError
        If the database rejects the delete.
    """
    log = log.bind(group_id=group_id)
    group = await read_with_members(group_id=group_id, conn=conn, log=log)
    await conn.delete(group)

    try:
        await conn.flush()
    except SQLAlchemyError as e:
        await log.ainfo("group.delete.failed", error=str(e))
        raise StorageError(f"Could not delete group {group.group_id}") from e

    await log.ainfo("group.deleted")
