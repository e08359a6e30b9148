"""
Service layer for members
"""

from collections.abc import Mapping
from datetime import date

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import lazyload, selectinload
from structlog.typing import FilteringBoundLogger

from roster.core.errors import InvalidInput, MemberNotFound, StorageError
from roster.core.member import MEMBER_MUTABLE_FIELDS, MemberUpdate
from roster.core.uuid import UUID, as_uuid
from roster.database.member import Member


def validate_email(email: str) -> str:
    if "@" not in email:
        raise InvalidInput(
            field="email", message="The given email is invalid, please check your data"
        )

    return email


async def create(
    user_name: str,
    email: str,
    date_of_birth: date,
    conn: AsyncSession,
    log: FilteringBoundLogger,
) -> Member:
    """
    Creates a member. New members belong to no groups.
    """

    log = log.bind(user_name=user_name, email=email)

    try:
        validate_email(email)
    except InvalidInput:
        await log.ainfo("member.create.invalid_email")
        raise

    member = Member(
        user_name=user_name,
        email=email,
        date_of_birth=date_of_birth,
        groups=[],
    )

    member = await save(member, conn=conn, log=log)

    log = log.bind(member_id=member.member_id)
    await log.ainfo("member.created")

    return member


async def save(member: Member, conn: AsyncSession, log: FilteringBoundLogger) -> Member:
    """
    Persist a member. Identity is generated on first save, after that the
    record is updated in place.
    """
    conn.add(member)

    try:
        await conn.flush()
    except SQLAlchemyError as e:
        await log.ainfo("member.save.failed", error=str(e))
        raise StorageError(f"Could not save member {member.member_id}") from e

    return member


async def find_by_id(member_id: UUID | str, conn: AsyncSession) -> Member | None:
    identity = as_uuid(member_id)

    if identity is None:
        return None

    return await conn.get(Member, identity)


async def read_by_id(member_id: UUID | str, conn: AsyncSession) -> Member:
    res = await find_by_id(member_id=member_id, conn=conn)

    if res is None:
        raise MemberNotFound(member_id)

    return res


async def read_current(member_id: UUID | str, conn: AsyncSession) -> Member:
    """
    Read a member from the database even when this session already holds a
    copy, so a member deleted elsewhere is reported as missing. Their groups
    are left to be loaded on demand.
    """
    identity = as_uuid(member_id)

    if identity is None:
        raise MemberNotFound(member_id)

    query = (
        select(Member)
        .where(Member.member_id == identity)
        .options(lazyload(Member.groups))
        .execution_options(populate_existing=True)
    )
    res = (await conn.execute(query)).unique().scalar_one_or_none()

    if res is None:
        raise MemberNotFound(member_id)

    return res


async def read_with_groups(member_id: UUID | str, conn: AsyncSession) -> Member:
    """
    Read a member, always (re)loading the groups they are linked to.
    """
    identity = as_uuid(member_id)

    if identity is None:
        raise MemberNotFound(member_id)

    query = (
        select(Member)
        .where(Member.member_id == identity)
        .options(selectinload(Member.groups))
        .execution_options(populate_existing=True)
    )
    res = (await conn.execute(query)).unique().scalar_one_or_none()

    if res is None:
        raise MemberNotFound(member_id)

    return res


async def get_member_list(conn: AsyncSession) -> list[Member]:
    """
    Get a list of all members registered to the system.
    """
    query = select(Member)
    res = (await conn.execute(query)).unique().scalars().all()
    return list(res)


async def update(
    member_id: UUID | str,
    changes: MemberUpdate | Mapping,
    conn: AsyncSession,
    log: FilteringBoundLogger,
) -> Member:
    """
    Update a member's details. Only the fields in `MEMBER_MUTABLE_FIELDS`
    that were actually supplied are copied onto the stored record.
    """
    log = log.bind(member_id=member_id)

    if isinstance(changes, Mapping):
        changes = MemberUpdate.model_validate(changes)

    member = await read_by_id(member_id=member_id, conn=conn)
    supplied = changes.model_dump(exclude_unset=True)

    if supplied.get("email") is not None:
        try:
            validate_email(supplied["email"])
        except InvalidInput:
            await log.ainfo("member.update.invalid_email")
            raise

    for field in MEMBER_MUTABLE_FIELDS:
        if supplied.get(field) is not None:
            setattr(member, field, supplied[field])

    member = await save(member, conn=conn, log=log)

    await log.ainfo("member.updated", fields=sorted(supplied))

    return member


async def delete(member_id: UUID | str, conn: AsyncSession, log: FilteringBoundLogger):
    """
    Deletes the member. Their group links are removed along with them.
    """
    member = await read_with_groups(member_id=member_id, conn=conn)

    log = log.bind(member_id=member.member_id, number_of_groups=len(member.groups))

    await conn.delete(member)

    try:
        await conn.flush()
    except SQLAlchemyError as e:
        await log.ainfo("member.delete.failed", error=str(e))
        raise StorageError(f"Could not delete member {member.member_id}") from e

    await log.ainfo("member.deleted")

    return
