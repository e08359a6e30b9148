"""
Tests the member service
"""

from datetime import date

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from roster.core.errors import InvalidInput, MemberNotFound, StorageError
from roster.core.member import MemberUpdate
from roster.database.member import Member
from roster.service import members as members_service


@pytest.mark.asyncio(loop_scope="session")
async def test_create_member(session_manager, logger):
    async with session_manager.session() as conn:
        async with conn.begin():
            member = await members_service.create(
                user_name="test_member",
                email="test_member@example.org",
                date_of_birth=date(1985, 6, 30),
                conn=conn,
                log=logger,
            )

            MEMBER_ID = member.member_id

    async with session_manager.session() as conn:
        async with conn.begin():
            member = await members_service.read_by_id(member_id=MEMBER_ID, conn=conn)

            assert member.user_name == "test_member"
            assert member.date_of_birth == date(1985, 6, 30)
            assert len(member.groups) == 0

            content = member.to_core()
            assert content.group_ids == []

    async with session_manager.session() as conn:
        async with conn.begin():
            everyone = await members_service.get_member_list(conn=conn)
            assert MEMBER_ID in {m.member_id for m in everyone}

    async with session_manager.session() as conn:
        async with conn.begin():
            await members_service.delete(member_id=MEMBER_ID, conn=conn, log=logger)

    with pytest.raises(MemberNotFound):
        async with session_manager.session() as conn:
            async with conn.begin():
                await members_service.read_by_id(member_id=MEMBER_ID, conn=conn)

    with pytest.raises(MemberNotFound):
        async with session_manager.session() as conn:
            async with conn.begin():
                await members_service.read_with_groups(member_id=MEMBER_ID, conn=conn)


@pytest.mark.asyncio(loop_scope="session")
async def test_create_member_invalid_email(session_manager, logger):
    with pytest.raises(InvalidInput) as excinfo:
        async with session_manager.session() as conn:
            async with conn.begin():
                await members_service.create(
                    user_name="no_at_sign",
                    email="no_at_sign.example.org",
                    date_of_birth=date(1985, 6, 30),
                    conn=conn,
                    log=logger,
                )

    assert excinfo.value.field == "email"
    assert str(excinfo.value) == "The given email is invalid, please check your data"


@pytest.mark.asyncio(loop_scope="session")
async def test_update_member(session_manager, logger, members):
    async with session_manager.session() as conn:
        async with conn.begin():
            await members_service.update(
                member_id=members[0],
                changes=MemberUpdate(email="renamed@example.org"),
                conn=conn,
                log=logger,
            )

    # Unknown keys, including the identity, are dropped
    async with session_manager.session() as conn:
        async with conn.begin():
            await members_service.update(
                member_id=members[0],
                changes={"member_id": "0", "groups": [], "user_name": "renamed"},
                conn=conn,
                log=logger,
            )

    async with session_manager.session() as conn:
        async with conn.begin():
            member = await members_service.read_by_id(member_id=members[0], conn=conn)
            assert member.member_id == members[0]
            assert member.user_name == "renamed"
            assert member.email == "renamed@example.org"
            assert member.date_of_birth == date(1990, 1, 1)

    with pytest.raises(InvalidInput):
        async with session_manager.session() as conn:
            async with conn.begin():
                await members_service.update(
                    member_id=members[0],
                    changes=MemberUpdate(email="not-an-email"),
                    conn=conn,
                    log=logger,
                )

    with pytest.raises(MemberNotFound):
        async with session_manager.session() as conn:
            async with conn.begin():
                await members_service.update(
                    member_id="0",
                    changes=MemberUpdate(user_name="nobody"),
                    conn=conn,
                    log=logger,
                )


@pytest.mark.asyncio(loop_scope="session")
async def test_save_duplicate_member(session_manager, logger, members):
    with pytest.raises(StorageError) as excinfo:
        async with session_manager.session() as conn:
            async with conn.begin():
                await members_service.save(
                    Member(
                        member_id=members[0],
                        user_name="copy",
                        email="copy@example.org",
                        date_of_birth=date(2000, 1, 1),
                        groups=[],
                    ),
                    conn=conn,
                    log=logger,
                )

    assert isinstance(excinfo.value.__cause__, IntegrityError)

    async with session_manager.session() as conn:
        async with conn.begin():
            member = await members_service.read_by_id(member_id=members[0], conn=conn)
            assert member.user_name == "member_0"


@pytest.mark.asyncio(loop_scope="session")
async def test_delete_member_storage_failure(
    session_manager, logger, members, monkeypatch
):
    with pytest.raises(StorageError) as excinfo:
        async with session_manager.session() as conn:
            async with conn.begin():

                async def failing_flush(*args, **kwargs):
                    raise OperationalError(
                        "DELETE FROM member", {}, Exception("database is locked")
                    )

                monkeypatch.setattr(conn, "flush", failing_flush)

                await members_service.delete(
                    member_id=members[0], conn=conn, log=logger
                )

    assert isinstance(excinfo.value.__cause__, OperationalError)

    async with session_manager.session() as conn:
        async with conn.begin():
            assert (
                await members_service.find_by_id(member_id=members[0], conn=conn)
                is not None
            )
