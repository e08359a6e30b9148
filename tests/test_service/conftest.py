"""
Configuration variables and fixtures for the service layer tests.
"""

from datetime import date

import pytest_asyncio
import structlog

from roster.config.settings import Settings
from roster.service import groups as groups_service
from roster.service import members as members_service


@pytest_asyncio.fixture(scope="session", loop_scope="session")
async def session_manager(server_settings: Settings, database):
    manager = server_settings.async_manager()
    yield manager
    await manager.engine.dispose()


@pytest_asyncio.fixture(scope="session")
def logger():
    yield structlog.get_logger()


@pytest_asyncio.fixture(loop_scope="session")
async def group(session_manager, logger):
    """
    A group with no members, removed again after the test.
    """
    async with session_manager.session() as conn:
        async with conn.begin():
            group = await groups_service.create(
                name="Harbour Chess Club",
                founded_on=date(1998, 4, 2),
                image_url="https://example.org/chess.png",
                description="Tuesday evening games.",
                conn=conn,
                log=logger,
            )

            GROUP_ID = group.group_id

    yield GROUP_ID

    async with session_manager.session() as conn:
        async with conn.begin():
            if await groups_service.find_by_id(group_id=GROUP_ID, conn=conn) is not None:
                await groups_service.delete_group(
                    group_id=GROUP_ID, conn=conn, log=logger
                )


@pytest_asyncio.fixture(loop_scope="session")
async def members(session_manager, logger):
    """
    Five members that belong to no group, removed again after the test.
    """
    MEMBER_IDS = []

    async with session_manager.session() as conn:
        async with conn.begin():
            for i in range(5):
                member = await members_service.create(
                    user_name=f"member_{i}",
                    email=f"member_{i}@example.org",
                    date_of_birth=date(1990, 1, i + 1),
                    conn=conn,
                    log=logger,
                )
                MEMBER_IDS.append(member.member_id)

    yield MEMBER_IDS

    async with session_manager.session() as conn:
        async with conn.begin():
            for member_id in MEMBER_IDS:
                if await members_service.find_by_id(member_id=member_id, conn=conn) is not None:
                    await members_service.delete(
                        member_id=member_id, conn=conn, log=logger
                    )
