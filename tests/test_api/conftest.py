"""
API test fixtures providing pre-created users and bearer tokens.
"""
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from gamevault.models.user import Role
from tests.factories import make_user


@pytest_asyncio.fixture
async def sample_user(db_session: AsyncSession):
    """Create an activated regular user and commit it for the app's sessions."""
    user = make_user(username="player", password="player-pw")
    db_session.add(user)
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession):
    """Create an administrator."""
    user = make_user(username="admin", password="admin-pw", role=Role.ADMIN)
    db_session.add(user)
    await db_session.commit()
    return user
