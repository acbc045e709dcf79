"""
Shared fixtures for the block queue tests.
"""
import pytest
from unittest.mock import AsyncMock, MagicMock

from app.schemas.platform import BlockResult


@pytest.fixture
def mock_store():
    """Store double whose save() records the status each action was saved with."""
    store = MagicMock()
    store.saved = []

    async def save(action):
        store.saved.append((action.sink_uid, action.status))
        return action

    async def create(action):
        return action

    store.save = AsyncMock(side_effect=save)
    store.create = AsyncMock(side_effect=create)
    store.find_pending_block_source_uids = AsyncMock(return_value=[])
    store.find_account = AsyncMock(return_value=None)
    store.find_pending_block_actions_for_account = AsyncMock(return_value=[])
    return store


@pytest.fixture
def mock_platform():
    """Platform double: every lookup is empty and every block succeeds."""
    platform = MagicMock()

    async def create_block(credentials, sink_uid):
        return BlockResult(id=sink_uid, display_name=f"user_{sink_uid}")

    platform.lookup_relationships = AsyncMock(return_value=[])
    platform.create_block = AsyncMock(side_effect=create_block)
    return platform
