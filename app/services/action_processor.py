import asyncio
import logging
from typing import List, Set

from sqlalchemy.exc import SQLAlchemyError

from app.models.action import Action
from app.services.block_executor import BlockExecutor
from app.services.relationship_validator import MAX_LOOKUP_UIDS, RelationshipValidator

logger = logging.getLogger(__name__)


class ActionProcessor:
    """Finds pending block actions, validates them and carries them out.

    Work is grouped by source account so that one friendships/lookup call
    covers up to 100 actions. Accounts are processed concurrently; actions
    within an account are processed one at a time.

    Actions are picked oldest ``updated_at`` first. An action that could not be
    completed keeps its old timestamp, so it stays at the front of its
    account's queue on the next pass.
    """

    def __init__(
        self,
        store,
        platform,
        source_scan_limit: int = 300,
        actions_per_source: int = 100,
        lookup_batch_limit: int = MAX_LOOKUP_UIDS,
    ):
        if actions_per_source > lookup_batch_limit:
            logger.warning(
                f"actions_per_source {actions_per_source} exceeds the lookup limit {lookup_batch_limit}; "
                f"using {lookup_batch_limit}"
            )
        self.store = store
        self.source_scan_limit = source_scan_limit
        # The validator refuses batches above its limit
        self.actions_per_source = min(actions_per_source, lookup_batch_limit)
        self.validator = RelationshipValidator(platform, max_uids=lookup_batch_limit)
        self.executor = BlockExecutor(store, platform)
        self._tasks: Set[asyncio.Task] = set()

    async def process_blocks(self) -> None:
        """Run one pass over every source account with pending block actions."""
        try:
            source_uids = await self.store.find_pending_block_source_uids(self.source_scan_limit)
        except SQLAlchemyError as e:
            logger.error(f"Failed to find pending block actions: {e}")
            return

        logger.info(f"Processing pending blocks for {len(source_uids)} accounts")
        tasks = []
        for uid in source_uids:
            task = asyncio.create_task(self.process_actions_for_source(uid))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            tasks.append(task)

        results = await asyncio.gather(*tasks, return_exceptions=True)
        for uid, result in zip(source_uids, results):
            if isinstance(result, Exception):
                logger.error(f"Unexpected error while processing account {uid}: {result!r}")

    @property
    def in_flight(self) -> int:
        """Number of per-account tasks still running across all passes."""
        return len(self._tasks)

    async def process_actions_for_source(self, uid: str) -> None:
        """Fetch and process up to one batch of pending actions for ``uid``."""
        try:
            account = await self.store.find_account(uid)
        except SQLAlchemyError as e:
            logger.error(f"Failed to load account {uid}: {e}")
            return
        if account is None:
            logger.error(f"User not found {uid}")
            return

        try:
            actions = await self.store.find_pending_block_actions_for_account(uid, self.actions_per_source)
        except SQLAlchemyError as e:
            logger.error(f"Failed to load pending actions for {account.screen_name} {uid}: {e}")
            return
        if not actions:
            logger.warning(f"No actions found for user {account.screen_name} {uid}")
            return

        await self.process_actions_for_account(account, actions)

    async def process_actions_for_account(self, account, actions: List[Action]) -> None:
        if not actions:
            return
        sink_uids = [action.sink_uid for action in actions]
        relationships = await self.validator.lookup(account, sink_uids)
        if relationships is None:
            # Whole batch stays pending until a later pass
            return
        await self.executor.run(account, relationships, actions)
