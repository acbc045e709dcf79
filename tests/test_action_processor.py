"""
Tests for ActionProcessor: selecting work and running it per account.

Key tests:
1. One lookup per account, one block per clear target
2. Missing account is logged and skipped
3. Lookup failure leaves the whole batch pending
4. Store failures are logged and never escape a pass
5. Accounts are processed concurrently
"""
import asyncio
import logging

from sqlalchemy.exc import OperationalError

from app.core.exceptions import PlatformAPIError
from app.models.action import ActionStatus
from app.services.action_processor import ActionProcessor

from factories import make_account, make_action, make_relationship


def db_error():
    return OperationalError("SELECT", {}, Exception("db down"))


class TestProcessActionsForSource:

    def test_full_flow_for_one_account(self, mock_store, mock_platform):
        account = make_account("S")
        actions = [make_action("B"), make_action("C")]
        mock_store.find_account.return_value = account
        mock_store.find_pending_block_actions_for_account.return_value = actions
        mock_platform.lookup_relationships.return_value = [
            make_relationship("B", "following"),
            make_relationship("C"),
        ]
        processor = ActionProcessor(mock_store, mock_platform)

        asyncio.run(processor.process_actions_for_source("S"))

        mock_store.find_pending_block_actions_for_account.assert_awaited_once_with("S", 100)
        mock_platform.lookup_relationships.assert_awaited_once()
        assert mock_platform.create_block.await_count == 1
        assert [a.status for a in actions] == [ActionStatus.CANCELLED_FOLLOWING, ActionStatus.DONE]

    def test_missing_account_is_logged_and_skipped(self, mock_store, mock_platform, caplog):
        processor = ActionProcessor(mock_store, mock_platform)

        with caplog.at_level(logging.ERROR):
            asyncio.run(processor.process_actions_for_source("ghost"))

        assert "User not found ghost" in caplog.text
        mock_store.find_pending_block_actions_for_account.assert_not_awaited()
        mock_platform.lookup_relationships.assert_not_awaited()

    def test_lookup_failure_leaves_batch_pending(self, mock_store, mock_platform):
        actions = [make_action("B"), make_action("C")]
        mock_store.find_account.return_value = make_account("S")
        mock_store.find_pending_block_actions_for_account.return_value = actions
        mock_platform.lookup_relationships.side_effect = PlatformAPIError(None, "timed out")
        processor = ActionProcessor(mock_store, mock_platform)

        asyncio.run(processor.process_actions_for_source("S"))

        assert all(a.status == ActionStatus.PENDING for a in actions)
        mock_store.save.assert_not_awaited()
        mock_platform.create_block.assert_not_awaited()

    def test_no_pending_actions_warns(self, mock_store, mock_platform, caplog):
        mock_store.find_account.return_value = make_account("S", screen_name="alice")
        processor = ActionProcessor(mock_store, mock_platform)

        with caplog.at_level(logging.WARNING):
            asyncio.run(processor.process_actions_for_source("S"))

        assert "No actions found for user alice S" in caplog.text
        mock_platform.lookup_relationships.assert_not_awaited()

    def test_account_load_failure_is_logged(self, mock_store, mock_platform, caplog):
        mock_store.find_account.side_effect = db_error()
        processor = ActionProcessor(mock_store, mock_platform)

        with caplog.at_level(logging.ERROR):
            asyncio.run(processor.process_actions_for_source("S"))

        assert "Failed to load account S" in caplog.text

    def test_batch_size_follows_configuration(self, mock_store, mock_platform):
        mock_store.find_account.return_value = make_account("S")
        mock_store.find_pending_block_actions_for_account.return_value = [make_action("B")]
        processor = ActionProcessor(mock_store, mock_platform, actions_per_source=25)

        asyncio.run(processor.process_actions_for_source("S"))

        mock_store.find_pending_block_actions_for_account.assert_awaited_once_with("S", 25)

    def test_batch_size_is_capped_at_lookup_limit(self, mock_store, mock_platform, caplog):
        """An oversized batch setting still selects a batch the validator accepts."""
        mock_store.find_account.return_value = make_account("S")
        mock_store.find_pending_block_actions_for_account.return_value = [make_action("B")]
        mock_platform.lookup_relationships.return_value = [make_relationship("B")]

        with caplog.at_level(logging.WARNING):
            processor = ActionProcessor(mock_store, mock_platform, actions_per_source=150)
            asyncio.run(processor.process_actions_for_source("S"))

        mock_store.find_pending_block_actions_for_account.assert_awaited_once_with("S", 100)
        mock_platform.lookup_relationships.assert_awaited_once()
        assert "exceeds the lookup limit 100" in caplog.text


class TestProcessBlocks:

    def test_processes_every_source(self, mock_store, mock_platform):
        accounts = {"S1": make_account("S1"), "S2": make_account("S2")}
        batches = {"S1": [make_action("B", source_uid="S1")], "S2": [make_action("C", source_uid="S2")]}

        async def find_account(uid):
            return accounts.get(uid)

        async def find_actions(uid, limit):
            return batches[uid]

        async def lookup(credentials, sink_uids):
            return [make_relationship(uid) for uid in sink_uids]

        mock_store.find_pending_block_source_uids.return_value = ["S1", "S2", "S3"]
        mock_store.find_account.side_effect = find_account
        mock_store.find_pending_block_actions_for_account.side_effect = find_actions
        mock_platform.lookup_relationships.side_effect = lookup
        processor = ActionProcessor(mock_store, mock_platform)

        asyncio.run(processor.process_blocks())

        mock_store.find_pending_block_source_uids.assert_awaited_once_with(300)
        assert mock_platform.lookup_relationships.await_count == 2
        assert batches["S1"][0].status == ActionStatus.DONE
        assert batches["S2"][0].status == ActionStatus.DONE
        assert processor.in_flight == 0

    def test_accounts_run_concurrently(self, mock_store, mock_platform):
        """A slow lookup for one account does not hold up another account."""
        started = []

        async def find_account(uid):
            return make_account(uid)

        async def find_actions(uid, limit):
            return [make_action("T", source_uid=uid)]

        async def lookup(credentials, sink_uids):
            started.append(credentials)
            # Both lookups must be in flight before either finishes
            while len(started) < 2:
                await asyncio.sleep(0)
            return []

        mock_store.find_pending_block_source_uids.return_value = ["S1", "S2"]
        mock_store.find_account.side_effect = find_account
        mock_store.find_pending_block_actions_for_account.side_effect = find_actions
        mock_platform.lookup_relationships.side_effect = lookup
        processor = ActionProcessor(mock_store, mock_platform)

        asyncio.run(asyncio.wait_for(processor.process_blocks(), timeout=5))

        assert len(started) == 2

    def test_source_query_failure_is_logged(self, mock_store, mock_platform, caplog):
        mock_store.find_pending_block_source_uids.side_effect = db_error()
        processor = ActionProcessor(mock_store, mock_platform)

        with caplog.at_level(logging.ERROR):
            asyncio.run(processor.process_blocks())

        assert "Failed to find pending block actions" in caplog.text
        mock_store.find_account.assert_not_awaited()

    def test_unexpected_error_for_one_account_does_not_stop_others(self, mock_store, mock_platform, caplog):
        async def find_account(uid):
            if uid == "bad":
                raise RuntimeError("boom")
            return make_account(uid)

        good_action = make_action("B", source_uid="good")

        async def find_actions(uid, limit):
            return [good_action]

        async def lookup(credentials, sink_uids):
            return [make_relationship("B")]

        mock_store.find_pending_block_source_uids.return_value = ["bad", "good"]
        mock_store.find_account.side_effect = find_account
        mock_store.find_pending_block_actions_for_account.side_effect = find_actions
        mock_platform.lookup_relationships.side_effect = lookup
        processor = ActionProcessor(mock_store, mock_platform)

        with caplog.at_level(logging.ERROR):
            asyncio.run(processor.process_blocks())

        assert good_action.status == ActionStatus.DONE
        assert "Unexpected error while processing account bad" in caplog.text
