import logging
from typing import Dict, Iterable, Optional, Set

from sqlalchemy.exc import SQLAlchemyError

from app.core.exceptions import PlatformAPIError
from app.models.action import Action, ActionStatus
from app.schemas.platform import Relationship
from app.services.platform_client import credentials_for

logger = logging.getLogger(__name__)


def classify(
    source_uid: str,
    action: Action,
    relationship: Optional[Relationship],
    suppressed_sink_uids: Set[str],
) -> Optional[ActionStatus]:
    """Decide the status an action moves to without being executed.

    Returns None when nothing prevents the block. The checks run in a fixed
    order and the first match wins.
    """
    # Absent from friendships/lookup: suspended or deactivated
    if relationship is None:
        return ActionStatus.DEFERRED_TARGET_SUSPENDED
    if "blocking" in relationship.connections:
        return ActionStatus.CANCELLED_DUPLICATE
    if "following" in relationship.connections:
        return ActionStatus.CANCELLED_FOLLOWING
    if action.sink_uid in suppressed_sink_uids:
        return ActionStatus.CANCELLED_UNBLOCKED
    if action.sink_uid == source_uid:
        return ActionStatus.CANCELLED_SELF
    return None


async def set_action_status(store, action: Action, new_status: ActionStatus) -> None:
    """Set and persist an action's status. Save errors are logged, never raised."""
    action.status = new_status
    try:
        await store.save(action)
    except SQLAlchemyError as e:
        logger.error(f"Failed to save action {action.id} as {new_status.value}: {e}")


class BlockExecutor:
    """Works through one account's batch strictly one action at a time.

    blocks/create takes a single uid per call and has no published rate limit,
    so calls are never issued in parallel for the same batch.
    """

    def __init__(self, store, platform):
        self.store = store
        self.platform = platform

    async def run(self, account, relationships: Dict[str, Relationship], actions: Iterable[Action]) -> None:
        suppressed = account.suppressed_sink_uids
        for action in actions:
            # Each action is fully resolved before the next one starts
            await self.process_action(account, relationships, suppressed, action)

    async def process_action(
        self,
        account,
        relationships: Dict[str, Relationship],
        suppressed: Set[str],
        action: Action,
    ) -> ActionStatus:
        relationship = relationships.get(action.sink_uid)
        new_status = classify(account.uid, action, relationship, suppressed)
        if new_status is not None:
            await set_action_status(self.store, action, new_status)
            return new_status

        logger.debug(
            f"Creating block {account.screen_name} --block--> {relationship.display_name} {action.sink_uid}"
        )
        try:
            result = await self.platform.create_block(credentials_for(account), action.sink_uid)
        except PlatformAPIError as e:
            # Left pending; the next pass retries it
            logger.error(
                f"Error /blocks/create {e.status_code} {account.screen_name} {account.uid} "
                f"--block--> {relationship.display_name} {action.sink_uid}: {e.data}"
            )
            return action.status

        logger.info(f"Blocked {account.screen_name} {account.uid} --block--> {result.display_name} {result.id}")
        await set_action_status(self.store, action, ActionStatus.DONE)
        return ActionStatus.DONE
