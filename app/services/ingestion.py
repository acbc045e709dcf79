import logging
from typing import List

from sqlalchemy.exc import SQLAlchemyError

from app.models.action import Action, ActionStatus, ActionType

logger = logging.getLogger(__name__)


async def queue_blocks(store, source_uid: str, sink_uids: List[str]) -> None:
    """Queue one pending block action per sink uid for ``source_uid``.

    Each insert is independent: a failure is logged and the remaining uids are
    still queued. Duplicates are not filtered here; they are cancelled when the
    action is processed.
    """
    for sink_uid in sink_uids:
        action = Action(
            source_uid=source_uid,
            sink_uid=sink_uid,
            type=ActionType.BLOCK,
            status=ActionStatus.PENDING,
        )
        try:
            await store.create(action)
        except SQLAlchemyError as e:
            logger.error(f"Failed to queue block {source_uid} --block--> {sink_uid}: {e}")
