from sqlalchemy import select
from sqlalchemy.orm import selectinload
from typing import List, Optional

from app.models.account import Account
from app.models.action import Action, ActionStatus, ActionType


class ActionStore:
    """Durable store for queued actions and the accounts that own them.

    Every call opens its own session, so no transaction spans more than one
    action. Returned objects are detached (the session factory is built with
    ``expire_on_commit=False``) and can be handed back to ``save``.
    """

    def __init__(self, session_factory):
        self.session_factory = session_factory

    async def create(self, action: Action) -> Action:
        async with self.session_factory() as db:
            db.add(action)
            await db.commit()
            await db.refresh(action)
            return action

    async def find_pending_block_source_uids(self, limit: int) -> List[str]:
        """Distinct source uids that have at least one pending block action.

        Order is whatever the database returns; callers must not rely on it.
        """
        async with self.session_factory() as db:
            result = await db.execute(
                select(Action.source_uid)
                .where(Action.status == ActionStatus.PENDING, Action.type == ActionType.BLOCK)
                .distinct()
                .limit(limit)
            )
            return list(result.scalars().all())

    async def find_account(self, uid: str) -> Optional[Account]:
        """Load an account together with its unblocked (suppressed) sink uids."""
        async with self.session_factory() as db:
            result = await db.execute(
                select(Account)
                .options(selectinload(Account.unblocked_users))
                .where(Account.uid == uid)
            )
            return result.scalars().first()

    async def find_pending_block_actions_for_account(self, uid: str, limit: int) -> List[Action]:
        """Oldest-updated pending block actions for one source account."""
        async with self.session_factory() as db:
            result = await db.execute(
                select(Action)
                .where(
                    Action.source_uid == uid,
                    Action.status == ActionStatus.PENDING,
                    Action.type == ActionType.BLOCK,
                )
                .order_by(Action.updated_at.asc(), Action.created_at.asc())
                .limit(limit)
            )
            return list(result.scalars().all())

    async def save(self, action: Action) -> Action:
        async with self.session_factory() as db:
            merged = await db.merge(action)
            await db.commit()
            return merged
