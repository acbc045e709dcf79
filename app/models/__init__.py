from app.models.account import Account, UnblockedUser
from app.models.action import Action, ActionType, ActionStatus

__all__ = [
    "Account", "UnblockedUser",
    "Action", "ActionType", "ActionStatus",
]
