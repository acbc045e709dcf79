from sqlalchemy import Column, String, DateTime, Enum as SQLEnum
from sqlalchemy.sql import func
from ..database import Base
import enum
import uuid

class ActionType(str, enum.Enum):
    BLOCK = "block"

class ActionStatus(str, enum.Enum):
    PENDING = "pending"
    DONE = "done"
    CANCELLED_DUPLICATE = "cancelled-duplicate"
    CANCELLED_FOLLOWING = "cancelled-following"
    CANCELLED_UNBLOCKED = "cancelled-unblocked"
    CANCELLED_SELF = "cancelled-self"
    # Never re-selected: only PENDING actions are picked up by a pass
    DEFERRED_TARGET_SUSPENDED = "deferred-target-suspended"

class Action(Base):
    __tablename__ = "actions"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    # No foreign key: a missing account is detected and logged when the action is processed
    source_uid = Column(String, nullable=False, index=True)
    sink_uid = Column(String, nullable=False)
    type = Column(SQLEnum(ActionType), nullable=False, default=ActionType.BLOCK)
    status = Column(SQLEnum(ActionStatus), nullable=False, default=ActionStatus.PENDING, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), index=True)

    def __repr__(self):
        return f"<Action {self.id} {self.source_uid} --{self.type}--> {self.sink_uid} [{self.status}]>"
