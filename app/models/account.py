from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from ..database import Base

class Account(Base):
    __tablename__ = "accounts"

    uid = Column(String, primary_key=True, index=True)
    screen_name = Column(String(50), nullable=False)
    access_token = Column(String(255), nullable=False)
    access_token_secret = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    unblocked_users = relationship("UnblockedUser", back_populates="account", cascade="all, delete-orphan")

    @property
    def suppressed_sink_uids(self) -> set:
        """Sink uids this account unblocked in the past and must not re-block."""
        return {entry.sink_uid for entry in self.unblocked_users}


class UnblockedUser(Base):
    __tablename__ = "unblocked_users"

    source_uid = Column(String, ForeignKey("accounts.uid"), primary_key=True)
    sink_uid = Column(String, primary_key=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    account = relationship("Account", back_populates="unblocked_users")
