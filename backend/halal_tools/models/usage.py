"""
SQLAlchemy models for the free usage quota and the generation audit log
"""
from sqlalchemy import (JSON, Boolean, CheckConstraint, Column, DateTime,
                        ForeignKey, Index, Integer, String, Uuid)
from sqlalchemy.dialects.postgresql import JSONB

from halal_tools.core.database import Base
from halal_tools.utils.datetime_utils import utc_now


class UsageAccount(Base):
    """
    Free-use counter for one identity

    Identity is ``user:<uuid>`` for signed-in users and ``ip:<address>``
    for anonymous callers.
    """
    __tablename__ = "usage_accounts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    identity = Column(String(255), unique=True, nullable=False, index=True)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)

    remaining_uses = Column(
        Integer,
        CheckConstraint("remaining_uses >= 0", name="ck_usage_accounts_remaining_non_negative"),
        nullable=False,
    )
    is_unlimited = Column(Boolean, default=False, nullable=False)

    last_reset = Column(DateTime, default=utc_now, nullable=False)
    last_used_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utc_now, nullable=False)

    def __repr__(self):
        return f"<UsageAccount(identity={self.identity}, remaining={self.remaining_uses})>"


class ContractGeneration(Base):
    """
    Append-only audit row for every generated contract
    """
    __tablename__ = "contract_generations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    identity = Column(String(255), nullable=False)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    ip_address = Column(String(64), nullable=True)
    contract_type = Column(String(50), nullable=False, index=True)
    used_fields = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False, default=dict)
    created_at = Column(DateTime, default=utc_now, nullable=False)

    __table_args__ = (
        Index("idx_contract_generations_created", "created_at"),
    )

    def __repr__(self):
        return f"<ContractGeneration(id={self.id}, type={self.contract_type}, identity={self.identity})>"
