"""
SQLAlchemy model for precious metal price snapshots
"""
from sqlalchemy import Boolean, Column, DateTime, Index, Integer, Numeric

from halal_tools.core.database import Base
from halal_tools.utils.datetime_utils import utc_now


class MetalRate(Base):
    """
    Per-gram gold and silver price at one point in time

    Append-only. The current price is the newest row; a failed refresh
    appends a copy of the previous prices with ``is_fallback`` set.
    """
    __tablename__ = "metal_rates"

    id = Column(Integer, primary_key=True, autoincrement=True)
    gold = Column(Numeric(12, 2), nullable=False)
    silver = Column(Numeric(12, 2), nullable=False)
    fetched_at = Column(DateTime, default=utc_now, nullable=False)
    is_fallback = Column(Boolean, default=False, nullable=False)

    __table_args__ = (
        Index("idx_metal_rates_fetched_at", "fetched_at"),
    )

    def __repr__(self):
        return (
            f"<MetalRate(id={self.id}, gold={self.gold}, silver={self.silver}, "
            f"fallback={self.is_fallback})>"
        )
