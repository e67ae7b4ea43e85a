# models/stake.py
"""
Stake model - fixed principal locked for a fixed number of days.
"""
from sqlalchemy import Column, Integer, String, DECIMAL, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from models.base import Base, AuditMixin, UtcDateTime, utcNow


class Stake(Base, AuditMixin):
    __tablename__ = 'stakes'

    STATUS_ACTIVE = "active"
    STATUS_COMPLETED = "completed"

    stakeID = Column(Integer, primary_key=True, autoincrement=True)
    accountID = Column(Integer, ForeignKey('accounts.accountID'), nullable=False, index=True)

    amount = Column(DECIMAL(18, 8), nullable=False)  # Principal
    cycleDays = Column(Integer, nullable=False)
    dailyRate = Column(DECIMAL(8, 4), nullable=False)  # Percent per day

    startDate = Column(UtcDateTime, nullable=False)
    endDate = Column(UtcDateTime, nullable=False)  # startDate + cycleDays
    status = Column(String, default=STATUS_ACTIVE, nullable=False, index=True)
    lastYieldDate = Column(UtcDateTime, nullable=True)
    completedAt = Column(UtcDateTime, nullable=True)

    # Relationships
    account = relationship('Account', backref='stakes')

    @property
    def isActive(self) -> bool:
        return self.status == self.STATUS_ACTIVE

    def __repr__(self):
        return f"<Stake(stakeID={self.stakeID}, account={self.accountID}, amount={self.amount}, status={self.status})>"


class StakeYieldRecord(Base):
    """One row per stake per processing day. The unique key blocks double payment."""
    __tablename__ = 'stake_yield_records'
    __table_args__ = (
        UniqueConstraint('stakeID', 'yieldDate', name='uq_stake_yield_day'),
    )

    recordID = Column(Integer, primary_key=True, autoincrement=True)
    stakeID = Column(Integer, ForeignKey('stakes.stakeID'), nullable=False, index=True)
    yieldDate = Column(String, nullable=False)  # "YYYY-MM-DD"

    yieldAmount = Column(DECIMAL(18, 8), nullable=False, default=0)
    commissionAmount = Column(DECIMAL(18, 8), nullable=False, default=0)
    processedAt = Column(UtcDateTime, default=utcNow)

    stake = relationship('Stake', backref='yieldRecords')

    def __repr__(self):
        return f"<StakeYieldRecord(stake={self.stakeID}, date={self.yieldDate}, yield={self.yieldAmount})>"
