# models/commission_history.py
"""
CommissionHistory model - reporting copy of every paid unilevel commission.
"""
from sqlalchemy import Column, Integer, String, DECIMAL, ForeignKey
from sqlalchemy.orm import relationship
from models.base import Base, UtcDateTime, utcNow


class CommissionHistory(Base):
    __tablename__ = 'commission_history'

    historyID = Column(Integer, primary_key=True, autoincrement=True)

    accountID = Column(Integer, ForeignKey('accounts.accountID'), nullable=False, index=True)  # Earner
    sourceAccountID = Column(Integer, ForeignKey('accounts.accountID'), nullable=False)  # Who produced the yield
    sourceStakeID = Column(Integer, ForeignKey('stakes.stakeID'), nullable=False)

    level = Column(Integer, nullable=False)  # 1..10
    rate = Column(DECIMAL(8, 4), nullable=False)  # Percent
    yieldAmount = Column(DECIMAL(18, 8), nullable=False)
    commissionAmount = Column(DECIMAL(18, 8), nullable=False)

    timestamp = Column(UtcDateTime, default=utcNow)
    date = Column(String, nullable=False, index=True)  # "YYYY-MM-DD"
    week = Column(String, nullable=False, index=True)  # "YYYY-WW"
    month = Column(String, nullable=False, index=True)  # "YYYY-MM"
    year = Column(Integer, nullable=False)

    # Relationships
    account = relationship('Account', foreign_keys=[accountID], backref='commissions_earned')
    sourceAccount = relationship('Account', foreign_keys=[sourceAccountID])

    def __repr__(self):
        return f"<CommissionHistory(account={self.accountID}, level={self.level}, amount={self.commissionAmount})>"
