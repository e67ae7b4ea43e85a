# models/account.py
"""
Account model - one node of the sponsor tree.
"""
from sqlalchemy import Column, Integer, String, DECIMAL, Boolean, ForeignKey
from sqlalchemy.orm import relationship, backref
from models.base import Base, AuditMixin, UtcDateTime


class Account(Base, AuditMixin):
    __tablename__ = 'accounts'

    # Primary identification
    accountID = Column(Integer, primary_key=True, autoincrement=True)
    referrerID = Column(Integer, ForeignKey('accounts.accountID'), nullable=True, index=True)  # Direct sponsor

    name = Column(String, nullable=False)
    email = Column(String, nullable=True)
    status = Column(String, default="active")  # active, blocked, deleted

    # Balances (materialized from the transactions ledger)
    walletBalance = Column(DECIMAL(18, 8), default=0, nullable=False)  # Withdrawable unit
    pointsBalance = Column(DECIMAL(18, 8), default=0, nullable=False)  # Internal stable points

    # Rank and volumes
    rank = Column(String, default="B0", index=True)  # B0 .. B9
    teamVolume = Column(DECIMAL(18, 8), default=0, nullable=False)  # Own + downline active principal
    directReferralsCount = Column(Integer, default=0, nullable=False)

    # Unilevel unlock
    activeDirectReferrals = Column(Integer, default=0, nullable=False)  # Directs with an active stake
    unlockedLevels = Column(Integer, default=0, nullable=False)  # min(activeDirects * 2, 10)
    lastUnlockUpdate = Column(UtcDateTime, nullable=True)

    # B-Rank capping
    totalBRankBonusReceived = Column(DECIMAL(18, 8), default=0, nullable=False)  # Lifetime
    bRankCapNotified = Column(Boolean, default=False, nullable=False)  # Cap notice sent for current crossing

    # Relationships
    referrer = relationship('Account', remote_side=[accountID], backref=backref('referrals'))

    def __repr__(self):
        return f"<Account(accountID={self.accountID}, referrer={self.referrerID}, rank={self.rank})>"
