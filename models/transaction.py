# models/transaction.py
"""
Transaction model - append-only ledger for both currency units.
Balances on Account are a cache; this table is the source of truth.
"""
from sqlalchemy import Column, Integer, String, DECIMAL, Text, ForeignKey
from sqlalchemy.orm import relationship
from models.base import Base, UtcDateTime, utcNow


class Transaction(Base):
    __tablename__ = 'transactions'

    transactionID = Column(Integer, primary_key=True, autoincrement=True)
    accountID = Column(Integer, ForeignKey('accounts.accountID'), nullable=False, index=True)

    amount = Column(DECIMAL(18, 8), nullable=False)  # Signed
    currency = Column(String, nullable=False, index=True)  # wallet, points
    transactionType = Column(String, nullable=False, index=True)
    # deposit, withdrawal, stake, yield, commission_direct, commission_indirect,
    # commission_unilevel, commission_rank, points_swap

    # References
    stakeID = Column(Integer, ForeignKey('stakes.stakeID'), nullable=True, index=True)
    referenceID = Column(String, nullable=True)  # Swap request, external deposit id, ...

    # Commission metadata
    commissionLevel = Column(Integer, nullable=True)
    commissionRate = Column(DECIMAL(8, 4), nullable=True)  # Percent
    sourceAccountID = Column(Integer, ForeignKey('accounts.accountID'), nullable=True)

    description = Column(Text, nullable=True)
    timestamp = Column(UtcDateTime, default=utcNow, index=True)

    # Relationships
    account = relationship('Account', foreign_keys=[accountID], backref='transactions')
    sourceAccount = relationship('Account', foreign_keys=[sourceAccountID])
    stake = relationship('Stake', backref='transactions')

    def __repr__(self):
        return (
            f"<Transaction(id={self.transactionID}, account={self.accountID}, "
            f"{self.transactionType}, {self.amount} {self.currency})>"
        )
