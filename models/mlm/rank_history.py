# models/mlm/rank_history.py
"""
RankHistory model - tracks rank promotions and demotions.
"""
from sqlalchemy import Column, Integer, String, DECIMAL, Text, ForeignKey
from sqlalchemy.orm import relationship
from models.base import Base, UtcDateTime, utcNow


class RankHistory(Base):
    __tablename__ = 'rank_history'

    historyID = Column(Integer, primary_key=True, autoincrement=True)
    createdAt = Column(UtcDateTime, default=utcNow)

    # Relations
    accountID = Column(Integer, ForeignKey('accounts.accountID'), nullable=False, index=True)

    # Rank details
    previousRank = Column(String, nullable=True)
    newRank = Column(String, nullable=False)

    # Qualification metrics at time of change
    teamVolume = Column(DECIMAL(18, 8), nullable=True)
    directReferrals = Column(Integer, nullable=True)
    qualificationMethod = Column(String, nullable=True)  # promotion, demotion

    # Additional context
    notes = Column(Text, nullable=True)

    # Relationships
    account = relationship('Account', backref='rank_history')

    def __repr__(self):
        return f"<RankHistory(account={self.accountID}, {self.previousRank}->{self.newRank}, date={self.createdAt})>"
