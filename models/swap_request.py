# models/swap_request.py
"""
SwapRequest model - points to wallet conversions.
"""
from sqlalchemy import Column, Integer, String, DECIMAL, ForeignKey
from sqlalchemy.orm import relationship
from models.base import Base, AuditMixin, UtcDateTime


class SwapRequest(Base, AuditMixin):
    __tablename__ = 'swap_requests'

    swapID = Column(Integer, primary_key=True, autoincrement=True)
    accountID = Column(Integer, ForeignKey('accounts.accountID'), nullable=False, index=True)

    pointsAmount = Column(DECIMAL(18, 8), nullable=False)
    walletAmount = Column(DECIMAL(18, 8), nullable=False)
    conversionRate = Column(DECIMAL(18, 8), nullable=False)

    status = Column(String, default="pending")  # pending, completed, failed
    completedAt = Column(UtcDateTime, nullable=True)

    account = relationship('Account', backref='swap_requests')

    def __repr__(self):
        return f"<SwapRequest(swapID={self.swapID}, account={self.accountID}, points={self.pointsAmount})>"
