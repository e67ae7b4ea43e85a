from sqlalchemy import Column, Integer, String, Text, Boolean, ForeignKey, JSON
from sqlalchemy.orm import relationship
from models.base import Base, UtcDateTime, utcNow


class Notification(Base):
    __tablename__ = 'notifications'

    notificationID = Column(Integer, primary_key=True, autoincrement=True)
    createdAt = Column(UtcDateTime, default=utcNow)

    accountID = Column(Integer, ForeignKey('accounts.accountID'), nullable=False, index=True)

    category = Column(String, nullable=False)  # earnings, commission, rank, stake, withdrawal, system
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    icon = Column(String, nullable=True)
    data = Column(JSON, nullable=True)

    # Delivery is handled outside the engine
    read = Column(Boolean, default=False)
    status = Column(String, default='pending')  # pending, sent, failed
    sentAt = Column(UtcDateTime, nullable=True)

    account = relationship('Account', backref='notifications')
