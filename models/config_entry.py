# models/config_entry.py
"""
ConfigEntry model - key/value business configuration (rank rules, flags, rates).
"""
from sqlalchemy import Column, Integer, String, JSON
from models.base import Base, AuditMixin


class ConfigEntry(Base, AuditMixin):
    __tablename__ = 'configs'

    configID = Column(Integer, primary_key=True, autoincrement=True)
    key = Column(String, unique=True, nullable=False, index=True)
    value = Column(JSON, nullable=True)

    def __repr__(self):
        return f"<ConfigEntry(key={self.key})>"
