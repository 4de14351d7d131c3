"""
Company (tenant) model
"""
from sqlalchemy import Column, Integer, String, DateTime
from datetime import datetime

from app.db.base import Base


class Company(Base):
    """A bakery tenant. Every catalog and production row carries its id."""
    __tablename__ = "companies"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<Company {self.id}: {self.name}>"
