"""Database models for the learning engine."""
from sqlalchemy import Column, String, Text

from wordmaster.models.base import Base, TimestampMixin


class StoredValue(Base, TimestampMixin):
    """One serialized record of the durable key-value store."""

    __tablename__ = "key_value_store"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)
