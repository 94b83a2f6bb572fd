import uuid
from sqlalchemy import Column, DateTime, Uuid
from sqlalchemy.orm import declarative_base
from utils.datetime_utils import DateTimeManager

Base = declarative_base()


class TimestampMixin:
    """
    Mixin for timestamp fields
    Provides created_at and updated_at fields
    """

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=DateTimeManager.utc_now,
        comment="Record creation timestamp"
    )

    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=DateTimeManager.utc_now,
        onupdate=DateTimeManager.utc_now,
        comment="Record last update timestamp"
    )


class BaseModel(Base, TimestampMixin):
    """
    Base model class for all database models
    """

    __abstract__ = True

    id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        comment="Primary key UUID"
    )

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(id={self.id})>"
