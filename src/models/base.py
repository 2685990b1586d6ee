"""
Base model class for all database models.

Provides common functionality and fields for all models:
- Primary key (Integer) and UUID column
- Timestamp fields (created_at, updated_at)
- Utility methods (to_dict, update_from_dict)
- Append-only guard for ledger models
- SQLAlchemy declarative base
"""

import uuid as uuid_lib
from datetime import datetime
from typing import Any, Dict

from sqlalchemy import Column, DateTime, Integer, String, event
from sqlalchemy.orm import declarative_base, validates

from src.utils.datetime_utils import as_naive_utc, utc_now

# Create the declarative base for all models
Base = declarative_base()


class ImmutableRecordError(RuntimeError):
    """Raised when a flush would update or delete an append-only record."""

    def __init__(self, record):
        self.record = record
        super().__init__(f"{record!r} is append-only and cannot be modified or deleted")


class BaseModel(Base):
    """
    Abstract base model with common fields and methods.

    All models should inherit from this class to get:
    - id: Primary key
    - uuid: Stable external identifier
    - created_at: Timestamp when record was created
    - updated_at: Timestamp when record was last modified
    - to_dict(): Convert model to dictionary
    """

    __abstract__ = True

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Stored as string for SQLite compatibility
    uuid = Column(
        String(36), unique=True, nullable=False, default=lambda: str(uuid_lib.uuid4()), index=True
    )

    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    def to_dict(self, include_relationships: bool = False) -> Dict[str, Any]:
        """
        Convert model instance to dictionary.

        Datetimes are rendered as naive-UTC ISO strings; Decimal values are
        kept as Decimal.

        Args:
            include_relationships: If True, include related objects (default: False)

        Returns:
            Dictionary representation of the model
        """
        result = {}

        for column in self.__table__.columns:
            value = getattr(self, column.key)

            if isinstance(value, datetime):
                value = as_naive_utc(value).isoformat()

            result[column.key] = value

        if include_relationships:
            for relationship in self.__mapper__.relationships:
                rel_name = relationship.key
                rel_value = getattr(self, rel_name)

                if rel_value is None:
                    result[rel_name] = None
                elif isinstance(rel_value, list):
                    result[rel_name] = [item.to_dict() for item in rel_value]
                else:
                    result[rel_name] = rel_value.to_dict()

        return result

    @validates("uuid")
    def _validate_uuid(self, _key: str, value: Any) -> str:
        """Normalize UUID values to strings for SQLite compatibility."""
        if value is None:
            return value
        return str(value)

    def update_from_dict(self, data: Dict[str, Any]) -> None:
        """
        Update model instance from dictionary.

        Only updates fields that exist in the model and are in the dictionary.

        Args:
            data: Dictionary with field names and values
        """
        for column in self.__table__.columns:
            if column.key in data and column.key not in ["id", "uuid", "created_at", "updated_at"]:
                setattr(self, column.key, data[column.key])

    def __repr__(self) -> str:
        """
        String representation of model instance.

        Returns:
            String like "ClassName(id=1, ...)"
        """
        class_name = self.__class__.__name__
        attrs = []

        if hasattr(self, "id") and self.id is not None:
            attrs.append(f"id={self.id}")

        if hasattr(self, "name") and self.name is not None:
            attrs.append(f"name='{self.name}'")

        attrs_str = ", ".join(attrs)
        return f"{class_name}({attrs_str})"


class AppendOnlyModel(BaseModel):
    """
    Abstract base for ledger records (transactions, production logs, sales).

    Rows are written once; any flush that would update or delete one raises
    ImmutableRecordError. Subclasses set ``updated_at = None``.
    """

    __abstract__ = True


def _reject_modification(mapper, connection, target):
    raise ImmutableRecordError(target)


event.listen(AppendOnlyModel, "before_update", _reject_modification, propagate=True)
event.listen(AppendOnlyModel, "before_delete", _reject_modification, propagate=True)
