"""Base Models and Mixins for DRY principles"""

import uuid
from sqlalchemy import Column, DateTime, Boolean, ForeignKey, Enum, Uuid
from sqlalchemy.orm import declared_attr

from homedelivery.database import Base
from homedelivery.utils.time import get_utc_now


class BaseModel(Base):
    """
    Base model class with common fields for all models.

    Provides:
    - UUID primary key
    - created_at timestamp
    - updated_at timestamp
    """
    __abstract__ = True

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    created_at = Column(DateTime, default=get_utc_now, nullable=False)
    updated_at = Column(DateTime, default=get_utc_now, onupdate=get_utc_now, nullable=False)


class AreaScopedMixin:
    """
    Mixin for records that belong to one area.

    Provides:
    - area_id foreign key
    """

    @declared_attr
    def area_id(cls):
        return Column(
            Uuid(as_uuid=True),
            ForeignKey("areas.id", ondelete="RESTRICT"),
            nullable=True,
            index=True
        )


class StatusMixin:
    """
    Mixin for models with active/inactive status.

    Provides:
    - is_active boolean flag
    """
    is_active = Column(Boolean, default=True, nullable=False, index=True)


def enum_column(enum_cls, name: str):
    """Enum column stored by value ("Partially Paid", not "PARTIALLY_PAID")"""
    return Enum(
        enum_cls,
        name=name,
        values_callable=lambda x: [e.value for e in x],
        validate_strings=True,
    )
