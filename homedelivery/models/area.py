"""Domain 1: Users, Areas, Addresses and Publications"""

from sqlalchemy import Column, String, Text, Boolean, Numeric, Table, ForeignKey, JSON, Uuid
from sqlalchemy.orm import relationship

from homedelivery.models.base import BaseModel, AreaScopedMixin, StatusMixin, enum_column
from homedelivery.models.enums import UserRole, PublicationType


class User(BaseModel, StatusMixin):
    """
    Every person known to the engine: managers, deliverers and customers.
    Credentials live with the external identity provider.
    """
    __tablename__ = "users"

    username = Column(String(150), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)

    role = Column(enum_column(UserRole, "user_role"), nullable=False, index=True)

    # Notification preferences
    notify_email = Column(Boolean, default=True, nullable=False)
    notify_sms = Column(Boolean, default=False, nullable=False)

    addresses = relationship("Address", back_populates="user")
    managed_areas = relationship("Area", secondary="area_managers", back_populates="managers")
    customer_areas = relationship("Area", secondary="area_customers", back_populates="customers")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:
        return f"<User {self.username} ({self.role})>"


class Area(BaseModel, StatusMixin):
    """
    Geographic/administrative partition.
    Bounds which staff may act on which customers.
    """
    __tablename__ = "areas"

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    city = Column(String(255), nullable=False)
    state = Column(String(255), nullable=False)
    postal_codes = Column(JSON, default=list, nullable=False)

    managers = relationship("User", secondary="area_managers", back_populates="managed_areas")
    customers = relationship("User", secondary="area_customers", back_populates="customer_areas")
    publications = relationship("Publication", secondary="area_publications", back_populates="areas")

    def __repr__(self) -> str:
        return f"<Area {self.name}, {self.city}>"


class Address(BaseModel, AreaScopedMixin, StatusMixin):
    """Delivery address of a customer; its area decides who serves it"""
    __tablename__ = "addresses"

    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    street_address = Column(String(500), nullable=False)
    city = Column(String(255), nullable=False)
    state = Column(String(255), nullable=False)
    postal_code = Column(String(20), nullable=False)
    latitude = Column(Numeric(9, 6), nullable=True)
    longitude = Column(Numeric(9, 6), nullable=True)
    delivery_instructions = Column(Text, nullable=True)
    is_default = Column(Boolean, default=False, nullable=False)

    user = relationship("User", back_populates="addresses")

    def __repr__(self) -> str:
        return f"<Address {self.street_address}, {self.postal_code}>"


class Publication(BaseModel, StatusMixin):
    """A newspaper or magazine that can be subscribed to"""
    __tablename__ = "publications"

    name = Column(String(255), nullable=False)
    language = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    publication_type = Column(enum_column(PublicationType, "publication_type"), nullable=False)
    publication_days = Column(JSON, default=list, nullable=False)
    manager_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    areas = relationship("Area", secondary="area_publications", back_populates="publications")

    def __repr__(self) -> str:
        return f"<Publication {self.name} @ {self.price}>"


# Association table for Area <-> Manager
area_managers = Table(
    "area_managers",
    BaseModel.metadata,
    Column("area_id", Uuid(as_uuid=True), ForeignKey("areas.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)

# Association table for Area <-> Customer
area_customers = Table(
    "area_customers",
    BaseModel.metadata,
    Column("area_id", Uuid(as_uuid=True), ForeignKey("areas.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)

# Association table for Area <-> Publication
area_publications = Table(
    "area_publications",
    BaseModel.metadata,
    Column("area_id", Uuid(as_uuid=True), ForeignKey("areas.id", ondelete="CASCADE"), primary_key=True),
    Column("publication_id", Uuid(as_uuid=True), ForeignKey("publications.id", ondelete="CASCADE"), primary_key=True),
)
