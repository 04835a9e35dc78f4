"""SQLAlchemy ORM models for the garage catalog store."""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    func,
    text,
    true,
)
from sqlalchemy.orm import Mapped, declarative_base, mapped_column, relationship

# The catalog is an independently owned store with its own metadata.
CatalogBase = declarative_base()

garage_subcategories = Table(
    "garage_subcategories",
    CatalogBase.metadata,
    Column("garage_id", ForeignKey("garages.id", ondelete="CASCADE"), primary_key=True),
    Column("subcategory_id", ForeignKey("subcategories.id", ondelete="CASCADE"), primary_key=True),
)


class Category(CatalogBase):
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    garages: Mapped[list["Garage"]] = relationship(back_populates="category")
    subcategories: Mapped[list["Subcategory"]] = relationship(
        back_populates="category",
        cascade="all, delete-orphan",
    )


class Subcategory(CatalogBase):
    """A specialty offered by garages, such as oil change under mechanics."""

    __tablename__ = "subcategories"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category_id: Mapped[int] = mapped_column(
        ForeignKey("categories.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    category: Mapped["Category"] = relationship(back_populates="subcategories")
    garages: Mapped[list["Garage"]] = relationship(
        secondary=garage_subcategories,
        back_populates="subcategories",
    )


class Garage(CatalogBase):
    """A garage listed in the catalog; coordinates are optional."""

    __tablename__ = "garages"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    capacity: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
        server_default=text("1"),
    )
    is_available: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default=true(),
    )
    rating: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    category_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    category: Mapped[Optional["Category"]] = relationship(back_populates="garages")
    subcategories: Mapped[list["Subcategory"]] = relationship(
        secondary=garage_subcategories,
        back_populates="garages",
        order_by="Subcategory.id",
    )
    services: Mapped[list["Service"]] = relationship(
        back_populates="garage",
        cascade="all, delete-orphan",
    )


class Service(CatalogBase):
    __tablename__ = "services"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    garage_id: Mapped[int] = mapped_column(
        ForeignKey("garages.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    price: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    duration_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    garage: Mapped["Garage"] = relationship(back_populates="services")
