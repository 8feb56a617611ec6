"""
Database models for Sick Fits (authoritative ORM definitions).

This module defines the SQLAlchemy Base with a naming convention for stable
Alembic autogenerate diffs, and exposes `target_metadata` for Alembic.
"""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKeyConstraint,
    Index,
    Integer,
    MetaData,
    PrimaryKeyConstraint,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

# Naming convention for deterministic constraint/index names in Alembic diffs
naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Base class for all database models with type checking support."""

    metadata = MetaData(naming_convention=naming_convention)


class Users(Base):
    __tablename__ = "users"
    __table_args__ = (
        PrimaryKeyConstraint("id", name="users_pkey"),
        UniqueConstraint("email", name="users_email_key"),
        Index("idx_users_reset_token", "reset_token"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, default=uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False, server_default=text("''"))
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    password: Mapped[str] = mapped_column(String(255), nullable=False)
    permissions: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    reset_token: Mapped[str | None] = mapped_column(String(255))
    reset_token_expiry: Mapped[datetime | None] = mapped_column(DateTime(True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(True), server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(True), server_default=text("CURRENT_TIMESTAMP"), onupdate=func.now()
    )

    items: Mapped[list["Items"]] = relationship("Items", uselist=True, back_populates="user")
    cart: Mapped[list["CartItems"]] = relationship(
        "CartItems", uselist=True, back_populates="user"
    )
    orders: Mapped[list["Orders"]] = relationship("Orders", uselist=True, back_populates="user")


class Items(Base):
    __tablename__ = "items"
    __table_args__ = (
        ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE", name="items_user_id_fkey"),
        PrimaryKeyConstraint("id", name="items_pkey"),
        CheckConstraint("price >= 0", name="items_price_non_negative"),
        Index("idx_items_user", "user_id"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    image: Mapped[str | None] = mapped_column(Text)
    large_image: Mapped[str | None] = mapped_column(Text)
    price: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(True), server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(True), server_default=text("CURRENT_TIMESTAMP"), onupdate=func.now()
    )

    user: Mapped["Users"] = relationship("Users", back_populates="items")
    cart_items: Mapped[list["CartItems"]] = relationship(
        "CartItems", uselist=True, back_populates="item", passive_deletes=True
    )


class CartItems(Base):
    __tablename__ = "cart_items"
    __table_args__ = (
        ForeignKeyConstraint(
            ["user_id"], ["users.id"], ondelete="CASCADE", name="cart_items_user_id_fkey"
        ),
        ForeignKeyConstraint(
            ["item_id"], ["items.id"], ondelete="CASCADE", name="cart_items_item_id_fkey"
        ),
        PrimaryKeyConstraint("id", name="cart_items_pkey"),
        # One cart line per (user, item); repeated adds bump the quantity
        UniqueConstraint("user_id", "item_id", name="cart_items_user_id_item_id_key"),
        CheckConstraint("quantity >= 1", name="cart_items_quantity_positive"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    item_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(True), server_default=text("CURRENT_TIMESTAMP")
    )

    user: Mapped["Users"] = relationship("Users", back_populates="cart")
    item: Mapped["Items"] = relationship("Items", back_populates="cart_items")


class Orders(Base):
    __tablename__ = "orders"
    __table_args__ = (
        ForeignKeyConstraint(
            ["user_id"], ["users.id"], ondelete="CASCADE", name="orders_user_id_fkey"
        ),
        PrimaryKeyConstraint("id", name="orders_pkey"),
        Index("idx_orders_user", "user_id"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    total: Mapped[int] = mapped_column(Integer, nullable=False)
    charge: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(True), server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(True), server_default=text("CURRENT_TIMESTAMP"), onupdate=func.now()
    )

    user: Mapped["Users"] = relationship("Users", back_populates="orders")
    items: Mapped[list["OrderItems"]] = relationship(
        "OrderItems", uselist=True, back_populates="order", cascade="all, delete-orphan"
    )


class OrderItems(Base):
    __tablename__ = "order_items"
    __table_args__ = (
        ForeignKeyConstraint(
            ["order_id"], ["orders.id"], ondelete="CASCADE", name="order_items_order_id_fkey"
        ),
        ForeignKeyConstraint(
            ["user_id"], ["users.id"], ondelete="CASCADE", name="order_items_user_id_fkey"
        ),
        PrimaryKeyConstraint("id", name="order_items_pkey"),
        Index("idx_order_items_order", "order_id"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, default=uuid4)
    order_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    user_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    image: Mapped[str | None] = mapped_column(Text)
    large_image: Mapped[str | None] = mapped_column(Text)
    price: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    order: Mapped["Orders"] = relationship("Orders", back_populates="items")


# Expose for Alembic
target_metadata = Base.metadata
