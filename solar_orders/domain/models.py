from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy import (
    String, ForeignKey, Numeric, DateTime, Date, Boolean, Integer, Text,
    UniqueConstraint, CheckConstraint, func,
)
from datetime import datetime, date
from typing import Optional
import enum

class Base(DeclarativeBase):
    pass


class OrderStatus(str, enum.Enum):
    PROPOSED = "Proposed"
    SCHEDULED = "Scheduled"
    COMPLETE = "Complete"
    PAID = "Paid"
    CANCELLED = "Cancelled"
    # Legacy value still present on imported orders
    FOLLOWED_UP = "Followed Up"


class BundlePricingType(str, enum.Enum):
    CALCULATED = "calculated"
    FIXED = "fixed"


class Product(Base):
    __tablename__ = "products"
    id: Mapped[int] = mapped_column(primary_key=True)
    sku: Mapped[str] = mapped_column(String(50), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(200))
    price: Mapped[float] = mapped_column(Numeric(10,2))
    tax_percentage: Mapped[float] = mapped_column(Numeric(5,2), default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_bundle: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    bundle_pricing_type: Mapped[str] = mapped_column(String(20), default=BundlePricingType.CALCULATED.value)
    bundle_discount_percentage: Mapped[float] = mapped_column(Numeric(5,2), default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())
    bundle_components: Mapped[list["BundleComponent"]] = relationship(
        "BundleComponent",
        foreign_keys="BundleComponent.bundle_product_id",
        back_populates="bundle",
        cascade="all, delete-orphan",
        order_by="BundleComponent.sort_order",
    )


class BundleComponent(Base):
    __tablename__ = "product_bundle_items"
    __table_args__ = (
        UniqueConstraint("bundle_product_id", "component_product_id", name="uq_bundle_component"),
        CheckConstraint("quantity > 0", name="ck_bundle_component_quantity_positive"),
    )
    id: Mapped[int] = mapped_column(primary_key=True)
    bundle_product_id: Mapped[int] = mapped_column(ForeignKey("products.id", ondelete="CASCADE"), index=True)
    component_product_id: Mapped[int] = mapped_column(ForeignKey("products.id", ondelete="CASCADE"), index=True)
    quantity: Mapped[int] = mapped_column(Integer, default=1)
    sort_order: Mapped[int] = mapped_column(Integer, default=0)
    bundle: Mapped[Product] = relationship("Product", foreign_keys=[bundle_product_id], back_populates="bundle_components")
    component: Mapped[Product] = relationship("Product", foreign_keys=[component_product_id])


class Warehouse(Base):
    __tablename__ = "warehouses"
    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200))
    address: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    state: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    zip: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())


class Inventory(Base):
    __tablename__ = "inventory"
    __table_args__ = (
        UniqueConstraint("product_id", "warehouse_id", name="uq_inventory_product_warehouse"),
        CheckConstraint("quantity >= 0", name="ck_inventory_quantity_non_negative"),
    )
    id: Mapped[int] = mapped_column(primary_key=True)
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id", ondelete="CASCADE"), index=True)
    warehouse_id: Mapped[int] = mapped_column(ForeignKey("warehouses.id", ondelete="CASCADE"), index=True)
    quantity: Mapped[int] = mapped_column(Integer, default=0)
    min_quantity: Mapped[int] = mapped_column(Integer, default=0)
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())
    product: Mapped[Product] = relationship("Product")
    warehouse: Mapped[Warehouse] = relationship("Warehouse")
    adjustments: Mapped[list["InventoryAdjustment"]] = relationship(
        "InventoryAdjustment", back_populates="inventory", cascade="all, delete-orphan"
    )


class InventoryAdjustment(Base):
    """Audit trail row written for every signed quantity change."""
    __tablename__ = "inventory_adjustments"
    id: Mapped[int] = mapped_column(primary_key=True)
    inventory_id: Mapped[int] = mapped_column(ForeignKey("inventory.id", ondelete="CASCADE"), index=True)
    delta: Mapped[int] = mapped_column(Integer)
    quantity_after: Mapped[int] = mapped_column(Integer)
    reason: Mapped[str] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    inventory: Mapped[Inventory] = relationship("Inventory", back_populates="adjustments")


class Order(Base):
    __tablename__ = "orders"
    id: Mapped[int] = mapped_column(primary_key=True)
    # Contacts live in the CRM tables; stored as a plain id
    contact_id: Mapped[int] = mapped_column(Integer, index=True)
    status: Mapped[str] = mapped_column(String(30), default=OrderStatus.PROPOSED.value, index=True)
    total: Mapped[float] = mapped_column(Numeric(10,2), default=0)
    order_date: Mapped[date] = mapped_column(Date, default=date.today)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    items: Mapped[list["OrderItem"]] = relationship(
        "OrderItem", back_populates="order", cascade="all, delete-orphan", order_by="OrderItem.id"
    )


class OrderItem(Base):
    __tablename__ = "order_items"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_order_item_quantity_positive"),
    )
    id: Mapped[int] = mapped_column(primary_key=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id", ondelete="CASCADE"), index=True)
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id"), index=True)
    quantity: Mapped[int]
    price: Mapped[float] = mapped_column(Numeric(10,2))
    # No warehouse means stock is drawn from any warehouse holding the product
    warehouse_id: Mapped[Optional[int]] = mapped_column(ForeignKey("warehouses.id"), nullable=True)
    order: Mapped[Order] = relationship("Order", back_populates="items")
    product: Mapped[Product] = relationship("Product")
    warehouse: Mapped[Optional[Warehouse]] = relationship("Warehouse")
