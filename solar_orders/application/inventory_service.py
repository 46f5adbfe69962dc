from typing import List, Optional
from sqlalchemy import func, or_, update
from sqlalchemy.orm import Session
from solar_orders.core.logging_config import get_logger
from solar_orders.domain.errors import (
    ConflictError,
    InsufficientInventoryError,
    NotFoundError,
    ProductNotFoundError,
    WarehouseNotFoundError,
)
from solar_orders.domain.models import Inventory, InventoryAdjustment, Product, Warehouse
from .schemas import InventoryCreate, InventoryUpdate

logger = get_logger(__name__)

MANUAL_COUNT_REASON = "Manual count correction"

class InventoryService:
    def __init__(self, db: Session):
        self.db = db

    def get(self, inventory_id: int) -> Optional[Inventory]:
        return self.db.query(Inventory).filter(Inventory.id == inventory_id).first()

    def get_for_product(self, product_id: int, warehouse_id: int) -> Optional[Inventory]:
        return self.db.query(Inventory).filter(
            Inventory.product_id == product_id,
            Inventory.warehouse_id == warehouse_id,
        ).first()

    def list_for_product(self, product_id: int) -> List[Inventory]:
        """All rows for a product, in the order stock is drawn from them."""
        return (
            self.db.query(Inventory)
            .filter(Inventory.product_id == product_id)
            .order_by(Inventory.warehouse_id, Inventory.id)
            .all()
        )

    def total_for_product(self, product_id: int, warehouse_id: Optional[int] = None) -> int:
        query = self.db.query(func.coalesce(func.sum(Inventory.quantity), 0)).filter(
            Inventory.product_id == product_id
        )
        if warehouse_id is not None:
            query = query.filter(Inventory.warehouse_id == warehouse_id)
        return int(query.scalar() or 0)

    def list(self, warehouse_id: Optional[int] = None, search: Optional[str] = None,
             skip: int = 0, limit: int = 50) -> tuple[List[Inventory], int]:
        query = self.db.query(Inventory).join(Product, Inventory.product_id == Product.id)
        if warehouse_id is not None:
            query = query.filter(Inventory.warehouse_id == warehouse_id)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(Product.name.ilike(pattern), Product.sku.ilike(pattern)))
        total = query.count()
        rows = query.order_by(Inventory.updated_at.desc(), Inventory.id.desc()).offset(skip).limit(limit).all()
        return rows, total

    def low_stock(self, limit: int = 10) -> List[Inventory]:
        return (
            self.db.query(Inventory)
            .filter(Inventory.quantity <= Inventory.min_quantity)
            .order_by(Inventory.quantity, Inventory.id)
            .limit(limit)
            .all()
        )

    def create(self, data: InventoryCreate) -> Inventory:
        if not self.db.query(Product).filter(Product.id == data.product_id).first():
            raise ProductNotFoundError(data.product_id)
        if not self.db.query(Warehouse).filter(Warehouse.id == data.warehouse_id).first():
            raise WarehouseNotFoundError(data.warehouse_id)
        if self.get_for_product(data.product_id, data.warehouse_id):
            raise ConflictError("Inventory already exists for this product in this warehouse")

        obj = Inventory(**data.model_dump())
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        logger.info(
            f"Inventory row {obj.id} created",
            extra={'extra_fields': {'product_id': obj.product_id, 'warehouse_id': obj.warehouse_id, 'quantity': obj.quantity}}
        )
        return obj

    def adjust_quantity(self, inventory_id: int, delta: int, reason: str) -> int:
        """
        Apply a signed change to one inventory row and record it.

        The change is a single conditional UPDATE, so two writers racing on
        the same row can never take it below zero. Returns the new quantity.
        """
        self.db.flush()
        result = self.db.execute(
            update(Inventory)
            .where(Inventory.id == inventory_id, Inventory.quantity + delta >= 0)
            .values(quantity=Inventory.quantity + delta)
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount == 0:
            current = self.db.query(Inventory.quantity).filter(Inventory.id == inventory_id).scalar()
            if current is None:
                raise NotFoundError(f"Inventory record {inventory_id} not found")
            raise InsufficientInventoryError(
                f"Cannot adjust inventory record {inventory_id} by {delta}: only {current} on hand"
            )

        quantity_after = self.db.query(Inventory.quantity).filter(Inventory.id == inventory_id).scalar()
        self.db.add(InventoryAdjustment(
            inventory_id=inventory_id,
            delta=delta,
            quantity_after=quantity_after,
            reason=reason,
        ))
        self.db.flush()
        logger.info(
            f"Inventory record {inventory_id} adjusted by {delta}",
            extra={'extra_fields': {'inventory_id': inventory_id, 'delta': delta,
                                    'quantity_after': quantity_after, 'reason': reason}}
        )
        return quantity_after

    def update(self, inventory_id: int, data: InventoryUpdate) -> Optional[Inventory]:
        obj = self.get(inventory_id)
        if not obj:
            return None
        if data.min_quantity is not None:
            obj.min_quantity = data.min_quantity
        if data.quantity is not None and data.quantity != obj.quantity:
            self.adjust_quantity(obj.id, data.quantity - obj.quantity, data.reason or MANUAL_COUNT_REASON)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def adjustments(self, inventory_id: int, limit: int = 100) -> List[InventoryAdjustment]:
        return (
            self.db.query(InventoryAdjustment)
            .filter(InventoryAdjustment.inventory_id == inventory_id)
            .order_by(InventoryAdjustment.created_at.desc(), InventoryAdjustment.id.desc())
            .limit(limit)
            .all()
        )
