from datetime import date
from typing import Iterable, List, Optional
from sqlalchemy.orm import Session
from solar_orders.core.logging_config import get_logger
from solar_orders.domain.errors import (
    InsufficientInventoryError,
    OrderStateError,
    ProductNotFoundError,
    WarehouseNotFoundError,
)
from solar_orders.domain.models import Order, OrderItem, Product, Warehouse
from .order_processing import (
    OrderLine,
    apply_status_transition_best_effort,
    is_complete,
    process_order_items,
    validate_inventory_for_order,
)
from .schemas import OrderCreate, OrderItemCreate, OrderUpdate

logger = get_logger(__name__)


def lines_of(order: Order) -> List[OrderLine]:
    """Detached copy of an order's lines, safe to keep across mutations."""
    return [
        OrderLine(product_id=i.product_id, quantity=i.quantity, price=float(i.price), warehouse_id=i.warehouse_id)
        for i in order.items
    ]


def lines_total(lines: Iterable) -> float:
    return round(sum(float(line.price) * line.quantity for line in lines), 2)


def require_stock(db: Session, lines: Iterable) -> None:
    """Raise with one message per shortfall if the lines cannot be fulfilled."""
    result = validate_inventory_for_order(db, process_order_items(db, lines))
    if not result.valid:
        raise InsufficientInventoryError("Insufficient inventory", details=result.errors)


class OrderService:
    def __init__(self, db: Session):
        self.db = db

    def list(self, status: Optional[str] = None):
        query = self.db.query(Order)
        if status:
            query = query.filter(Order.status == status)
        return query.order_by(Order.order_date.desc(), Order.id.desc()).all()

    def get(self, order_id: int) -> Optional[Order]:
        return self.db.query(Order).filter(Order.id == order_id).first()

    def _check_references(self, items: List[OrderItemCreate]) -> None:
        for item in items:
            if not self.db.query(Product).filter(Product.id == item.product_id).first():
                raise ProductNotFoundError(item.product_id)
            if item.warehouse_id is not None and not self.db.query(Warehouse).filter(
                Warehouse.id == item.warehouse_id
            ).first():
                raise WarehouseNotFoundError(item.warehouse_id)

    @staticmethod
    def _build_items(items: List[OrderItemCreate]) -> List[OrderItem]:
        return [
            OrderItem(
                product_id=item.product_id,
                quantity=item.quantity,
                price=item.price,
                warehouse_id=item.warehouse_id,
            )
            for item in items
        ]

    def create(self, data: OrderCreate) -> Order:
        self._check_references(data.items)
        status = data.status.value
        if is_complete(status):
            require_stock(self.db, data.items)

        order = Order(
            contact_id=data.contact_id,
            status=status,
            total=lines_total(data.items),
            order_date=data.order_date or date.today(),
            notes=data.notes,
            items=self._build_items(data.items),
        )
        self.db.add(order)
        self.db.flush()  # assign id

        # Created straight into Complete: treat as the transition into it
        apply_status_transition_best_effort(self.db, order.id, None, status, data.items)

        self.db.commit()
        self.db.refresh(order)
        logger.info(
            f"Order {order.id} created",
            extra={'extra_fields': {'order_id': order.id, 'status': order.status, 'items': len(order.items)}}
        )
        return order

    def update(self, order_id: int, data: OrderUpdate) -> Optional[Order]:
        order = self.get(order_id)
        if not order:
            return None

        previous_status = order.status
        previous_lines = lines_of(order)
        new_status = data.status.value if data.status is not None else previous_status
        new_lines = data.items if data.items is not None else previous_lines

        if data.items is not None and is_complete(previous_status) and is_complete(new_status):
            # Stock for a Complete order was taken for its current lines
            raise OrderStateError(
                "Items of a Complete order cannot be replaced; move it out of Complete first"
            )
        if data.items is not None:
            self._check_references(data.items)
        if is_complete(new_status) and not is_complete(previous_status):
            require_stock(self.db, new_lines)

        if data.contact_id is not None:
            order.contact_id = data.contact_id
        if data.order_date is not None:
            order.order_date = data.order_date
        if data.notes is not None:
            order.notes = data.notes
        if data.items is not None:
            order.items = self._build_items(data.items)
            order.total = lines_total(data.items)
        order.status = new_status
        self.db.flush()

        apply_status_transition_best_effort(
            self.db, order.id, previous_status, new_status, new_lines, previous_lines
        )

        self.db.commit()
        self.db.refresh(order)
        if previous_status != new_status:
            logger.info(
                f"Order {order.id} moved from {previous_status} to {new_status}",
                extra={'extra_fields': {'order_id': order.id, 'from': previous_status, 'to': new_status}}
            )
        return order

    def delete(self, order_id: int) -> bool:
        order = self.get(order_id)
        if not order:
            return False
        self.db.delete(order)
        self.db.commit()
        return True
