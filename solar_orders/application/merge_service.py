"""Combining a duplicate order into a primary order.

The whole merge runs in one database transaction. Validation happens before
anything is written, so a rejected merge leaves both orders and all stock
untouched. The stock side effect runs in a savepoint of its own: if it fails
the merge is still committed and the failure is logged.
"""
from dataclasses import dataclass, replace
from typing import Optional
from sqlalchemy.orm import Session
from solar_orders.core.logging_config import get_logger
from solar_orders.domain.errors import MergeValidationError, OrderNotFoundError, WarehouseNotFoundError
from solar_orders.domain.models import Order, OrderItem, OrderStatus, Product, Warehouse
from .order_processing import OrderLine, apply_inventory_changes_best_effort, is_complete
from .order_service import OrderService, lines_of, lines_total, require_stock
from .schemas import MergedOrderData

logger = get_logger(__name__)

# Higher wins when two orders disagree on status
STATUS_RANK = {
    OrderStatus.CANCELLED.value: 0,
    OrderStatus.PROPOSED.value: 1,
    OrderStatus.FOLLOWED_UP.value: 2,
    OrderStatus.SCHEDULED.value: 3,
    OrderStatus.COMPLETE.value: 4,
    OrderStatus.PAID.value: 5,
}


@dataclass
class MergedLine:
    product_id: int
    quantity: int
    price: float
    warehouse_id: Optional[int] = None
    # Existing primary order row this line will be written back to
    item_id: Optional[int] = None


def reconcile_line_items(primary_items, duplicate_items) -> list[MergedLine]:
    """
    Fold the duplicate's lines into the primary's.

    A duplicate line joins a primary line only when both product and
    warehouse match: quantities add up and the higher unit price is kept.
    Anything else becomes a line of its own.
    """
    merged = [
        MergedLine(
            product_id=item.product_id,
            quantity=item.quantity,
            price=float(item.price),
            warehouse_id=item.warehouse_id,
            item_id=item.id,
        )
        for item in primary_items
    ]
    for item in duplicate_items:
        match = next(
            (m for m in merged if m.product_id == item.product_id and m.warehouse_id == item.warehouse_id),
            None,
        )
        if match:
            match.quantity += item.quantity
            match.price = max(match.price, float(item.price))
        else:
            merged.append(MergedLine(
                product_id=item.product_id,
                quantity=item.quantity,
                price=float(item.price),
                warehouse_id=item.warehouse_id,
            ))
    return merged


def _with_warehouse(lines: list[OrderLine], warehouse_id: Optional[int]) -> list[OrderLine]:
    if warehouse_id is None:
        return list(lines)
    return [
        replace(line, warehouse_id=warehouse_id) if line.warehouse_id is None else line
        for line in lines
    ]


def smart_merge_orders(primary: Order, duplicate: Order, lines: list[MergedLine]) -> MergedOrderData:
    """Merged order fields when the caller does not supply them."""
    status = max(primary.status, duplicate.status, key=lambda s: STATUS_RANK.get(s, 1))
    notes = []
    for note in (primary.notes, duplicate.notes):
        if note and note.strip() and note.strip() not in notes:
            notes.append(note.strip())
    return MergedOrderData(
        contact_id=primary.contact_id,
        status=OrderStatus(status),
        total=lines_total(lines),
        order_date=min(primary.order_date, duplicate.order_date),
        notes="\n\n".join(notes) or None,
    )


class OrderMergeService:
    def __init__(self, db: Session):
        self.db = db

    def _product_name(self, product_id: int) -> str:
        product = self.db.query(Product).filter(Product.id == product_id).first()
        return product.name if product else str(product_id)

    def merge(
        self,
        primary_order_id: Optional[int],
        duplicate_order_id: Optional[int],
        merged_data: Optional[MergedOrderData] = None,
    ) -> Order:
        if not primary_order_id or not duplicate_order_id:
            raise MergeValidationError("Missing required fields")
        if primary_order_id == duplicate_order_id:
            raise MergeValidationError("Cannot merge an order with itself")

        orders = OrderService(self.db)
        primary = orders.get(primary_order_id)
        duplicate = orders.get(duplicate_order_id)
        if not primary or not duplicate:
            raise OrderNotFoundError("One or both orders not found")

        primary_was_complete = is_complete(primary.status)
        duplicate_was_complete = is_complete(duplicate.status)
        primary_lines = lines_of(primary)
        duplicate_lines = lines_of(duplicate)
        lines = reconcile_line_items(primary.items, duplicate.items)
        fields = merged_data or smart_merge_orders(primary, duplicate, lines)

        fill_warehouse_id = fields.warehouse_id
        if fill_warehouse_id is not None:
            if not self.db.query(Warehouse).filter(Warehouse.id == fill_warehouse_id).first():
                raise WarehouseNotFoundError(fill_warehouse_id)
            for line in lines:
                if line.warehouse_id is None:
                    line.warehouse_id = fill_warehouse_id

        # Stock already out for an order that was Complete stays out while the
        # merged order is Complete and comes back when it is not
        new_status = fields.status.value
        deduct: list[OrderLine] = []
        restore: list[OrderLine] = []
        if is_complete(new_status):
            if not primary_was_complete:
                deduct += _with_warehouse(primary_lines, fill_warehouse_id)
            if not duplicate_was_complete:
                deduct += _with_warehouse(duplicate_lines, fill_warehouse_id)

            must_have_warehouse = deduct if primary_was_complete else lines
            unassigned = [line for line in must_have_warehouse if line.warehouse_id is None]
            if unassigned:
                raise MergeValidationError(
                    "All order items must have a warehouse assigned to complete the order",
                    details=[f"{self._product_name(line.product_id)} has no warehouse" for line in unassigned],
                )
            if deduct:
                require_stock(self.db, deduct)
        else:
            if primary_was_complete:
                restore += primary_lines
            if duplicate_was_complete:
                restore += duplicate_lines

        existing = {item.id: item for item in primary.items}
        for line in lines:
            if line.item_id is not None:
                item = existing[line.item_id]
                item.quantity = line.quantity
                item.price = line.price
                item.warehouse_id = line.warehouse_id
            else:
                primary.items.append(OrderItem(
                    product_id=line.product_id,
                    quantity=line.quantity,
                    price=line.price,
                    warehouse_id=line.warehouse_id,
                ))

        primary.contact_id = fields.contact_id
        primary.status = new_status
        primary.total = fields.total
        primary.order_date = fields.order_date
        primary.notes = fields.notes
        self.db.flush()

        apply_inventory_changes_best_effort(self.db, primary.id, deduct=deduct, restore=restore)

        self.db.delete(duplicate)
        self.db.commit()
        self.db.refresh(primary)

        logger.info(
            f"Order {duplicate_order_id} merged into {primary_order_id}",
            extra={'extra_fields': {
                'primary_order_id': primary_order_id,
                'duplicate_order_id': duplicate_order_id,
                'status': new_status,
                'items': len(primary.items),
                'deducted_lines': len(deduct),
                'restored_lines': len(restore),
            }}
        )
        return primary
