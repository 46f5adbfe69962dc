"""Order line resolution and the stock side effects of order status changes.

Three pieces live here:

* ``process_order_items`` turns order lines into concrete stock lines,
  expanding bundle products into their components.
* ``update_inventory_for_order`` / ``restore_inventory_for_order`` apply the
  signed stock adjustments for a set of processed lines.
* ``validate_inventory_for_order`` checks availability without touching stock.

Only the move into or out of ``Complete`` ever changes stock; see
``apply_status_transition``.
"""
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from solar_orders.application.inventory_service import InventoryService
from solar_orders.core.logging_config import get_logger
from solar_orders.domain.errors import (
    BundleConfigurationError,
    InsufficientInventoryError,
    InventoryNotFoundError,
    OrderProcessingError,
    ProductNotFoundError,
)
from solar_orders.domain.models import (
    BundleComponent,
    BundlePricingType,
    OrderStatus,
    Product,
    Warehouse,
)

logger = get_logger(__name__)

FULFILLMENT_REASON = "Order fulfillment"
ROLLBACK_REASON = "Order status rollback"


@dataclass
class OrderProcessingOptions:
    """
    expand_bundles: replace a bundle line by one line per component.
    preserve_bundle_structure: when bundles are not expanded, still attach
        the expanded components to the bundle line for reference.
    """
    expand_bundles: bool = True
    preserve_bundle_structure: bool = False


@dataclass
class OrderLine:
    product_id: int
    quantity: int
    price: float
    warehouse_id: Optional[int] = None


@dataclass
class ProcessedOrderItem:
    product_id: int
    quantity: int
    price: float
    warehouse_id: Optional[int] = None
    is_bundle_component: bool = False
    parent_bundle_id: Optional[int] = None
    parent_bundle_name: Optional[str] = None
    components: list["ProcessedOrderItem"] = field(default_factory=list)


@dataclass
class InventoryValidationResult:
    valid: bool
    errors: list[str]


def get_bundle_components(db: Session, bundle_product_id: int) -> list[BundleComponent]:
    return (
        db.query(BundleComponent)
        .filter(BundleComponent.bundle_product_id == bundle_product_id)
        .order_by(BundleComponent.sort_order, BundleComponent.id)
        .all()
    )


def calculate_bundle_price(
    db: Session, bundle: Product, components: Optional[list[BundleComponent]] = None
) -> float:
    """
    Effective unit price of a bundle from current catalog prices.

    ``fixed`` bundles cost their own price. ``calculated`` bundles cost
    Σ(component price × component quantity) × (1 − discount/100): each
    component price is weighted by how many units one bundle holds, so a
    kit of two panels is priced as two panels rather than one.
    """
    if bundle.bundle_pricing_type == BundlePricingType.FIXED.value:
        return float(bundle.price)
    if components is None:
        components = get_bundle_components(db, bundle.id)
    total = sum(float(c.component.price) * c.quantity for c in components)
    discount = total * float(bundle.bundle_discount_percentage or 0) / 100
    return total - discount


def _expand_bundle(line, bundle: Product, components: list[BundleComponent]) -> list[ProcessedOrderItem]:
    expanded = []
    for component in components:
        if component.component.is_bundle:
            raise BundleConfigurationError(
                f"Bundle {bundle.name} contains another bundle "
                f"({component.component.name}); nested bundles are not supported"
            )
        expanded.append(ProcessedOrderItem(
            product_id=component.component_product_id,
            quantity=component.quantity * line.quantity,
            price=float(component.component.price),
            warehouse_id=line.warehouse_id,
            is_bundle_component=True,
            parent_bundle_id=bundle.id,
            parent_bundle_name=bundle.name,
        ))
    return expanded


def process_order_items(
    db: Session,
    items: Iterable,
    options: Optional[OrderProcessingOptions] = None,
) -> list[ProcessedOrderItem]:
    """
    Resolve order lines against the catalog.

    ``items`` may be ``OrderLine`` values or ``OrderItem`` rows; anything with
    ``product_id``, ``quantity``, ``price`` and ``warehouse_id`` works.
    Raises ProductNotFoundError before returning anything if a line refers
    to a missing product.
    """
    options = options or OrderProcessingOptions()
    processed: list[ProcessedOrderItem] = []

    for line in items:
        product = db.query(Product).filter(Product.id == line.product_id).first()
        if product is None:
            raise ProductNotFoundError(line.product_id)

        if not product.is_bundle:
            processed.append(ProcessedOrderItem(
                product_id=line.product_id,
                quantity=line.quantity,
                price=float(line.price),
                warehouse_id=line.warehouse_id,
            ))
            continue

        components = get_bundle_components(db, product.id)
        if options.expand_bundles:
            processed.extend(_expand_bundle(line, product, components))
        else:
            bundle_line = ProcessedOrderItem(
                product_id=product.id,
                quantity=line.quantity,
                price=calculate_bundle_price(db, product, components),
                warehouse_id=line.warehouse_id,
            )
            if options.preserve_bundle_structure:
                bundle_line.components = _expand_bundle(line, product, components)
            processed.append(bundle_line)

    return processed


def _required_quantities(items: Iterable[ProcessedOrderItem]) -> dict[tuple[int, Optional[int]], int]:
    # Lines sharing product and warehouse are summed so each row is adjusted once
    required: dict[tuple[int, Optional[int]], int] = defaultdict(int)
    for item in items:
        required[(item.product_id, item.warehouse_id)] += item.quantity
    return required


def update_inventory_for_order(db: Session, items: Iterable[ProcessedOrderItem]) -> None:
    """Consume stock for the given lines.

    Lines without a warehouse are drawn from every warehouse holding the
    product, in warehouse order, never taking a row below zero.
    """
    inventory = InventoryService(db)
    for (product_id, warehouse_id), required in _required_quantities(items).items():
        if warehouse_id is not None:
            row = inventory.get_for_product(product_id, warehouse_id)
            if row is None:
                raise InventoryNotFoundError(product_id, warehouse_id)
            inventory.adjust_quantity(row.id, -required, FULFILLMENT_REASON)
            continue

        remaining = required
        for row in inventory.list_for_product(product_id):
            if remaining <= 0:
                break
            take = min(row.quantity, remaining)
            if take > 0:
                inventory.adjust_quantity(row.id, -take, FULFILLMENT_REASON)
                remaining -= take
        if remaining > 0:
            raise InsufficientInventoryError(
                f"Insufficient inventory for product {product_id}. "
                f"Required: {required}, Available: {required - remaining}"
            )


def restore_inventory_for_order(db: Session, items: Iterable[ProcessedOrderItem]) -> None:
    """Give stock back for the given lines.

    A line without a warehouse is restored in full to the product's first
    inventory row, not spread back over the rows it was taken from.
    """
    inventory = InventoryService(db)
    for (product_id, warehouse_id), required in _required_quantities(items).items():
        if warehouse_id is not None:
            row = inventory.get_for_product(product_id, warehouse_id)
            if row is None:
                raise InventoryNotFoundError(product_id, warehouse_id)
        else:
            rows = inventory.list_for_product(product_id)
            if not rows:
                raise InventoryNotFoundError(product_id)
            row = rows[0]
        inventory.adjust_quantity(row.id, required, ROLLBACK_REASON)


def validate_inventory_for_order(
    db: Session, items: Iterable[ProcessedOrderItem]
) -> InventoryValidationResult:
    """Report every line whose stock is short, without changing anything."""
    inventory = InventoryService(db)
    errors: list[str] = []

    for (product_id, warehouse_id), required in _required_quantities(items).items():
        if warehouse_id is not None:
            row = inventory.get_for_product(product_id, warehouse_id)
            available = row.quantity if row else 0
        else:
            available = inventory.total_for_product(product_id)

        if available < required:
            product = db.query(Product).filter(Product.id == product_id).first()
            label = product.name if product else str(product_id)
            if warehouse_id is not None:
                warehouse = db.query(Warehouse).filter(Warehouse.id == warehouse_id).first()
                label = f"{label} ({warehouse.name if warehouse else warehouse_id})"
            errors.append(
                f"Insufficient inventory for {label}. Required: {required}, Available: {available}"
            )

    if errors:
        logger.warning(
            "Inventory validation failed",
            extra={'extra_fields': {'errors': errors}}
        )
    return InventoryValidationResult(valid=not errors, errors=errors)


def is_complete(status: Optional[str]) -> bool:
    return status == OrderStatus.COMPLETE.value


def apply_inventory_changes(
    db: Session,
    deduct: Iterable = (),
    restore: Iterable = (),
) -> Optional[str]:
    """
    Give back the ``restore`` lines, then consume the ``deduct`` lines.

    Bundles are expanded before stock is touched. Returns "deducted",
    "restored", "adjusted" when both happened, or None when there was
    nothing to do.
    """
    deduct = list(deduct)
    restore = list(restore)
    if restore:
        restore_inventory_for_order(db, process_order_items(db, restore))
    if deduct:
        update_inventory_for_order(db, process_order_items(db, deduct))
    if deduct and restore:
        return "adjusted"
    if deduct:
        return "deducted"
    if restore:
        return "restored"
    return None


def apply_status_transition(
    db: Session,
    previous_status: Optional[str],
    new_status: str,
    lines: Iterable,
    previous_lines: Optional[Iterable] = None,
) -> Optional[str]:
    """
    Deduct on a move into Complete, restore on a move out of it.

    ``lines`` are the order lines after the change; ``previous_lines`` are
    the lines that were deducted when the order entered Complete and default
    to ``lines``. Returns "deducted", "restored" or None when the Complete
    state did not change.
    """
    was_complete = is_complete(previous_status)
    now_complete = is_complete(new_status)
    if now_complete and not was_complete:
        return apply_inventory_changes(db, deduct=lines)
    if was_complete and not now_complete:
        restored = previous_lines if previous_lines is not None else lines
        return apply_inventory_changes(db, restore=restored)
    return None


def _best_effort(db: Session, order_id: int, apply, context: dict) -> Optional[str]:
    try:
        with db.begin_nested():
            action = apply()
    except (OrderProcessingError, SQLAlchemyError):
        # Bulk updates synchronized into loaded rows are not undone by the savepoint
        db.expire_all()
        logger.error(
            f"Inventory adjustment failed for order {order_id}; order change kept",
            exc_info=True,
            extra={'extra_fields': {'order_id': order_id, **context}}
        )
        return None

    if action:
        logger.info(
            f"Inventory {action} for order {order_id}",
            extra={'extra_fields': {'order_id': order_id, 'action': action, **context}}
        )
    return action


def apply_status_transition_best_effort(
    db: Session,
    order_id: int,
    previous_status: Optional[str],
    new_status: str,
    lines: Iterable,
    previous_lines: Optional[Iterable] = None,
) -> Optional[str]:
    """
    Run ``apply_status_transition`` inside a savepoint.

    A failure rolls back every adjustment made by this call, is logged, and
    leaves the surrounding order update intact.
    """
    return _best_effort(
        db,
        order_id,
        lambda: apply_status_transition(db, previous_status, new_status, lines, previous_lines),
        {'previous_status': previous_status, 'new_status': new_status},
    )


def apply_inventory_changes_best_effort(
    db: Session,
    order_id: int,
    deduct: Iterable = (),
    restore: Iterable = (),
) -> Optional[str]:
    """``apply_inventory_changes`` with the same savepoint and logging as above."""
    deduct = list(deduct)
    restore = list(restore)
    return _best_effort(
        db,
        order_id,
        lambda: apply_inventory_changes(db, deduct=deduct, restore=restore),
        {'deduct_lines': len(deduct), 'restore_lines': len(restore)},
    )
