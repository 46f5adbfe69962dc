"""Domain exceptions raised by order processing.

Each error knows the HTTP status it maps to; the API layer turns them into
``{"error": ..., "details": [...]}`` responses in one place.
"""

from typing import Optional


class OrderProcessingError(Exception):
    status_code = 400

    def __init__(self, message: str, details: Optional[list[str]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or []


class NotFoundError(OrderProcessingError):
    status_code = 404


class ProductNotFoundError(NotFoundError):
    def __init__(self, product_id: int):
        super().__init__(f"Product with ID {product_id} not found")
        self.product_id = product_id


class OrderNotFoundError(NotFoundError):
    pass


class WarehouseNotFoundError(NotFoundError):
    def __init__(self, warehouse_id: int):
        super().__init__(f"Warehouse with ID {warehouse_id} not found")
        self.warehouse_id = warehouse_id


class InventoryNotFoundError(NotFoundError):
    def __init__(self, product_id: int, warehouse_id: Optional[int] = None):
        if warehouse_id is None:
            message = f"No inventory records for product {product_id}"
        else:
            message = f"No inventory record for product {product_id} in warehouse {warehouse_id}"
        super().__init__(message)
        self.product_id = product_id
        self.warehouse_id = warehouse_id


class InsufficientInventoryError(OrderProcessingError):
    """Stock check failed, either up front or at adjustment time."""


class BundleConfigurationError(OrderProcessingError):
    pass


class MergeValidationError(OrderProcessingError):
    pass


class ConflictError(OrderProcessingError):
    status_code = 409


class OrderStateError(OrderProcessingError):
    """The requested change is not allowed in the order's current status."""
