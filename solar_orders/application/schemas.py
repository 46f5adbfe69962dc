from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import Optional
from solar_orders.domain.models import BundlePricingType, OrderStatus

# Catalog

class ProductCreate(BaseModel):
    sku: Optional[str] = None
    name: str
    price: float = Field(ge=0)
    tax_percentage: float = Field(default=0, ge=0)
    is_active: bool = True
    description: Optional[str] = None
    is_bundle: bool = False
    bundle_pricing_type: BundlePricingType = BundlePricingType.CALCULATED
    bundle_discount_percentage: float = Field(default=0, ge=0, le=100)

class ProductRead(BaseModel):
    id: int
    sku: str
    name: str
    price: float
    tax_percentage: float
    is_active: bool
    description: Optional[str] = None
    is_bundle: bool
    bundle_pricing_type: str
    bundle_discount_percentage: float
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class BundleComponentCreate(BaseModel):
    component_product_id: int
    quantity: int = Field(default=1, gt=0)
    sort_order: int = 0

class BundleComponentRead(BaseModel):
    id: int
    bundle_product_id: int
    component_product_id: int
    quantity: int
    sort_order: int
    component_product_name: Optional[str] = None
    component_product_sku: Optional[str] = None
    component_product_price: Optional[float] = None

class BundlePricing(BaseModel):
    component_count: int
    total_component_price: float
    discount_percentage: float
    discount_amount: float
    calculated_price: float
    final_price: float
    pricing_type: str
    savings: float

class BundlePricingRead(BaseModel):
    bundle_items: list[BundleComponentRead]
    pricing: BundlePricing

class ComponentAvailability(BaseModel):
    component_id: int
    component_name: str
    component_sku: str
    required_quantity: int
    available_quantity: int
    bundles_available: int
    is_limiting: bool

class BundleInventoryRead(BaseModel):
    bundle_id: int
    bundle_name: str
    bundle_sku: str
    warehouse_id: Optional[int] = None
    available_quantity: int
    limiting_component: Optional[str] = None
    component_inventory: list[ComponentAvailability]

# Warehouses and stock

class WarehouseCreate(BaseModel):
    name: str
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None

class WarehouseRead(WarehouseCreate):
    id: int

    class Config:
        from_attributes = True

class InventoryCreate(BaseModel):
    product_id: int
    warehouse_id: int
    quantity: int = Field(ge=0)
    min_quantity: int = Field(default=0, ge=0)

class InventoryUpdate(BaseModel):
    quantity: Optional[int] = Field(default=None, ge=0)
    min_quantity: Optional[int] = Field(default=None, ge=0)
    reason: Optional[str] = None

class InventoryAdjust(BaseModel):
    delta: int
    reason: str = Field(min_length=1, max_length=255)

class InventoryRead(BaseModel):
    id: int
    product_id: int
    warehouse_id: int
    quantity: int
    min_quantity: int
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class InventoryPage(BaseModel):
    inventory: list[InventoryRead]
    page: int
    limit: int
    total: int
    total_pages: int

class InventoryAdjustmentRead(BaseModel):
    id: int
    inventory_id: int
    delta: int
    quantity_after: int
    reason: str
    created_at: datetime

    class Config:
        from_attributes = True

# Orders

class OrderItemCreate(BaseModel):
    product_id: int
    quantity: int = Field(gt=0)
    price: float = Field(ge=0)
    warehouse_id: Optional[int] = None

class OrderCreate(BaseModel):
    contact_id: int
    status: OrderStatus = OrderStatus.PROPOSED
    order_date: Optional[date] = None
    notes: Optional[str] = None
    items: list[OrderItemCreate]

class OrderUpdate(BaseModel):
    contact_id: Optional[int] = None
    status: Optional[OrderStatus] = None
    order_date: Optional[date] = None
    notes: Optional[str] = None
    # When given, replaces every line of the order
    items: Optional[list[OrderItemCreate]] = None

class OrderItemRead(BaseModel):
    id: int
    product_id: int
    quantity: int
    price: float
    warehouse_id: Optional[int] = None

    class Config:
        from_attributes = True

class OrderRead(BaseModel):
    id: int
    contact_id: int
    status: str
    total: float
    order_date: date
    notes: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    items: list[OrderItemRead]

    class Config:
        from_attributes = True

class MergedOrderData(BaseModel):
    contact_id: int
    status: OrderStatus
    total: float = Field(ge=0)
    order_date: date
    notes: Optional[str] = None
    # Assigned to merged lines that have no warehouse
    warehouse_id: Optional[int] = None

class OrderMergeRequest(BaseModel):
    # Optional here so missing ids produce a 400 rather than a schema error
    primary_order_id: Optional[int] = Field(default=None, alias="primaryOrderId")
    duplicate_order_id: Optional[int] = Field(default=None, alias="duplicateOrderId")
    merged_data: Optional[MergedOrderData] = Field(default=None, alias="mergedData")

    class Config:
        populate_by_name = True

class OrderMergeResponse(BaseModel):
    success: bool
    merged_order: OrderRead = Field(alias="mergedOrder")
    message: str

    class Config:
        populate_by_name = True
