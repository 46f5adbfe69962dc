from typing import List, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from solar_orders.core.logging_config import get_logger
from solar_orders.domain.errors import (
    BundleConfigurationError,
    ConflictError,
    NotFoundError,
    ProductNotFoundError,
)
from solar_orders.domain.models import BundleComponent, BundlePricingType, Product, Warehouse
from .inventory_service import InventoryService
from .order_processing import calculate_bundle_price, get_bundle_components
from .schemas import (
    BundleComponentCreate,
    BundleComponentRead,
    BundleInventoryRead,
    BundlePricing,
    BundlePricingRead,
    ComponentAvailability,
    ProductCreate,
    WarehouseCreate,
)

logger = get_logger(__name__)

class ProductService:
    def __init__(self, db: Session):
        self.db = db

    def _generate_sku(self) -> str:
        """Next sequential SKU in the SKU#### format"""
        latest_product = self.db.query(Product).filter(
            Product.sku.like('SKU%')
        ).order_by(Product.sku.desc()).first()

        next_num = 1
        if latest_product and latest_product.sku:
            try:
                next_num = int(latest_product.sku.replace('SKU', '')) + 1
            except ValueError:
                next_num = 1
        return f"SKU{next_num:04d}"

    def list(self, is_bundle: Optional[bool] = None, skip: int = 0, limit: int = 100):
        query = self.db.query(Product)
        if is_bundle is not None:
            query = query.filter(Product.is_bundle == is_bundle)
        return query.order_by(Product.id).offset(skip).limit(limit).all()

    def get(self, product_id: int) -> Optional[Product]:
        return self.db.query(Product).filter(Product.id == product_id).first()

    def create(self, data: ProductCreate) -> Product:
        product_data = data.model_dump()
        product_data['bundle_pricing_type'] = data.bundle_pricing_type.value
        if not product_data.get('sku'):
            product_data['sku'] = self._generate_sku()
        obj = Product(**product_data)
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def update(self, product_id: int, data: ProductCreate) -> Optional[Product]:
        product = self.get(product_id)
        if not product:
            return None
        if product.is_bundle and not data.is_bundle and product.bundle_components:
            raise BundleConfigurationError("Remove the bundle components before turning a bundle into a regular product")
        if data.is_bundle and not product.is_bundle and self._used_as_component(product_id):
            raise BundleConfigurationError("A product used as a bundle component cannot become a bundle")

        product.name = data.name
        product.price = data.price
        product.tax_percentage = data.tax_percentage
        product.is_active = data.is_active
        product.description = data.description
        product.is_bundle = data.is_bundle
        product.bundle_pricing_type = data.bundle_pricing_type.value
        product.bundle_discount_percentage = data.bundle_discount_percentage
        if data.sku:
            product.sku = data.sku
        self.db.commit()
        self.db.refresh(product)
        return product

    def delete(self, product_id: int) -> bool:
        product = self.get(product_id)
        if not product:
            return False
        self.db.delete(product)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("Product is referenced by existing orders")
        return True

    def _used_as_component(self, product_id: int) -> bool:
        return self.db.query(BundleComponent).filter(
            BundleComponent.component_product_id == product_id
        ).first() is not None

    def _require_bundle(self, product_id: int) -> Product:
        bundle = self.get(product_id)
        if bundle is None:
            raise ProductNotFoundError(product_id)
        if not bundle.is_bundle:
            raise BundleConfigurationError("Product is not a bundle")
        return bundle

    @staticmethod
    def _component_read(component: BundleComponent) -> BundleComponentRead:
        return BundleComponentRead(
            id=component.id,
            bundle_product_id=component.bundle_product_id,
            component_product_id=component.component_product_id,
            quantity=component.quantity,
            sort_order=component.sort_order,
            component_product_name=component.component.name,
            component_product_sku=component.component.sku,
            component_product_price=float(component.component.price),
        )

    def list_components(self, bundle_id: int) -> List[BundleComponentRead]:
        self._require_bundle(bundle_id)
        return [self._component_read(c) for c in get_bundle_components(self.db, bundle_id)]

    def add_component(self, bundle_id: int, data: BundleComponentCreate) -> BundleComponentRead:
        bundle = self._require_bundle(bundle_id)
        if data.component_product_id == bundle_id:
            raise BundleConfigurationError("A bundle cannot contain itself")
        component = self.get(data.component_product_id)
        if component is None:
            raise ProductNotFoundError(data.component_product_id)
        if component.is_bundle:
            raise BundleConfigurationError("Bundle components must be regular products, not bundles")
        existing = self.db.query(BundleComponent).filter(
            BundleComponent.bundle_product_id == bundle_id,
            BundleComponent.component_product_id == data.component_product_id,
        ).first()
        if existing:
            raise BundleConfigurationError(f"{component.name} is already part of {bundle.name}")

        obj = BundleComponent(bundle_product_id=bundle_id, **data.model_dump())
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        logger.info(
            f"Component {component.id} added to bundle {bundle_id}",
            extra={'extra_fields': {'bundle_id': bundle_id, 'component_id': component.id, 'quantity': obj.quantity}}
        )
        return self._component_read(obj)

    def remove_component(self, item_id: int) -> None:
        obj = self.db.query(BundleComponent).filter(BundleComponent.id == item_id).first()
        if obj is None:
            raise NotFoundError("Bundle item not found")
        self.db.delete(obj)
        self.db.commit()

    def bundle_pricing(self, bundle_id: int) -> BundlePricingRead:
        bundle = self._require_bundle(bundle_id)
        components = get_bundle_components(self.db, bundle_id)
        total = sum(float(c.component.price) * c.quantity for c in components)
        discount_percentage = float(bundle.bundle_discount_percentage or 0)

        if bundle.bundle_pricing_type == BundlePricingType.CALCULATED.value:
            calculated = calculate_bundle_price(self.db, bundle, components)
            discount_amount = total - calculated
            final_price = calculated
        else:
            calculated = total
            discount_amount = 0.0
            final_price = float(bundle.price)

        return BundlePricingRead(
            bundle_items=[self._component_read(c) for c in components],
            pricing=BundlePricing(
                component_count=len(components),
                total_component_price=round(total, 2),
                discount_percentage=discount_percentage,
                discount_amount=round(discount_amount, 2),
                calculated_price=round(calculated, 2),
                final_price=round(final_price, 2),
                pricing_type=bundle.bundle_pricing_type,
                savings=round(discount_amount, 2),
            ),
        )

    def bundle_inventory(self, bundle_id: int, warehouse_id: Optional[int] = None) -> BundleInventoryRead:
        """How many complete bundles current stock can make, and what limits it."""
        bundle = self._require_bundle(bundle_id)
        inventory = InventoryService(self.db)
        components = get_bundle_components(self.db, bundle_id)

        breakdown = []
        for c in components:
            available = inventory.total_for_product(c.component_product_id, warehouse_id)
            breakdown.append(ComponentAvailability(
                component_id=c.component_product_id,
                component_name=c.component.name,
                component_sku=c.component.sku,
                required_quantity=c.quantity,
                available_quantity=available,
                bundles_available=available // c.quantity,
                is_limiting=False,
            ))

        available_bundles = min((b.bundles_available for b in breakdown), default=0)
        limiting = None
        for b in breakdown:
            if b.bundles_available == available_bundles:
                b.is_limiting = True
                limiting = limiting or b.component_name

        return BundleInventoryRead(
            bundle_id=bundle.id,
            bundle_name=bundle.name,
            bundle_sku=bundle.sku,
            warehouse_id=warehouse_id,
            available_quantity=available_bundles,
            limiting_component=limiting,
            component_inventory=breakdown,
        )


class WarehouseService:
    def __init__(self, db: Session):
        self.db = db

    def list(self):
        return self.db.query(Warehouse).order_by(Warehouse.name).all()

    def get(self, warehouse_id: int) -> Optional[Warehouse]:
        return self.db.query(Warehouse).filter(Warehouse.id == warehouse_id).first()

    def create(self, data: WarehouseCreate) -> Warehouse:
        obj = Warehouse(**data.model_dump())
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj
