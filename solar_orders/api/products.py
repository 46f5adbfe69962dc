from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import Optional
from solar_orders.infrastructure.auth import require_admin
from solar_orders.infrastructure.db import get_db
from solar_orders.application.catalog_service import ProductService
from solar_orders.application.schemas import (
    ProductCreate, ProductRead, BundleComponentCreate, BundleComponentRead,
    BundlePricingRead, BundleInventoryRead,
)

router = APIRouter(prefix="/api/products", tags=["products"], dependencies=[Depends(require_admin)])

@router.get("/", response_model=list[ProductRead])
def list_products(
    db: Session = Depends(get_db),
    is_bundle: Optional[bool] = Query(None, description="Only bundles (true) or only regular products (false)"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
):
    return ProductService(db).list(is_bundle=is_bundle, skip=skip, limit=limit)

@router.get("/{product_id}", response_model=ProductRead)
def get_product(product_id: int, db: Session = Depends(get_db)):
    product = ProductService(db).get(product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product

@router.post("/", response_model=ProductRead, status_code=201)
def create_product(payload: ProductCreate, db: Session = Depends(get_db)):
    return ProductService(db).create(payload)

@router.put("/{product_id}", response_model=ProductRead)
def update_product(product_id: int, payload: ProductCreate, db: Session = Depends(get_db)):
    product = ProductService(db).update(product_id, payload)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product

@router.delete("/{product_id}", status_code=204)
def delete_product(product_id: int, db: Session = Depends(get_db)):
    if not ProductService(db).delete(product_id):
        raise HTTPException(status_code=404, detail="Product not found")
    return None

@router.get("/{product_id}/bundle-items", response_model=list[BundleComponentRead])
def list_bundle_items(product_id: int, db: Session = Depends(get_db)):
    return ProductService(db).list_components(product_id)

@router.post("/{product_id}/bundle-items", response_model=BundleComponentRead, status_code=201)
def add_bundle_item(product_id: int, payload: BundleComponentCreate, db: Session = Depends(get_db)):
    return ProductService(db).add_component(product_id, payload)

@router.delete("/bundle-items/{item_id}", status_code=204)
def delete_bundle_item(item_id: int, db: Session = Depends(get_db)):
    ProductService(db).remove_component(item_id)
    return None

@router.get("/{product_id}/bundle-pricing", response_model=BundlePricingRead)
def bundle_pricing(product_id: int, db: Session = Depends(get_db)):
    return ProductService(db).bundle_pricing(product_id)

@router.get("/{product_id}/bundle-inventory", response_model=BundleInventoryRead)
def bundle_inventory(
    product_id: int,
    warehouse_id: Optional[int] = Query(None, description="Limit to one warehouse"),
    db: Session = Depends(get_db),
):
    return ProductService(db).bundle_inventory(product_id, warehouse_id)
