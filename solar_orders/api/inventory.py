import math
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import Optional
from solar_orders.infrastructure.auth import require_admin
from solar_orders.infrastructure.db import get_db
from solar_orders.application.inventory_service import InventoryService
from solar_orders.application.schemas import (
    InventoryAdjust, InventoryAdjustmentRead, InventoryCreate, InventoryPage,
    InventoryRead, InventoryUpdate,
)

router = APIRouter(prefix="/api/inventory", tags=["inventory"], dependencies=[Depends(require_admin)])

@router.get("/", response_model=InventoryPage)
def list_inventory(
    db: Session = Depends(get_db),
    warehouse_id: Optional[int] = Query(None),
    search: Optional[str] = Query(None, max_length=100, description="Match on product name or SKU"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
):
    rows, total = InventoryService(db).list(
        warehouse_id=warehouse_id, search=search, skip=(page - 1) * limit, limit=limit
    )
    return InventoryPage(
        inventory=[InventoryRead.model_validate(r) for r in rows],
        page=page,
        limit=limit,
        total=total,
        total_pages=math.ceil(total / limit),
    )

@router.get("/low-stock", response_model=list[InventoryRead])
def low_stock(limit: int = Query(10, ge=1, le=500), db: Session = Depends(get_db)):
    return InventoryService(db).low_stock(limit)

@router.post("/", response_model=InventoryRead, status_code=201)
def create_inventory(payload: InventoryCreate, db: Session = Depends(get_db)):
    return InventoryService(db).create(payload)

@router.get("/{inventory_id}", response_model=InventoryRead)
def get_inventory(inventory_id: int, db: Session = Depends(get_db)):
    inventory = InventoryService(db).get(inventory_id)
    if not inventory:
        raise HTTPException(status_code=404, detail="Inventory not found")
    return inventory

@router.put("/{inventory_id}", response_model=InventoryRead)
def update_inventory(inventory_id: int, payload: InventoryUpdate, db: Session = Depends(get_db)):
    inventory = InventoryService(db).update(inventory_id, payload)
    if not inventory:
        raise HTTPException(status_code=404, detail="Inventory not found")
    return inventory

@router.post("/{inventory_id}/adjust", response_model=InventoryRead)
def adjust_inventory(inventory_id: int, payload: InventoryAdjust, db: Session = Depends(get_db)):
    service = InventoryService(db)
    service.adjust_quantity(inventory_id, payload.delta, payload.reason)
    db.commit()
    return service.get(inventory_id)

@router.get("/{inventory_id}/adjustments", response_model=list[InventoryAdjustmentRead])
def list_adjustments(inventory_id: int, db: Session = Depends(get_db)):
    if not InventoryService(db).get(inventory_id):
        raise HTTPException(status_code=404, detail="Inventory not found")
    return InventoryService(db).adjustments(inventory_id)
