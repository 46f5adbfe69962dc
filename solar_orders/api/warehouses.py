from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from solar_orders.infrastructure.auth import require_admin
from solar_orders.infrastructure.db import get_db
from solar_orders.application.catalog_service import WarehouseService
from solar_orders.application.schemas import WarehouseCreate, WarehouseRead

router = APIRouter(prefix="/api/warehouses", tags=["warehouses"], dependencies=[Depends(require_admin)])

@router.get("/", response_model=list[WarehouseRead])
def list_warehouses(db: Session = Depends(get_db)):
    return WarehouseService(db).list()

@router.get("/{warehouse_id}", response_model=WarehouseRead)
def get_warehouse(warehouse_id: int, db: Session = Depends(get_db)):
    warehouse = WarehouseService(db).get(warehouse_id)
    if not warehouse:
        raise HTTPException(status_code=404, detail="Warehouse not found")
    return warehouse

@router.post("/", response_model=WarehouseRead, status_code=201)
def create_warehouse(payload: WarehouseCreate, db: Session = Depends(get_db)):
    return WarehouseService(db).create(payload)
