from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from typing import Optional
from solar_orders.infrastructure.auth import require_admin
from solar_orders.infrastructure.db import get_db
from solar_orders.application.merge_service import OrderMergeService
from solar_orders.application.order_service import OrderService
from solar_orders.application.schemas import (
    OrderCreate, OrderRead, OrderUpdate, OrderMergeRequest, OrderMergeResponse,
)
from solar_orders.core.logging_config import get_logger
from solar_orders.domain.errors import OrderProcessingError
from solar_orders.domain.models import OrderStatus

logger = get_logger(__name__)

router = APIRouter(prefix="/api/orders", tags=["orders"], dependencies=[Depends(require_admin)])

@router.get("/", response_model=list[OrderRead])
def list_orders(status: Optional[OrderStatus] = Query(None), db: Session = Depends(get_db)):
    return OrderService(db).list(status.value if status else None)

@router.get("/{order_id}", response_model=OrderRead)
def get_order(order_id: int, db: Session = Depends(get_db)):
    order = OrderService(db).get(order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order

@router.post("/", response_model=OrderRead, status_code=201)
def create_order(payload: OrderCreate, db: Session = Depends(get_db)):
    return OrderService(db).create(payload)

@router.post("/merge", response_model=OrderMergeResponse)
def merge_orders(payload: OrderMergeRequest, db: Session = Depends(get_db)):
    """Fold a duplicate order into a primary order and delete the duplicate."""
    try:
        order = OrderMergeService(db).merge(
            payload.primary_order_id, payload.duplicate_order_id, payload.merged_data
        )
    except OrderProcessingError:
        raise
    except Exception:
        logger.error("Error during merge operation", exc_info=True)
        return JSONResponse(status_code=500, content={"error": "Failed to merge orders. Please try again."})

    return OrderMergeResponse(
        success=True,
        merged_order=OrderRead.model_validate(order),
        message="Orders merged successfully",
    )

@router.put("/{order_id}", response_model=OrderRead)
def update_order(order_id: int, payload: OrderUpdate, db: Session = Depends(get_db)):
    order = OrderService(db).update(order_id, payload)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order

@router.delete("/{order_id}", status_code=204)
def delete_order(order_id: int, db: Session = Depends(get_db)):
    if not OrderService(db).delete(order_id):
        raise HTTPException(status_code=404, detail="Order not found")
    return None
