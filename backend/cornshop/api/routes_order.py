import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from sqlalchemy.orm import Session

from cornshop.api.routes_cart import get_cart_service
from cornshop.db import get_db
from cornshop.schemas.order_schema import CancelIn, CheckoutIn, StatusUpdateIn
from cornshop.services.cart_service import CartService
from cornshop.services.order_lifecycle import InvalidTransition
from cornshop.services.order_service import (
    OrderNotFound,
    OrderService,
    OrderServiceException,
)

log = logging.getLogger(__name__)

router = APIRouter(tags=["orders"])


@router.post("", summary="Check out the current cart")
def submit_order(
    payload: CheckoutIn,
    cart: CartService = Depends(get_cart_service),
    db: Session = Depends(get_db),
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key"),
):
    svc = OrderService(db)
    try:
        order = svc.submit_order(
            cart.store.items(),
            payload,
            user_id=cart.user_id,
            idempotency_key=idempotency_key,
        )
    except OrderServiceException as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not svc.replayed:
        cart.clear()
    return svc.to_out(order)


@router.get("", summary="Order history")
def list_orders(
    user_id: str = Query(...),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    svc = OrderService(db)
    return [svc.to_out(o) for o in svc.list_orders(user_id, limit=limit)]


@router.get("/{order_number}", summary="Get order")
def get_order(order_number: str, db: Session = Depends(get_db)):
    svc = OrderService(db)
    try:
        return svc.to_out(svc.get_order(order_number))
    except OrderNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/{order_number}/tracking", summary="Tracking timeline")
def tracking(order_number: str, db: Session = Depends(get_db)):
    try:
        return OrderService(db).tracking(order_number)
    except OrderNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/{order_number}/status", summary="Push a status update")
def update_status(order_number: str, payload: StatusUpdateIn, db: Session = Depends(get_db)):
    svc = OrderService(db)
    try:
        order = svc.apply_status_update(
            order_number, payload.status, message=payload.message, location=payload.location
        )
    except OrderNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidTransition as e:
        raise HTTPException(status_code=409, detail=str(e))
    return svc.to_out(order)


@router.post("/{order_number}/cancel", summary="Cancel an order")
def cancel_order(
    order_number: str, payload: Optional[CancelIn] = None, db: Session = Depends(get_db)
):
    svc = OrderService(db)
    try:
        order = svc.cancel_order(order_number, reason=payload.reason if payload else None)
    except OrderNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return svc.to_out(order)
