from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, Response
from sqlalchemy.orm import Session

from cornshop.db import get_db
from cornshop.schemas.cart_schema import (
    AddItemIn,
    LoginIn,
    UpdateQuantityIn,
    WishlistAddIn,
)
from cornshop.services.cart_service import CartService, new_session_id
from cornshop.services.cart_store import CartException

router = APIRouter(prefix="/api/cart", tags=["cart"])

SESSION_COOKIE = "cart_session"


def get_cart_service(
    request: Request,
    response: Response,
    x_user_id: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> CartService:
    session_id = request.cookies.get(SESSION_COOKIE)
    if not session_id:
        session_id = new_session_id()
    response.set_cookie(SESSION_COOKIE, session_id, httponly=True, samesite="lax")
    try:
        return CartService(db, session_id, user_id=x_user_id)
    except CartException as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("", summary="Get cart")
def get_cart(svc: CartService = Depends(get_cart_service)):
    return svc.to_out()


@router.post("/items", summary="Add menu item to cart")
def add_item(payload: AddItemIn, svc: CartService = Depends(get_cart_service)):
    try:
        applied = svc.add_menu_item(payload.item_id, payload.qty)
    except CartException as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"applied": applied, "max_quantity_reached": not applied, "cart": svc.to_out()}


@router.patch("/items/{item_id}", summary="Set item quantity")
def update_quantity(
    item_id: str, payload: UpdateQuantityIn, svc: CartService = Depends(get_cart_service)
):
    applied = svc.update_quantity(item_id, payload.qty)
    return {"applied": applied, "max_quantity_reached": not applied, "cart": svc.to_out()}


@router.delete("/items/{item_id}", summary="Remove item")
def remove_item(item_id: str, svc: CartService = Depends(get_cart_service)):
    svc.remove_item(item_id)
    return svc.to_out()


@router.delete("", summary="Clear cart")
def clear_cart(svc: CartService = Depends(get_cart_service)):
    svc.clear()
    return svc.to_out()


@router.post("/login", summary="Sign in and merge the guest cart")
def login(payload: LoginIn, svc: CartService = Depends(get_cart_service)):
    try:
        merged = svc.login(payload.user_id)
    except CartException as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"merged": merged, "cart": svc.to_out()}


@router.post("/save-for-later", summary="Save the cart for later")
def save_for_later(svc: CartService = Depends(get_cart_service)):
    if not svc.save_for_later():
        raise HTTPException(status_code=400, detail="Cart is empty")
    return {"ok": True}


@router.post("/restore", summary="Restore the saved cart")
def restore(svc: CartService = Depends(get_cart_service)):
    if not svc.restore_saved():
        raise HTTPException(status_code=404, detail="No saved cart")
    return svc.to_out()


@router.get("/export", summary="Export cart as JSON")
def export(svc: CartService = Depends(get_cart_service)):
    return svc.export()


@router.get("/wishlist", summary="Get the wishlist")
def get_wishlist(svc: CartService = Depends(get_cart_service)):
    try:
        return svc.wishlist_out()
    except CartException as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/wishlist/items", summary="Add menu item to the wishlist")
def add_to_wishlist(payload: WishlistAddIn, svc: CartService = Depends(get_cart_service)):
    try:
        added = svc.add_to_wishlist(payload.item_id)
        return {"added": added, "wishlist": svc.wishlist_out()}
    except CartException as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/wishlist/items/{item_id}", summary="Remove item from the wishlist")
def remove_from_wishlist(item_id: str, svc: CartService = Depends(get_cart_service)):
    try:
        svc.remove_from_wishlist(item_id)
        return svc.wishlist_out()
    except CartException as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/wishlist", summary="Clear the wishlist")
def clear_wishlist(svc: CartService = Depends(get_cart_service)):
    try:
        svc.clear_wishlist()
        return svc.wishlist_out()
    except CartException as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/wishlist/items/{item_id}/move-to-cart", summary="Move wishlist item to cart")
def move_to_cart(item_id: str, svc: CartService = Depends(get_cart_service)):
    try:
        moved = svc.move_to_cart(item_id)
    except CartException as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not moved:
        raise HTTPException(status_code=404, detail="Item not in wishlist")
    return {"cart": svc.to_out(), "wishlist": svc.wishlist_out()}
