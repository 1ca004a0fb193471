from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from cornshop.db import get_db
from cornshop.schemas.menu_schema import MenuFilters
from cornshop.services.menu_service import MenuService
from cornshop.utils.money import format_price

router = APIRouter(tags=["menu"])


def _menu_service(request: Request, db: Session) -> MenuService:
    return MenuService(db, cache=getattr(request.app.state, "catalog_cache", None))


@router.get("", summary="List menu items")
def list_menu(
    request: Request,
    category: str = Query("all"),
    q: str = Query("", description="search term"),
    min_price: float = Query(0.0, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    tags: Optional[List[str]] = Query(None),
    in_stock_only: bool = Query(False),
    sort_by: str = Query("name", pattern="^(name|price|rating|newest)$"),
    db: Session = Depends(get_db),
):
    filters = MenuFilters(
        category=category,
        search_query=q,
        price_range=(min_price, max_price if max_price is not None else float("inf")),
        tags=tags or [],
        in_stock_only=in_stock_only,
        sort_by=sort_by,
    )
    items = _menu_service(request, db).list_menu(filters)
    return {
        "items": [
            {**it.model_dump(mode="json"), "formatted_price": format_price(it.price)}
            for it in items
        ],
        "total": len(items),
    }


@router.get("/{item_id}", summary="Get menu item")
def get_menu_item(item_id: str, request: Request, db: Session = Depends(get_db)):
    item = _menu_service(request, db).get_item(item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Menu item not found")
    return item.model_dump(mode="json")
