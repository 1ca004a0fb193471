import logging
import threading
import time
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cornshop.config import settings
from cornshop.repositories.menu_repo import MenuRepository
from cornshop.schemas.menu_schema import MenuFilters, MenuItemOut
from cornshop.services.menu_filter import filter_and_sort

log = logging.getLogger(__name__)


class CatalogCache:
    """
    Last fetched catalog, guarded by a generation counter.

    Each refresh takes a token from ``begin_refresh``. A result is only
    installed if no newer refresh has been started since, so a slow fetch
    can never overwrite a fresher one.
    """

    def __init__(self, ttl_seconds: Optional[int] = None):
        self.ttl = settings.MENU_CACHE_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self._lock = threading.Lock()
        self._generation = 0
        self._items: List[MenuItemOut] = []
        self._loaded_at: Optional[float] = None

    def begin_refresh(self) -> int:
        with self._lock:
            self._generation += 1
            return self._generation

    def complete_refresh(self, token: int, items: Iterable[MenuItemOut]) -> bool:
        with self._lock:
            if token != self._generation:
                log.debug("complete_refresh(): dropping stale generation %d", token)
                return False
            self._items = list(items)
            self._loaded_at = time.monotonic()
            return True

    def invalidate(self):
        with self._lock:
            self._loaded_at = None

    @property
    def is_fresh(self) -> bool:
        return self._loaded_at is not None and time.monotonic() - self._loaded_at < self.ttl

    @property
    def items(self) -> List[MenuItemOut]:
        return list(self._items)


class MenuService:
    def __init__(self, db: Session, cache: Optional[CatalogCache] = None):
        self.db = db
        self.repo = MenuRepository(db)
        self.cache = cache or CatalogCache()

    def catalog(self) -> List[MenuItemOut]:
        if not self.cache.is_fresh:
            token = self.cache.begin_refresh()
            items = [MenuItemOut.model_validate(m) for m in self.repo.list_all()]
            self.cache.complete_refresh(token, items)
            return items
        return self.cache.items

    def list_menu(self, filters: MenuFilters) -> List[MenuItemOut]:
        return filter_and_sort(self.catalog(), filters)

    def get_item(self, item_id: str) -> Optional[MenuItemOut]:
        m = self.repo.get(item_id)
        return MenuItemOut.model_validate(m) if m else None


def _created_at(entry: Dict) -> Dict:
    raw = entry.get("createdAt", entry.get("created_at"))
    if raw is None:
        return {}
    if isinstance(raw, str):
        raw = datetime.fromisoformat(raw)
    return {"created_at": raw}


def import_catalog(db: Session, entries: Iterable[Dict]) -> int:
    """
    Upsert catalog entries (dicts shaped like the storefront's menu JSON).
    Prices may be display strings; they are parsed once, here.
    """
    repo = MenuRepository(db)
    n = 0
    try:
        for e in entries:
            repo.create_or_update(
                item_id=str(e["id"]),
                name=e["name"],
                price=e["price"],
                category=e.get("category", "mains"),
                description=e.get("description", ""),
                image=e.get("image"),
                tags=e.get("tags", []),
                in_stock=e.get("inStock", e.get("in_stock", True)),
                **{
                    k: e[src]
                    for k, src in (
                        ("rating", "rating"),
                        ("review_count", "reviewCount"),
                        ("allergens", "allergens"),
                        ("calories", "calories"),
                        ("prep_time", "prepTime"),
                        ("max_quantity", "maxQuantity"),
                    )
                    if src in e
                },
                **_created_at(e),
            )
            n += 1
        db.commit()
    except (KeyError, ValueError, SQLAlchemyError):
        db.rollback()
        raise
    log.info("Imported %d menu item(s)", n)
    return n
