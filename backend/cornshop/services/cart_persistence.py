import logging
from datetime import datetime, timedelta
from typing import Callable, Iterable, List, Optional

from pydantic import ValidationError

from cornshop.config import settings
from cornshop.repositories.slot_repo import SlotStorage
from cornshop.schemas.cart_schema import (
    CartLineItem,
    StoredCart,
    StoredWishlist,
    WishlistEntry,
)
from cornshop.services.cart_store import CartException, CartStore
from cornshop.services.pricing import calculate_subtotal
from cornshop.utils.clock import as_utc, utcnow

log = logging.getLogger(__name__)

GUEST_KEY = "cart_guest"
SAVED_SUFFIX = "_saved"
# would alias the guest slot
RESERVED_USER_ID = "guest"


def cart_key(user_id: Optional[str]) -> str:
    if user_id == RESERVED_USER_ID:
        raise CartException(f"'{RESERVED_USER_ID}' is not a valid user id")
    return f"cart_{user_id}" if user_id else GUEST_KEY


class CartPersistence:
    """
    Keeps a CartStore in a durable slot: ``cart_<user_id>`` for signed-in
    users, ``cart_guest`` otherwise.

    A stored cart older than ``ttl_hours`` is discarded on load rather than
    restored with stale prices. A slot that cannot be read is treated as no
    cart at all.
    """

    def __init__(
        self,
        storage: SlotStorage,
        user_id: Optional[str] = None,
        ttl_hours: Optional[int] = None,
    ):
        self.storage = storage
        self.user_id = user_id
        self._key = cart_key(user_id)
        self.ttl = timedelta(hours=ttl_hours or settings.CART_TTL_HOURS)

    @property
    def key(self) -> str:
        return self._key

    @property
    def saved_key(self) -> str:
        return self.key + SAVED_SUFFIX

    def _now(self) -> datetime:
        return utcnow()

    # -- slot encoding -----------------------------------------------------

    def _dump(self, items: List[CartLineItem]) -> str:
        state = StoredCart(
            items=items,
            total=calculate_subtotal(items),
            last_updated=self._now(),
        )
        return state.model_dump_json(by_alias=True)

    def _read(self, key: str, check_expiry: bool = True) -> Optional[List[CartLineItem]]:
        raw = self.storage.get(key)
        if raw is None:
            return None
        try:
            state = StoredCart.model_validate_json(raw)
        except (ValidationError, ValueError):
            log.warning("Discarding unreadable cart slot %s", key)
            self.storage.delete(key)
            return None
        if check_expiry and self._now() - as_utc(state.last_updated) > self.ttl:
            log.info("Discarding expired cart slot %s", key)
            self.storage.delete(key)
            return None
        return state.items

    # -- live cart ---------------------------------------------------------

    def load(self) -> List[CartLineItem]:
        return self._read(self.key) or []

    def save(self, store: CartStore):
        if store.is_empty:
            self.storage.delete(self.key)
        else:
            self.storage.set(self.key, self._dump(store.items()))

    def attach(self, store: CartStore) -> Callable[[], None]:
        """Write the slot on every mutation of ``store``."""
        return store.subscribe(self.save)

    # -- guest merge -------------------------------------------------------

    def load_guest_items(self) -> List[CartLineItem]:
        return self._read(GUEST_KEY) or []

    def merge_guest_cart(
        self, store: CartStore, guest_items: Optional[Iterable[CartLineItem]] = None
    ) -> bool:
        """
        Fold the guest cart into ``store`` once the shopper has signed in.

        Quantities of products already in the cart are summed, new products
        are appended; nothing is ever decreased. The guest slot is removed
        once its items are merged. Returns True when something was merged.
        """
        if not self.user_id:
            return False
        if guest_items is None:
            guest_items = self.load_guest_items()
        guest_items = list(guest_items)
        if not guest_items:
            return False

        merged = store.snapshot()
        by_id = {it.id: it for it in merged}
        for g in guest_items:
            found = by_id.get(g.id)
            if found:
                qty = found.quantity + g.quantity
                if found.max_quantity:
                    qty = max(found.quantity, min(qty, found.max_quantity))
                found.quantity = qty
            else:
                copy = g.model_copy(deep=True)
                merged.append(copy)
                by_id[copy.id] = copy
        store.replace(merged)
        self.storage.delete(GUEST_KEY)
        log.info("Merged %d guest line(s) into %s", len(guest_items), self.key)
        return True

    # -- save for later ----------------------------------------------------

    def has_saved_cart(self) -> bool:
        return self.storage.get(self.saved_key) is not None

    def save_for_later(self, store: CartStore) -> bool:
        if store.is_empty:
            return False
        self.storage.set(self.saved_key, self._dump(store.items()))
        return True

    def restore_saved(self, store: CartStore) -> bool:
        """Move the saved cart into ``store``, replacing its content."""
        items = self._read(self.saved_key, check_expiry=False)
        if items is None:
            return False
        store.replace(items)
        self.storage.delete(self.saved_key)
        return True

    def export(self, store: CartStore) -> dict:
        return {
            "items": [it.model_dump(by_alias=True) for it in store.items()],
            "total": calculate_subtotal(store.items()),
            "itemCount": store.item_count,
            "exportDate": self._now().isoformat(),
            "user": self.user_id or "guest",
        }


def wishlist_key(user_id: str) -> str:
    return f"wishlist_{user_id}"


class Wishlist:
    """
    Per-user list of products kept for later, newest first, in slot
    ``wishlist_<user_id>``. Wishlists do not expire and guests have none.
    """

    def __init__(self, storage: SlotStorage, user_id: str):
        if not user_id:
            raise CartException("Sign in to use the wishlist")
        self.storage = storage
        self.user_id = user_id
        self.key = wishlist_key(user_id)

    def items(self) -> List[WishlistEntry]:
        raw = self.storage.get(self.key)
        if raw is None:
            return []
        try:
            return StoredWishlist.model_validate_json(raw).items
        except (ValidationError, ValueError):
            log.warning("Discarding unreadable wishlist slot %s", self.key)
            self.storage.delete(self.key)
            return []

    def _write(self, entries: List[WishlistEntry]):
        if entries:
            self.storage.set(
                self.key, StoredWishlist(items=entries).model_dump_json(by_alias=True)
            )
        else:
            self.storage.delete(self.key)

    def is_in_wishlist(self, item_id: str) -> bool:
        return any(e.id == item_id for e in self.items())

    def add(self, entry: WishlistEntry) -> bool:
        """Returns False when the product is already on the list."""
        entries = self.items()
        if any(e.id == entry.id for e in entries):
            return False
        self._write([entry] + entries)
        return True

    def remove(self, item_id: str) -> bool:
        entries = self.items()
        kept = [e for e in entries if e.id != item_id]
        if len(kept) == len(entries):
            return False
        self._write(kept)
        return True

    def clear(self):
        self.storage.delete(self.key)

    def move_to_cart(
        self, item_id: str, store: CartStore, line: Optional[CartLineItem] = None
    ) -> bool:
        """
        Put one of ``item_id`` in the cart and drop it from the wishlist.
        ``line`` carries the current catalog data; without it the wishlist
        entry itself is used. Returns False when the product is not listed.
        """
        entry = next((e for e in self.items() if e.id == item_id), None)
        if entry is None:
            return False
        if line is None:
            line = CartLineItem(
                id=entry.id, name=entry.name, unit_price=entry.price, display=entry.display
            )
        store.add_item(line, 1)
        self.remove(item_id)
        return True
