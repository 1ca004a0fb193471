import uuid
from typing import Optional

from sqlalchemy.orm import Session

from cornshop.models.menu_item import MenuItem
from cornshop.repositories.menu_repo import MenuRepository
from cornshop.repositories.slot_repo import SlotRepository
from cornshop.schemas.cart_schema import (
    CartLineItem,
    CartLineOut,
    CartOut,
    CartSummary,
    DisplayMetadata,
    WishlistEntry,
    WishlistOut,
)
from cornshop.services.cart_persistence import CartPersistence, Wishlist
from cornshop.services.cart_store import CartException, CartStore
from cornshop.services.pricing import cart_summary, line_total
from cornshop.utils.clock import utcnow
from cornshop.utils.money import format_price, round_money


def new_session_id() -> str:
    return uuid.uuid4().hex


class CartService:
    """
    The cart of one browser session, loaded from and written back to that
    session's storage slots.
    """

    def __init__(self, db: Session, session_id: str, user_id: Optional[str] = None):
        self.db = db
        self.session_id = session_id
        self.menu_repo = MenuRepository(db)
        self.storage = SlotRepository(db, scope=session_id)
        self._detach = None
        self._open(user_id)

    def _open(self, user_id: Optional[str]):
        persistence = CartPersistence(self.storage, user_id=user_id)
        if self._detach:
            self._detach()
        self.user_id = user_id
        self.persistence = persistence
        self.store = CartStore(self.persistence.load())
        self._detach = self.persistence.attach(self.store)

    def _menu_item(self, item_id: str, require_stock: bool = True) -> MenuItem:
        m = self.menu_repo.get(item_id)
        if not m:
            raise CartException(f"Menu item not found: {item_id}")
        if require_stock and not m.in_stock:
            raise CartException(f"Menu item out of stock: {item_id}")
        return m

    def _display(self, m: MenuItem) -> DisplayMetadata:
        return DisplayMetadata(image=m.image, description=m.description, category=m.category)

    def _line(self, item_id: str) -> CartLineItem:
        m = self._menu_item(item_id)
        return CartLineItem(
            id=m.id,
            name=m.name,
            unit_price=m.price,
            quantity=1,
            max_quantity=m.max_quantity,
            display=self._display(m),
        )

    def add_menu_item(self, item_id: str, qty: int = 1) -> bool:
        return self.store.add_item(self._line(item_id), qty)

    def update_quantity(self, item_id: str, qty: int) -> bool:
        return self.store.update_quantity(item_id, qty)

    def remove_item(self, item_id: str):
        self.store.remove_item(item_id)

    def clear(self):
        self.store.clear()

    def login(self, user_id: str) -> bool:
        """Switch to the user's slot and fold the guest cart into it."""
        guest_items = self.persistence.load_guest_items()
        self._open(user_id)
        return self.persistence.merge_guest_cart(self.store, guest_items)

    def save_for_later(self) -> bool:
        return self.persistence.save_for_later(self.store)

    def restore_saved(self) -> bool:
        return self.persistence.restore_saved(self.store)

    def export(self) -> dict:
        return self.persistence.export(self.store)

    # -- wishlist ----------------------------------------------------------

    def wishlist(self) -> Wishlist:
        return Wishlist(self.storage, self.user_id)

    def add_to_wishlist(self, item_id: str) -> bool:
        m = self._menu_item(item_id, require_stock=False)
        entry = WishlistEntry(
            id=m.id, name=m.name, price=m.price, display=self._display(m), date_added=utcnow()
        )
        return self.wishlist().add(entry)

    def remove_from_wishlist(self, item_id: str) -> bool:
        return self.wishlist().remove(item_id)

    def clear_wishlist(self):
        self.wishlist().clear()

    def move_to_cart(self, item_id: str) -> bool:
        """Sold-out or withdrawn products stay on the wishlist."""
        wishlist = self.wishlist()
        if not wishlist.is_in_wishlist(item_id):
            return False
        return wishlist.move_to_cart(item_id, self.store, self._line(item_id))

    def wishlist_out(self) -> WishlistOut:
        entries = self.wishlist().items()
        return WishlistOut(user_id=self.user_id, items=entries, count=len(entries))

    def summary(self, delivery_method: str = "delivery") -> CartSummary:
        return cart_summary(self.store.items(), delivery_method=delivery_method)

    def to_out(self) -> CartOut:
        summary = self.summary()
        return CartOut(
            session_id=self.session_id,
            user_id=self.user_id,
            items=[
                CartLineOut(
                    id=it.id,
                    name=it.name,
                    unit_price=it.unit_price,
                    quantity=it.quantity,
                    max_quantity=it.max_quantity,
                    line_total=round_money(line_total(it)),
                    display=it.display,
                )
                for it in self.store.items()
            ],
            summary=CartSummary(
                subtotal=round_money(summary.subtotal),
                delivery_fee=round_money(summary.delivery_fee),
                tax=round_money(summary.tax),
                total=round_money(summary.total),
                item_count=summary.item_count,
                unique_item_count=summary.unique_item_count,
            ),
            formatted_total=format_price(summary.total),
            has_saved_cart=self.persistence.has_saved_cart(),
        )
