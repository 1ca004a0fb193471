from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from cornshop.models.menu_item import MenuItem
from cornshop.utils.money import to_amount


class MenuRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, item_id: str) -> Optional[MenuItem]:
        return self.db.query(MenuItem).filter(MenuItem.id == item_id).first()

    def list_all(self) -> List[MenuItem]:
        return self.db.query(MenuItem).order_by(MenuItem.created_at, MenuItem.id).all()

    def create_or_update(
        self,
        item_id: str,
        name: str,
        price,
        category: str,
        description: str = "",
        image: str = None,
        tags: Iterable[str] = (),
        in_stock: bool = True,
        **extra,
    ) -> MenuItem:
        """
        Upsert a catalog entry. ``price`` may be a display string such as
        ``"RM 7.90"``; it is parsed here, once, and stored as a float.
        """
        m = self.get(item_id)
        if not m:
            m = MenuItem(id=item_id)
            self.db.add(m)
        m.name = name
        m.price = to_amount(price)
        m.category = category
        m.description = description or ""
        m.image = image
        m.tags = list(tags)
        m.in_stock = in_stock
        for k in (
            "rating",
            "review_count",
            "allergens",
            "calories",
            "prep_time",
            "max_quantity",
            "created_at",
        ):
            if k in extra:
                setattr(m, k, extra[k])
        if m.allergens is None:
            m.allergens = []
        self.db.flush()
        return m
