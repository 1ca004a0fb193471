from typing import Callable, Dict, List, Sequence

from cornshop.schemas.menu_schema import MenuFilters, MenuItemOut


def _matches_query(item: MenuItemOut, query: str) -> bool:
    return (
        query in item.name.lower()
        or query in (item.description or "").lower()
        or any(query in tag.lower() for tag in item.tags)
    )


_SORT_KEYS: Dict[str, Callable] = {
    "name": lambda it: it.name.lower(),
    "price": lambda it: it.price,
    "rating": lambda it: -(it.rating or 0),
    "newest": lambda it: -it.created_at.timestamp(),
}


def filter_and_sort(items: Sequence[MenuItemOut], filters: MenuFilters) -> List[MenuItemOut]:
    """
    Apply the menu filters in a fixed order (category, search, price range,
    tags, stock) and sort the survivors. The input sequence is left alone.
    """
    out = list(items)

    if filters.category != "all":
        out = [it for it in out if it.category == filters.category]

    if filters.search_query:
        q = filters.search_query.lower()
        out = [it for it in out if _matches_query(it, q)]

    lo, hi = filters.price_range
    out = [it for it in out if lo <= it.price <= hi]

    if filters.tags:
        wanted = set(filters.tags)
        out = [it for it in out if wanted.intersection(it.tags)]

    if filters.in_stock_only:
        out = [it for it in out if it.in_stock]

    out.sort(key=_SORT_KEYS[filters.sort_by])
    return out


def availability_text(item: MenuItemOut) -> str:
    return "In Stock" if item.in_stock else "Out of Stock"
