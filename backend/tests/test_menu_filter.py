from datetime import datetime, timezone

from cornshop.schemas.menu_schema import MenuFilters, MenuItemOut
from cornshop.services.menu_filter import availability_text, filter_and_sort
from cornshop.services.menu_service import CatalogCache, MenuService


def item(id, name, price, category, day, **kw):
    return MenuItemOut(
        id=id,
        name=name,
        price=price,
        category=category,
        created_at=datetime(2025, 3, day, tzinfo=timezone.utc),
        **kw,
    )


CATALOG = [
    item("m1", "Corn Burger", "RM 14.90", "mains", 1, tags=["bestseller"], rating=4.5),
    item("m2", "Spicy Corn Rice", 11.50, "mains", 2, tags=["spicy"], rating=4.8,
         description="Fried rice with chilli corn"),
    item("d1", "Corn Pudding", "RM 6.90", "desserts", 3, tags=["sweet"], rating=4.1),
    item("d2", "Corn Ice Cream", "RM 5.50", "desserts", 4, in_stock=False, rating=4.9),
    item("d3", "Corn Cake", "RM 8.00", "desserts", 5, tags=["sweet", "bestseller"]),
    item("b1", "Corn Milk", "RM 4.50", "beverages", 6, tags=["cold"], rating=3.9),
]


def ids(items):
    return [it.id for it in items]


def test_defaults_keep_everything_sorted_by_name():
    out = filter_and_sort(CATALOG, MenuFilters())
    assert ids(out) == ["m1", "d3", "d2", "b1", "d1", "m2"]


def test_category_sorted_by_price():
    out = filter_and_sort(CATALOG, MenuFilters(category="desserts", sort_by="price"))
    assert ids(out) == ["d2", "d1", "d3"]


def test_search_matches_name_description_and_tags():
    assert ids(filter_and_sort(CATALOG, MenuFilters(search_query="PUDDING"))) == ["d1"]
    assert ids(filter_and_sort(CATALOG, MenuFilters(search_query="chilli"))) == ["m2"]
    assert ids(filter_and_sort(CATALOG, MenuFilters(search_query="cold"))) == ["b1"]


def test_price_range_is_inclusive():
    out = filter_and_sort(CATALOG, MenuFilters(price_range=(5.5, 8.0), sort_by="price"))
    assert ids(out) == ["d2", "d1", "d3"]


def test_any_tag_matches():
    out = filter_and_sort(CATALOG, MenuFilters(tags=["bestseller", "cold"]))
    assert ids(out) == ["m1", "d3", "b1"]


def test_in_stock_only():
    out = filter_and_sort(CATALOG, MenuFilters(category="desserts", in_stock_only=True))
    assert "d2" not in ids(out)


def test_rating_and_newest_sorts():
    assert ids(filter_and_sort(CATALOG, MenuFilters(sort_by="rating")))[:2] == ["d2", "m2"]
    assert ids(filter_and_sort(CATALOG, MenuFilters(sort_by="newest")))[0] == "b1"


def test_input_is_not_mutated():
    before = ids(CATALOG)
    filter_and_sort(CATALOG, MenuFilters(sort_by="price", category="mains"))
    assert ids(CATALOG) == before


def test_availability_text():
    assert availability_text(CATALOG[0]) == "In Stock"
    assert availability_text(CATALOG[3]) == "Out of Stock"


def test_stale_refresh_is_dropped():
    cache = CatalogCache(ttl_seconds=60)
    slow = cache.begin_refresh()
    fast = cache.begin_refresh()
    assert cache.complete_refresh(fast, CATALOG[:2])
    assert not cache.complete_refresh(slow, CATALOG)
    assert ids(cache.items) == ["m1", "m2"]
    assert cache.is_fresh
    cache.invalidate()
    assert not cache.is_fresh


def test_menu_service_reads_seeded_catalog(db):
    svc = MenuService(db, cache=CatalogCache(ttl_seconds=60))
    mains = svc.list_menu(MenuFilters(category="mains", sort_by="price"))
    assert ids(mains) == ["A", "BIG"]
    assert mains[0].price == 7.90
    assert svc.get_item("CAPPED").max_quantity == 3
    assert svc.get_item("NOPE") is None
