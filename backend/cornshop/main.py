import logging
from contextlib import asynccontextmanager

from apscheduler.schedulers.background import BackgroundScheduler
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cornshop.adapters.mock_kitchen import MockKitchen
from cornshop.api.health import router as health_router
from cornshop.api.routes_cart import router as cart_router
from cornshop.api.routes_loyalty import router as loyalty_router
from cornshop.api.routes_menu import router as menu_router
from cornshop.api.routes_order import router as order_router
from cornshop.config import settings
from cornshop.db import SessionLocal, init_db
from cornshop.repositories.slot_repo import purge_expired_slots
from cornshop.services.menu_service import CatalogCache

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
log = logging.getLogger("cornshop")


def purge_carts_job():
    db = SessionLocal()
    try:
        n = purge_expired_slots(db, settings.CART_TTL_HOURS)
        if n:
            log.info("Purged %d expired cart slot(s)", n)
    finally:
        db.close()


def kitchen_job():
    db = SessionLocal()
    try:
        MockKitchen(db).tick()
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    app.state.catalog_cache = CatalogCache()

    scheduler = BackgroundScheduler()
    scheduler.add_job(
        purge_carts_job,
        "interval",
        seconds=settings.CART_PURGE_INTERVAL_SECONDS,
        id="purge_expired_carts",
    )
    if settings.ORDER_SIMULATION_ENABLED:
        log.info("Order simulation enabled (tick every %ss)", settings.SIM_TICK_SECONDS)
        scheduler.add_job(
            kitchen_job, "interval", seconds=settings.SIM_TICK_SECONDS, id="mock_kitchen"
        )
    scheduler.start()

    try:
        yield
    finally:
        scheduler.shutdown(wait=False)


app = FastAPI(title="Cornshop - Backend", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.FRONTEND_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router, prefix="/api", tags=["health"])

app.include_router(menu_router, prefix="/api/menu", tags=["menu"])

app.include_router(cart_router, tags=["cart"])

app.include_router(order_router, prefix="/api/orders", tags=["orders"])

app.include_router(loyalty_router, tags=["loyalty"])


def run():
    import uvicorn

    uvicorn.run("cornshop.main:app", host=settings.APP_HOST, port=settings.APP_PORT)


if __name__ == "__main__":
    run()
