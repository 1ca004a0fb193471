import logging

from fastapi import APIRouter
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from cornshop.adapters.mock_payment import MockPaymentAdapter
from cornshop.config import settings
from cornshop.db import engine

log = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health", tags=["health"])
def health():
    db_ok = False
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
            db_ok = True
    except SQLAlchemyError:
        log.exception("health(): database check failed")
    payment_ok = MockPaymentAdapter(delay_ms=0).health_check()

    return {
        "status": "ok" if db_ok and payment_ok else "degraded",
        "db": db_ok,
        "payment_adapter": payment_ok,
        "order_simulation": settings.ORDER_SIMULATION_ENABLED,
    }
