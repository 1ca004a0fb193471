import importlib
import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from cornshop.config import settings

log = logging.getLogger(__name__)

DATABASE_URL = settings.DATABASE_URL
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, future=True, echo=False, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

# Every module that declares tables must be listed so metadata is populated.
MODEL_MODULES = [
    "cornshop.models.menu_item",
    "cornshop.models.storage_slot",
    "cornshop.models.order",
    "cornshop.models.loyalty",
]


def init_db(reset: bool = False):
    """
    Initialize DB schema.

    With reset=True (or RESET_DB set in the environment) all tables are
    dropped and recreated, which is what the test-suite relies on.
    """
    for mod in MODEL_MODULES:
        importlib.import_module(mod)

    if reset or settings.RESET_DB:
        log.info("Resetting database")
        Base.metadata.drop_all(bind=engine)

    Base.metadata.create_all(bind=engine)
    log.info("Database initialized (%s)", DATABASE_URL)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
