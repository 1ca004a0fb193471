import logging
from datetime import timedelta
from typing import Optional, Protocol

from sqlalchemy.orm import Session

from cornshop.models.storage_slot import StorageSlot
from cornshop.utils.clock import utcnow

log = logging.getLogger(__name__)


class SlotStorage(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class SlotRepository:
    """
    Durable key/value slots for one browser session (``scope``).

    Writes are committed straight away: a slot write is fire-and-forget from
    the caller's point of view and must survive the request.
    """

    def __init__(self, db: Session, scope: str):
        self.db = db
        self.scope = scope

    def _row(self, key: str) -> Optional[StorageSlot]:
        return (
            self.db.query(StorageSlot)
            .filter(StorageSlot.scope == self.scope, StorageSlot.key == key)
            .first()
        )

    def get(self, key: str) -> Optional[str]:
        row = self._row(key)
        return row.value if row else None

    def set(self, key: str, value: str) -> None:
        row = self._row(key)
        if row:
            row.value = value
            row.updated_at = utcnow()
        else:
            self.db.add(StorageSlot(scope=self.scope, key=key, value=value))
        self.db.commit()

    def delete(self, key: str) -> None:
        deleted = (
            self.db.query(StorageSlot)
            .filter(StorageSlot.scope == self.scope, StorageSlot.key == key)
            .delete()
        )
        self.db.commit()
        if deleted:
            log.debug("delete(): scope=%s key=%s", self.scope, key)


def purge_expired_slots(db: Session, ttl_hours: int) -> int:
    """Drop live cart slots untouched for longer than ``ttl_hours``."""
    cutoff = utcnow() - timedelta(hours=ttl_hours)
    n = (
        db.query(StorageSlot)
        .filter(
            StorageSlot.key.like("cart\\_%", escape="\\"),
            ~StorageSlot.key.like("%\\_saved", escape="\\"),
            StorageSlot.updated_at < cutoff,
        )
        .delete(synchronize_session=False)
    )
    db.commit()
    return n
