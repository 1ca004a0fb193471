import logging
from typing import Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cornshop.models.order import CheckoutRequest, CheckoutState

log = logging.getLogger(__name__)


class CheckoutRequestRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, key: str) -> Optional[CheckoutRequest]:
        return self.db.query(CheckoutRequest).filter(CheckoutRequest.key == key).first()

    def claim(self, key: str) -> Tuple[CheckoutRequest, bool]:
        """
        Take ownership of ``key``. Returns (request, owned); ``owned`` is False
        when another checkout already holds or finished under this key.
        A failed checkout gives the key back.
        """
        req = self.get(key)
        if req:
            if req.state != CheckoutState.FAILED:
                return req, False
            req.state = CheckoutState.IN_PROGRESS
            req.last_error = None
            self.db.commit()
            return req, True
        try:
            req = CheckoutRequest(key=key, state=CheckoutState.IN_PROGRESS)
            self.db.add(req)
            self.db.commit()
            return req, True
        except IntegrityError:
            # lost the insert race to a concurrent checkout
            self.db.rollback()
            log.debug("claim(): key=%r taken concurrently", key)
            return self.get(key), False

    def complete(self, key: str, order_number: str):
        req = self.get(key)
        req.state = CheckoutState.COMPLETED
        req.order_number = order_number
        self.db.commit()

    def fail(self, key: str, error: str):
        req = self.get(key)
        if req:
            req.state = CheckoutState.FAILED
            req.last_error = error[:1024]
            self.db.commit()
