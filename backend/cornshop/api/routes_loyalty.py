from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from cornshop.db import get_db
from cornshop.services.loyalty_service import LoyaltyService

router = APIRouter(prefix="/api/loyalty", tags=["loyalty"])


@router.get("/{user_id}", summary="Loyalty points and tier")
def get_account(user_id: str, db: Session = Depends(get_db)):
    return LoyaltyService(db).get_account(user_id)
