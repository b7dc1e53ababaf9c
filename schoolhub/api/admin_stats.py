from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from schoolhub.core.auth import ADMIN, require_roles
from schoolhub.core.database import get_db
from schoolhub.services.stats import dashboard_stats

router = APIRouter()

@router.get("/stats", dependencies=[Depends(require_roles(ADMIN))])
def get_stats(db: Session = Depends(get_db)):
    return dashboard_stats(db)
