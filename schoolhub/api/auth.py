from fastapi import APIRouter, Depends
from pydantic import BaseModel
from typing import List, Optional
from sqlalchemy.orm import Session
from schoolhub.core.auth import create_token
from schoolhub.core.database import get_db
from schoolhub.models.orm import SchoolClass, User, UserRole
from schoolhub.services.errors import UnknownClassError

router = APIRouter()

class MockLogin(BaseModel):
    user_id: str
    roles: List[UserRole]
    email: Optional[str] = None
    name: Optional[str] = None
    class_id: Optional[str] = None

@router.post("/mock-login")
def mock_login(payload: MockLogin, db: Session = Depends(get_db)):
    roles = [r.value for r in payload.roles]
    if payload.email:
        if payload.class_id and db.get(SchoolClass, payload.class_id) is None:
            raise UnknownClassError(payload.class_id)
        # keep a local user row so class enrolment and dashboard counts see this login
        user = db.get(User, payload.user_id)
        if user is None:
            user = User(id=payload.user_id, email=payload.email)
            db.add(user)
        user.name = payload.name or user.name or payload.email
        user.role = payload.roles[0] if payload.roles else UserRole.STUDENT
        user.class_id = payload.class_id
        db.commit()
    token = create_token(payload.user_id, roles)
    return {"access_token": token, "token_type": "bearer", "roles": roles}
