from fastapi import APIRouter, Depends
from typing import List, Optional
from sqlalchemy.orm import Session
from schoolhub.api.schemas import ApiModel, ResourceOut
from schoolhub.core.auth import TokenData, get_current_user
from schoolhub.core.database import get_db
from schoolhub.services.catalog import CatalogStore

router = APIRouter()

class SubjectNode(ApiModel):
    id: str
    name: str
    code: str
    resources: List[ResourceOut]

class TermNode(ApiModel):
    id: str
    name: str
    order: int
    subjects: List[SubjectNode]

class ClassNode(ApiModel):
    id: str
    name: str
    description: Optional[str] = None
    order: int
    terms: List[TermNode]

@router.get("", response_model=List[ClassNode])
def catalog_tree(user: TokenData = Depends(get_current_user), db: Session = Depends(get_db)):
    """Published navigation tree; staff also see unpublished resources."""
    tree = CatalogStore(db).catalog_tree(published_only=not user.is_staff())
    return [
        ClassNode(
            id=node["class"].id, name=node["class"].name,
            description=node["class"].description, order=node["class"].order,
            terms=[
                TermNode(
                    id=t["term"].id, name=t["term"].name, order=t["term"].order,
                    subjects=[
                        SubjectNode(
                            id=s["subject"].id, name=s["subject"].name, code=s["subject"].code,
                            resources=[ResourceOut.model_validate(r) for r in s["resources"]],
                        )
                        for s in t["subjects"]
                    ],
                )
                for t in node["terms"]
            ],
        )
        for node in tree
    ]
