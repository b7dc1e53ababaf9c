from fastapi import APIRouter, Depends, Query
from pydantic import Field, constr
from typing import List, Optional
from sqlalchemy.orm import Session
from schoolhub.api.schemas import ApiModel, ClassOut, SubjectOut, TermOut
from schoolhub.core.auth import ADMIN, require_roles
from schoolhub.core.database import get_db
from schoolhub.models.orm import SchoolClass, Subject, Term
from schoolhub.services.catalog import CatalogStore

router = APIRouter(dependencies=[Depends(require_roles(ADMIN))])

Name = constr(strip_whitespace=True, min_length=1, max_length=255)

# ============= Payloads =============

class ClassCreate(ApiModel):
    name: Name
    description: Optional[str] = None
    order: int = Field(ge=0)

class ClassUpdate(ApiModel):
    name: Optional[Name] = None
    description: Optional[str] = None
    order: Optional[int] = Field(default=None, ge=0)

class TermCreate(ApiModel):
    name: Name
    class_id: str
    order: int = Field(ge=0)

class TermUpdate(ApiModel):
    name: Optional[Name] = None
    class_id: Optional[str] = None
    order: Optional[int] = Field(default=None, ge=0)

class SubjectCreate(ApiModel):
    name: Name
    code: constr(strip_whitespace=True, min_length=1, max_length=50)
    term_id: str

class SubjectUpdate(ApiModel):
    name: Optional[Name] = None
    code: Optional[constr(strip_whitespace=True, min_length=1, max_length=50)] = None
    term_id: Optional[str] = None

def _changes(payload: ApiModel) -> dict:
    # fields left out of the body keep their stored value; explicit nulls only clear nullable columns
    fields = payload.model_dump(exclude_unset=True)
    return {k: v for k, v in fields.items() if v is not None or k == "description"}

# ============= Renderers =============

def _class_out(store: CatalogStore, c: SchoolClass) -> ClassOut:
    return ClassOut(id=c.id, name=c.name, description=c.description, order=c.order, counts=store.class_dependents(c.id))

def _term_out(store: CatalogStore, t: Term) -> TermOut:
    return TermOut(
        id=t.id, name=t.name, class_id=t.class_id, order=t.order,
        class_name=t.school_class.name, class_order=t.school_class.order,
        counts=store.term_dependents(t.id),
    )

def _subject_out(store: CatalogStore, s: Subject) -> SubjectOut:
    return SubjectOut(
        id=s.id, name=s.name, code=s.code, term_id=s.term_id,
        term_name=s.term.name, term_order=s.term.order,
        class_name=s.term.school_class.name, class_order=s.term.school_class.order,
        counts=store.subject_dependents(s.id),
    )

# ============= Classes =============

@router.get("/classes", response_model=List[ClassOut])
def list_classes(db: Session = Depends(get_db)):
    store = CatalogStore(db)
    return [_class_out(store, c) for c in store.list_classes()]

@router.post("/classes", response_model=ClassOut, status_code=201)
def create_class(payload: ClassCreate, db: Session = Depends(get_db)):
    store = CatalogStore(db)
    c = store.create_class(payload.name, payload.order, description=payload.description)
    return _class_out(store, c)

@router.put("/classes/{class_id}", response_model=ClassOut)
def update_class(class_id: str, payload: ClassUpdate, db: Session = Depends(get_db)):
    store = CatalogStore(db)
    c = store.update_class(class_id, **_changes(payload))
    return _class_out(store, c)

@router.delete("/classes/{class_id}")
def delete_class(class_id: str, db: Session = Depends(get_db)):
    CatalogStore(db).delete_class(class_id)
    return {"message": "Class deleted successfully"}

# ============= Terms =============

@router.get("/terms", response_model=List[TermOut])
def list_terms(class_id: Optional[str] = Query(None, alias="classId"), db: Session = Depends(get_db)):
    store = CatalogStore(db)
    return [_term_out(store, t) for t in store.list_terms(class_id=class_id)]

@router.post("/terms", response_model=TermOut, status_code=201)
def create_term(payload: TermCreate, db: Session = Depends(get_db)):
    store = CatalogStore(db)
    t = store.create_term(payload.class_id, payload.name, payload.order)
    return _term_out(store, t)

@router.put("/terms/{term_id}", response_model=TermOut)
def update_term(term_id: str, payload: TermUpdate, db: Session = Depends(get_db)):
    store = CatalogStore(db)
    t = store.update_term(term_id, **_changes(payload))
    return _term_out(store, t)

@router.delete("/terms/{term_id}")
def delete_term(term_id: str, db: Session = Depends(get_db)):
    CatalogStore(db).delete_term(term_id)
    return {"message": "Term deleted successfully"}

# ============= Subjects =============

@router.get("/subjects", response_model=List[SubjectOut])
def list_subjects(term_id: Optional[str] = Query(None, alias="termId"),
                  class_id: Optional[str] = Query(None, alias="classId"), db: Session = Depends(get_db)):
    store = CatalogStore(db)
    return [_subject_out(store, s) for s in store.list_subjects(term_id=term_id, class_id=class_id)]

@router.post("/subjects", response_model=SubjectOut, status_code=201)
def create_subject(payload: SubjectCreate, db: Session = Depends(get_db)):
    store = CatalogStore(db)
    s = store.create_subject(payload.term_id, payload.name, payload.code)
    return _subject_out(store, s)

@router.put("/subjects/{subject_id}", response_model=SubjectOut)
def update_subject(subject_id: str, payload: SubjectUpdate, db: Session = Depends(get_db)):
    store = CatalogStore(db)
    s = store.update_subject(subject_id, **_changes(payload))
    return _subject_out(store, s)

@router.delete("/subjects/{subject_id}")
def delete_subject(subject_id: str, db: Session = Depends(get_db)):
    CatalogStore(db).delete_subject(subject_id)
    return {"message": "Subject deleted successfully"}
