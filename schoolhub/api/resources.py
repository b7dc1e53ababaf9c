from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from pydantic import TypeAdapter, ValidationError, constr
from typing import List, Optional
from sqlalchemy.orm import Session
from schoolhub.api.schemas import ApiModel, ResourceOut
from schoolhub.core.auth import ADMIN, TEACHER, TokenData, get_current_user, require_roles
from schoolhub.core.database import get_db
from schoolhub.models.orm import Difficulty, ResourceType
from schoolhub.services.errors import InvalidQuestionError
from schoolhub.services.quizzes import QuestionDraft, QuizDraft
from schoolhub.services.resources import ResourceStore
from schoolhub.services.storage import LocalFileStorage, UploadedFile

router = APIRouter()

class QuestionIn(ApiModel):
    text: str
    options: List[str]
    correct_answer: int  # 0-based, as picked in the authoring form
    explanation: Optional[str] = None

class ResourceUpdate(ApiModel):
    title: Optional[constr(strip_whitespace=True, min_length=1, max_length=255)] = None
    description: Optional[str] = None
    is_published: Optional[bool] = None
    subject_id: Optional[str] = None

_questions_adapter = TypeAdapter(List[QuestionIn])

def get_storage() -> LocalFileStorage:
    return LocalFileStorage()

def _parse_questions(raw: str) -> List[QuestionDraft]:
    try:
        items = _questions_adapter.validate_json(raw)
    except ValidationError as exc:
        raise InvalidQuestionError("Malformed questions payload", {"errors": [e["msg"] for e in exc.errors()]}) from exc
    return [QuestionDraft(text=q.text, options=q.options, correct_answer=q.correct_answer, explanation=q.explanation) for q in items]

@router.post("/upload", response_model=ResourceOut, status_code=201)
def upload_resource(
    title: str = Form(...),
    resource_type: ResourceType = Form(..., alias="type"),
    subject_id: str = Form(..., alias="subjectId"),
    description: Optional[str] = Form(None),
    is_published: bool = Form(True, alias="isPublished"),
    duration: int = Form(30, ge=1),
    difficulty: Difficulty = Form(Difficulty.MEDIUM),
    questions: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
    user: TokenData = Depends(require_roles(ADMIN, TEACHER)),
    db: Session = Depends(get_db),
    storage: LocalFileStorage = Depends(get_storage),
):
    quiz = None
    if questions:
        quiz = QuizDraft(questions=_parse_questions(questions), duration=duration, difficulty=difficulty)
    upload = None
    if file is not None and file.filename:
        upload = UploadedFile(filename=file.filename, content_type=file.content_type, data=file.file.read())
    resource = ResourceStore(db, storage).create_resource(
        subject_id, resource_type, title, user.sub,
        description=description, upload=upload, is_published=is_published, quiz=quiz,
    )
    return resource

@router.get("", response_model=List[ResourceOut])
def list_resources(
    subject_id: Optional[str] = Query(None, alias="subjectId"),
    resource_type: Optional[ResourceType] = Query(None, alias="type"),
    user: TokenData = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    store = ResourceStore(db)
    return store.list_resources(subject_id=subject_id, resource_type=resource_type, published_only=not user.is_staff())

@router.put("/{resource_id}", response_model=ResourceOut, dependencies=[Depends(require_roles(ADMIN, TEACHER))])
def update_resource(resource_id: str, payload: ResourceUpdate, db: Session = Depends(get_db)):
    fields = payload.model_dump(exclude_unset=True)
    changes = {k: v for k, v in fields.items() if v is not None or k == "description"}
    return ResourceStore(db).update_resource(resource_id, **changes)

@router.delete("/{resource_id}", dependencies=[Depends(require_roles(ADMIN, TEACHER))])
def delete_resource(resource_id: str, db: Session = Depends(get_db), storage: LocalFileStorage = Depends(get_storage)):
    ResourceStore(db, storage).delete_resource(resource_id)
    return {"message": "Resource deleted successfully"}
