"""
Resource store: syllabi, question papers and quizzes attached to a subject.
"""
import logging
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from schoolhub.models.orm import Difficulty, Quiz, QuizAttempt, Resource, ResourceType, Subject, Term
from schoolhub.services.errors import (
    HasDependentsError, InvalidResourceTypeError, NotFoundError, QuizAlreadyExistsError,
    UnknownResourceError, UnknownSubjectError
)
from schoolhub.services.guards import KEEP, commit_or_recheck, count_rows, refuse
from schoolhub.services.quizzes import (
    LearnerQuestionView, QuestionDraft, QuizDraft, authoring_drafts, build_question, learner_questions,
    passing_marks_for, validate_draft
)
from schoolhub.services.storage import LocalFileStorage, StoredFile, UploadedFile

logger = logging.getLogger(__name__)


def load_quiz(db: Session, quiz_id: str) -> Quiz:
    """Quiz with ordered questions and its Class -> Term -> Subject -> Resource context."""
    quiz = db.scalar(
        select(Quiz).where(Quiz.id == quiz_id).options(
            selectinload(Quiz.questions),
            selectinload(Quiz.resource).selectinload(Resource.subject)
            .selectinload(Subject.term).selectinload(Term.school_class),
        )
    )
    if quiz is None:
        raise NotFoundError("Quiz", quiz_id)
    return quiz


class ResourceStore:
    def __init__(self, db: Session, storage: Optional[LocalFileStorage] = None):
        self.db = db
        self.storage = storage or LocalFileStorage()

    def get_resource(self, resource_id: str) -> Resource:
        resource = self.db.get(Resource, resource_id)
        if resource is None:
            raise NotFoundError("Resource", resource_id)
        return resource

    def list_resources(self, subject_id: Optional[str] = None, resource_type: Optional[ResourceType] = None,
                       published_only: bool = False) -> List[Resource]:
        stmt = select(Resource).options(selectinload(Resource.quiz)).order_by(Resource.created_at.desc(), Resource.id.desc())
        if subject_id:
            stmt = stmt.where(Resource.subject_id == subject_id)
        if resource_type:
            stmt = stmt.where(Resource.type == resource_type)
        if published_only:
            stmt = stmt.where(Resource.is_published.is_(True))
        return list(self.db.scalars(stmt))

    def create_resource(self, subject_id: str, resource_type: ResourceType, title: str, uploaded_by: str,
                        description: Optional[str] = None, upload: Optional[UploadedFile] = None,
                        is_published: bool = True, quiz: Optional[QuizDraft] = None) -> Resource:
        """Create a resource; a QUIZ resource gets its quiz in the same commit.

        The subject is checked before anything is written to storage. Files
        are only stored for non-quiz resources.
        """
        self._require_subject(subject_id)
        if quiz is not None:
            if resource_type != ResourceType.QUIZ:
                refuse(InvalidResourceTypeError("Questions can only be attached to a QUIZ resource", {"type": resource_type.value}))
            self._validate_drafts(quiz.questions)

        stored: Optional[StoredFile] = None
        if resource_type != ResourceType.QUIZ and upload is not None:
            stored = self.storage.save(upload.filename, upload.content_type, upload.data)

        resource = Resource(
            title=title,
            description=description,
            type=resource_type,
            subject_id=subject_id,
            uploaded_by=uploaded_by,
            is_published=is_published,
        )
        if stored is not None:
            resource.file_url, resource.file_name = stored.file_url, stored.file_name
            resource.file_size, resource.file_type = stored.file_size, stored.file_type
        self.db.add(resource)
        if quiz is not None:
            self._attach_quiz(resource, quiz)
        try:
            commit_or_recheck(self.db, lambda: self._require_subject(subject_id))
        except Exception:
            self.db.rollback()
            if stored is not None:
                self.storage.delete(stored.file_url)
            raise
        logger.info("Created %s resource %s under subject %s", resource_type.value, resource.id, subject_id)
        return resource

    def create_quiz(self, resource_id: str, questions: List[QuestionDraft], duration: int = 30,
                    difficulty: Difficulty = Difficulty.MEDIUM) -> Quiz:
        resource = self.db.get(Resource, resource_id)
        if resource is None:
            refuse(UnknownResourceError(resource_id))
        self._check_quiz_slot(resource)
        self._validate_drafts(questions)
        quiz = self._attach_quiz(resource, QuizDraft(questions=questions, duration=duration, difficulty=difficulty))
        commit_or_recheck(self.db, lambda: self._check_quiz_slot(resource))
        logger.info("Created quiz %s with %d questions for resource %s", quiz.id, quiz.total_marks, resource_id)
        return quiz

    def update_resource(self, resource_id: str, *, title: str = KEEP, description: Optional[str] = KEEP,
                        is_published: bool = KEEP, subject_id: str = KEEP) -> Resource:
        resource = self.get_resource(resource_id)
        subject_id = resource.subject_id if subject_id is KEEP else subject_id
        if subject_id != resource.subject_id:
            self._require_subject(subject_id)
            resource.subject_id = subject_id
        if title is not KEEP:
            resource.title = title
        if description is not KEEP:
            resource.description = description
        if is_published is not KEEP:
            resource.is_published = is_published
        commit_or_recheck(self.db, lambda: self._require_subject(subject_id))
        logger.info("Updated resource %s", resource_id)
        return resource

    def resource_dependents(self, resource: Resource) -> dict:
        if resource.quiz is None:
            return {"attempts": 0}
        return {"attempts": count_rows(self.db, QuizAttempt, quiz_id=resource.quiz.id)}

    def delete_resource(self, resource_id: str) -> None:
        """Delete the resource with its quiz and questions in one commit.

        Refused while the quiz has recorded attempts.
        """
        resource = self.get_resource(resource_id)
        self._refuse_if_attempts(resource)
        file_url = resource.file_url
        self.db.delete(resource)
        commit_or_recheck(self.db, lambda: self._refuse_if_attempts(self.get_resource(resource_id)))
        if file_url:
            self.storage.delete(file_url)
        logger.info("Deleted resource %s", resource_id)

    # ============= Quiz reads =============

    def get_quiz(self, quiz_id: str) -> Quiz:
        return load_quiz(self.db, quiz_id)

    def get_quiz_for_learner(self, quiz_id: str) -> Tuple[Quiz, List[LearnerQuestionView]]:
        quiz = load_quiz(self.db, quiz_id)
        return quiz, learner_questions(quiz.questions)

    def get_quiz_for_authoring(self, quiz_id: str) -> Tuple[Quiz, List[QuestionDraft]]:
        """Questions in stored order with correct answers back in 0-based form."""
        quiz = load_quiz(self.db, quiz_id)
        return quiz, authoring_drafts(quiz.questions)

    # ============= Internals =============

    def _attach_quiz(self, resource: Resource, draft: QuizDraft) -> Quiz:
        total_marks = len(draft.questions)
        quiz = Quiz(
            duration=draft.duration,
            difficulty=draft.difficulty,
            total_marks=total_marks,
            passing_marks=passing_marks_for(total_marks),
            is_active=True,
        )
        quiz.questions = [build_question(d, i) for i, d in enumerate(draft.questions)]
        resource.quiz = quiz
        return quiz

    def _require_subject(self, subject_id: str) -> None:
        if self.db.scalar(select(Subject.id).where(Subject.id == subject_id)) is None:
            refuse(UnknownSubjectError(subject_id))

    def _check_quiz_slot(self, resource: Resource) -> None:
        if resource.type != ResourceType.QUIZ:
            refuse(InvalidResourceTypeError("Quizzes can only be created for QUIZ resources", {"type": resource.type.value}))
        existing = self.db.scalar(select(Quiz.id).where(Quiz.resource_id == resource.id))
        if existing is not None:
            refuse(QuizAlreadyExistsError("This resource already has a quiz", {"quizId": existing}))

    @staticmethod
    def _validate_drafts(drafts: List[QuestionDraft]) -> None:
        for position, draft in enumerate(drafts):
            validate_draft(draft, position)

    def _refuse_if_attempts(self, resource: Resource) -> None:
        dependents = self.resource_dependents(resource)
        if dependents["attempts"]:
            refuse(HasDependentsError("Resource", dependents))
