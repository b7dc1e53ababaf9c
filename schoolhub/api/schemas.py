"""Response models shared by several routers. Field names go out in camelCase."""
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from schoolhub.models.orm import Difficulty, Quiz, ResourceType


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# ============= Catalog =============

class ClassOut(ApiModel):
    id: str
    name: str
    description: Optional[str] = None
    order: int
    counts: Dict[str, int] = {}


class TermOut(ApiModel):
    id: str
    name: str
    class_id: str
    order: int
    class_name: Optional[str] = None
    class_order: Optional[int] = None
    counts: Dict[str, int] = {}


class SubjectOut(ApiModel):
    id: str
    name: str
    code: str
    term_id: str
    term_name: Optional[str] = None
    term_order: Optional[int] = None
    class_name: Optional[str] = None
    class_order: Optional[int] = None
    counts: Dict[str, int] = {}


# ============= Resources & quizzes =============

class QuizSummary(ApiModel):
    id: str
    duration: int
    difficulty: Difficulty
    total_marks: int
    passing_marks: int
    is_active: bool


class ResourceOut(ApiModel):
    id: str
    title: str
    description: Optional[str] = None
    type: ResourceType
    subject_id: str
    uploaded_by: str
    file_url: Optional[str] = None
    file_name: Optional[str] = None
    file_size: Optional[int] = None
    file_type: Optional[str] = None
    is_published: bool
    created_at: Optional[datetime] = None
    quiz: Optional[QuizSummary] = None


class QuizContext(ApiModel):
    resource_id: str
    resource_title: str
    subject_name: str
    subject_code: str
    term_name: str
    class_name: str

    @classmethod
    def of(cls, quiz: Quiz) -> "QuizContext":
        resource = quiz.resource
        subject = resource.subject
        return cls(
            resource_id=resource.id,
            resource_title=resource.title,
            subject_name=subject.name,
            subject_code=subject.code,
            term_name=subject.term.name,
            class_name=subject.term.school_class.name,
        )


class LearnerQuestion(ApiModel):
    """A question as shown while the quiz is being taken: no answer key."""
    id: str
    text: str
    options: List[str]
    marks: int
    order: int


class ReviewQuestion(LearnerQuestion):
    correct_answer: int
    explanation: Optional[str] = None


class LearnerQuiz(QuizSummary):
    context: QuizContext
    questions: List[LearnerQuestion]


class ReviewQuiz(QuizSummary):
    context: QuizContext
    questions: List[ReviewQuestion]


# ============= Attempts =============

class AnswerOut(ApiModel):
    question_id: str
    selected_answer: int
    is_correct: bool
    marks_awarded: int


class AttemptOut(ApiModel):
    id: str
    user_id: str
    quiz_id: str
    score: int
    total_marks: int
    percentage: float
    time_spent: Optional[int] = None
    is_completed: bool
    completed_at: Optional[datetime] = None


class AttemptResult(AttemptOut):
    passed: bool
    answers: List[AnswerOut]
    quiz: ReviewQuiz
