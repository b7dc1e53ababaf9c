import enum
import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    Boolean, DateTime, Enum as SQLEnum, Float, ForeignKey, Index, Integer,
    String, Text, UniqueConstraint, func
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase): pass


def new_id() -> str:
    return str(uuid.uuid4())


class UserRole(str, enum.Enum):
    STUDENT = "STUDENT"
    TEACHER = "TEACHER"
    ADMIN = "ADMIN"


class ResourceType(str, enum.Enum):
    SYLLABUS = "SYLLABUS"
    QUESTION_PAPER = "QUESTION_PAPER"
    QUIZ = "QUIZ"


class Difficulty(str, enum.Enum):
    EASY = "EASY"
    MEDIUM = "MEDIUM"
    HARD = "HARD"


# ========== Identity ==========

class User(Base):
    __tablename__ = "users"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    email: Mapped[str] = mapped_column(String(255), unique=True)
    name: Mapped[str] = mapped_column(String(255))
    role: Mapped[UserRole] = mapped_column(SQLEnum(UserRole), default=UserRole.STUDENT)
    class_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("classes.id"), nullable=True)

    school_class: Mapped[Optional["SchoolClass"]] = relationship(back_populates="users")


# ========== Catalog ==========

class SchoolClass(Base):
    __tablename__ = "classes"
    __table_args__ = (
        UniqueConstraint("order", name="uq_classes_order"),
        UniqueConstraint("name", name="uq_classes_name"),
    )
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    order: Mapped[int] = mapped_column(Integer, nullable=False)

    terms: Mapped[List["Term"]] = relationship(back_populates="school_class", order_by="Term.order", passive_deletes="all")
    users: Mapped[List["User"]] = relationship(back_populates="school_class", passive_deletes="all")


class Term(Base):
    __tablename__ = "terms"
    __table_args__ = (
        UniqueConstraint("class_id", "order", name="uq_terms_class_order"),
        UniqueConstraint("class_id", "name", name="uq_terms_class_name"),
    )
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    class_id: Mapped[str] = mapped_column(String(36), ForeignKey("classes.id"), nullable=False)
    order: Mapped[int] = mapped_column(Integer, nullable=False)

    school_class: Mapped["SchoolClass"] = relationship(back_populates="terms")
    subjects: Mapped[List["Subject"]] = relationship(back_populates="term", order_by="Subject.name", passive_deletes="all")


class Subject(Base):
    __tablename__ = "subjects"
    __table_args__ = (
        UniqueConstraint("term_id", "code", name="uq_subjects_term_code"),
    )
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str] = mapped_column(String(50), nullable=False)
    term_id: Mapped[str] = mapped_column(String(36), ForeignKey("terms.id"), nullable=False)

    term: Mapped["Term"] = relationship(back_populates="subjects")
    resources: Mapped[List["Resource"]] = relationship(
        back_populates="subject", order_by=lambda: [Resource.created_at.desc(), Resource.id.desc()], passive_deletes="all"
    )


# ========== Content ==========

class Resource(Base):
    __tablename__ = "resources"
    __table_args__ = (
        Index("idx_resources_subject", "subject_id"),
        Index("idx_resources_type", "type"),
    )
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    type: Mapped[ResourceType] = mapped_column(SQLEnum(ResourceType), nullable=False)
    subject_id: Mapped[str] = mapped_column(String(36), ForeignKey("subjects.id"), nullable=False)
    uploaded_by: Mapped[str] = mapped_column(String(255), nullable=False)
    file_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    file_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    file_size: Mapped[int | None] = mapped_column(Integer, nullable=True)
    file_type: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_published: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())

    subject: Mapped["Subject"] = relationship(back_populates="resources")
    quiz: Mapped[Optional["Quiz"]] = relationship(back_populates="resource", cascade="all, delete-orphan", uselist=False)


class Quiz(Base):
    __tablename__ = "quizzes"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    resource_id: Mapped[str] = mapped_column(String(36), ForeignKey("resources.id", ondelete="CASCADE"), unique=True, nullable=False)
    duration: Mapped[int] = mapped_column(Integer, default=30)
    difficulty: Mapped[Difficulty] = mapped_column(SQLEnum(Difficulty), default=Difficulty.MEDIUM)
    total_marks: Mapped[int] = mapped_column(Integer, nullable=False)
    passing_marks: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    resource: Mapped["Resource"] = relationship(back_populates="quiz")
    questions: Mapped[List["Question"]] = relationship(
        back_populates="quiz", cascade="all, delete-orphan", order_by="Question.order"
    )
    attempts: Mapped[List["QuizAttempt"]] = relationship(back_populates="quiz", passive_deletes="all")


class Question(Base):
    __tablename__ = "questions"
    # order is not unique per quiz
    __table_args__ = (
        Index("idx_questions_quiz_order", "quiz_id", "order"),
    )
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    quiz_id: Mapped[str] = mapped_column(String(36), ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    option1: Mapped[str] = mapped_column(Text, nullable=False)
    option2: Mapped[str] = mapped_column(Text, nullable=False)
    option3: Mapped[str] = mapped_column(Text, nullable=False)
    option4: Mapped[str] = mapped_column(Text, nullable=False)
    correct_answer: Mapped[int] = mapped_column(Integer, nullable=False)  # 1-based
    explanation: Mapped[str | None] = mapped_column(Text, nullable=True)
    marks: Mapped[int] = mapped_column(Integer, default=1)
    order: Mapped[int] = mapped_column(Integer, nullable=False)

    quiz: Mapped["Quiz"] = relationship(back_populates="questions")

    @property
    def options(self) -> List[str]:
        return [self.option1, self.option2, self.option3, self.option4]


# ========== Delivery ==========

class QuizAttempt(Base):
    __tablename__ = "quiz_attempts"
    __table_args__ = (
        Index("idx_qa_user", "user_id"),
        Index("idx_qa_quiz", "quiz_id"),
    )
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    quiz_id: Mapped[str] = mapped_column(String(36), ForeignKey("quizzes.id"), nullable=False)
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    total_marks: Mapped[int] = mapped_column(Integer, nullable=False)
    percentage: Mapped[float] = mapped_column(Float, nullable=False)
    time_spent: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_completed: Mapped[bool] = mapped_column(Boolean, default=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())

    quiz: Mapped["Quiz"] = relationship(back_populates="attempts")
    answers: Mapped[List["Answer"]] = relationship(back_populates="attempt", cascade="all, delete-orphan")


class Answer(Base):
    __tablename__ = "answers"
    __table_args__ = (
        UniqueConstraint("quiz_attempt_id", "question_id", name="uq_answers_attempt_question"),
    )
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    question_id: Mapped[str] = mapped_column(String(36), ForeignKey("questions.id"), nullable=False)
    quiz_attempt_id: Mapped[str] = mapped_column(String(36), ForeignKey("quiz_attempts.id", ondelete="CASCADE"), nullable=False)
    selected_answer: Mapped[int] = mapped_column(Integer, nullable=False)
    is_correct: Mapped[bool] = mapped_column(Boolean, nullable=False)
    marks_awarded: Mapped[int] = mapped_column(Integer, default=0)

    attempt: Mapped["QuizAttempt"] = relationship(back_populates="answers")
    question: Mapped["Question"] = relationship()
