"""
Attempt engine: grades a learner's submission against a quiz and records
the attempt with one answer row per matched question.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Mapping, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from schoolhub.models.orm import Answer, Question, Quiz, QuizAttempt
from schoolhub.services.errors import NotFoundError
from schoolhub.services.resources import load_quiz

logger = logging.getLogger(__name__)


@dataclass
class GradedAnswer:
    question_id: str
    selected_answer: int
    is_correct: bool
    marks_awarded: int


@dataclass
class GradeResult:
    score: int
    total_marks: int
    percentage: float
    answers: List[GradedAnswer] = field(default_factory=list)


@dataclass
class AttemptReview:
    """A finished attempt plus the quiz's answer key, for post-submission review."""
    attempt: QuizAttempt
    quiz: Quiz
    answers: List[Answer]
    passed: bool


def compute_percentage(score: int, total_marks: int) -> float:
    if not total_marks:
        return 0.0
    return score * 100 / total_marks


def grade_submission(questions: Sequence[Question], answers: Mapping[str, int], total_marks: int) -> GradeResult:
    """Score ``answers`` (question id -> 1-based option) against ``questions``.

    Answers keyed by ids that are not in ``questions`` are dropped; a client
    may be submitting against a quiz that was edited since it was loaded.
    Each correct answer earns the question's ``marks``; there is no partial
    or negative marking.
    """
    graded = []
    for question in questions:
        if question.id not in answers:
            continue
        selected = answers[question.id]
        is_correct = selected == question.correct_answer
        graded.append(GradedAnswer(
            question_id=question.id,
            selected_answer=selected,
            is_correct=is_correct,
            marks_awarded=question.marks if is_correct else 0,
        ))
    unmatched = len(answers) - len(graded)
    if unmatched:
        logger.debug("Ignored %d answers for unknown questions", unmatched)
    score = sum(a.marks_awarded for a in graded)
    return GradeResult(score=score, total_marks=total_marks, percentage=compute_percentage(score, total_marks), answers=graded)


class AttemptEngine:
    def __init__(self, db: Session):
        self.db = db

    def submit(self, quiz_id: str, user_id: str, answers: Mapping[str, int],
               time_spent: Optional[int] = None) -> AttemptReview:
        quiz = load_quiz(self.db, quiz_id)
        result = grade_submission(quiz.questions, answers, quiz.total_marks)
        attempt = QuizAttempt(
            user_id=user_id,
            quiz_id=quiz.id,
            score=result.score,
            total_marks=result.total_marks,
            percentage=result.percentage,
            time_spent=time_spent,
            is_completed=True,
            completed_at=datetime.now(timezone.utc),
        )
        attempt.answers = [
            Answer(
                question_id=a.question_id,
                selected_answer=a.selected_answer,
                is_correct=a.is_correct,
                marks_awarded=a.marks_awarded,
            )
            for a in result.answers
        ]
        self.db.add(attempt)
        self.db.commit()
        logger.info("User %s scored %d/%d on quiz %s", user_id, result.score, result.total_marks, quiz_id)
        return self._review(attempt, quiz)

    def get_attempt(self, attempt_id: str) -> QuizAttempt:
        attempt = self.db.get(QuizAttempt, attempt_id)
        if attempt is None:
            raise NotFoundError("Attempt", attempt_id)
        return attempt

    def get_review(self, attempt_id: str) -> AttemptReview:
        attempt = self.get_attempt(attempt_id)
        return self._review(attempt, load_quiz(self.db, attempt.quiz_id))

    def list_attempts(self, user_id: str, quiz_id: Optional[str] = None) -> List[QuizAttempt]:
        stmt = select(QuizAttempt).where(QuizAttempt.user_id == user_id).order_by(
            QuizAttempt.created_at.desc(), QuizAttempt.completed_at.desc(), QuizAttempt.id.desc()
        )
        if quiz_id:
            stmt = stmt.where(QuizAttempt.quiz_id == quiz_id)
        return list(self.db.scalars(stmt))

    @staticmethod
    def _review(attempt: QuizAttempt, quiz: Quiz) -> AttemptReview:
        positions = {q.id: q.order for q in quiz.questions}
        answers = sorted(attempt.answers, key=lambda a: positions.get(a.question_id, 0))
        passed = quiz.total_marks > 0 and attempt.score >= quiz.passing_marks
        return AttemptReview(attempt=attempt, quiz=quiz, answers=answers, passed=passed)
