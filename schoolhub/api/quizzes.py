from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import Field
from typing import Dict, List, Optional
from sqlalchemy.orm import Session
from schoolhub.api.schemas import (
    AnswerOut, ApiModel, AttemptOut, AttemptResult, LearnerQuestion, LearnerQuiz, QuizContext,
    QuizSummary, ReviewQuestion, ReviewQuiz
)
from schoolhub.core.auth import ADMIN, TEACHER, TokenData, get_current_user, require_roles
from schoolhub.core.database import get_db
from schoolhub.models.orm import Quiz
from schoolhub.services.resources import ResourceStore
from schoolhub.services.scoring import AttemptEngine, AttemptReview

router = APIRouter()

class SubmitIn(ApiModel):
    quiz_id: str
    answers: Dict[str, int]  # question id -> 1-based option
    time_spent: Optional[int] = Field(default=None, ge=0)

class AuthoringQuestion(ApiModel):
    text: str
    options: List[str]
    correct_answer: int  # 0-based
    explanation: Optional[str] = None

class AuthoringQuiz(QuizSummary):
    context: QuizContext
    questions: List[AuthoringQuestion]

def _summary(quiz: Quiz) -> dict:
    return QuizSummary.model_validate(quiz).model_dump()

def _attempt_result(review: AttemptReview) -> AttemptResult:
    quiz = review.quiz
    return AttemptResult(
        **AttemptOut.model_validate(review.attempt).model_dump(),
        passed=review.passed,
        answers=[AnswerOut.model_validate(a) for a in review.answers],
        quiz=ReviewQuiz(
            **_summary(quiz),
            context=QuizContext.of(quiz),
            questions=[ReviewQuestion.model_validate(q) for q in quiz.questions],
        ),
    )

# ============= Attempts =============

@router.post("/submit", response_model=AttemptResult, status_code=201)
def submit_quiz(payload: SubmitIn, user: TokenData = Depends(get_current_user), db: Session = Depends(get_db)):
    review = AttemptEngine(db).submit(payload.quiz_id, user.sub, payload.answers, time_spent=payload.time_spent)
    return _attempt_result(review)

@router.get("/attempts", response_model=List[AttemptOut])
def list_attempts(quiz_id: Optional[str] = Query(None, alias="quizId"),
                  user: TokenData = Depends(get_current_user), db: Session = Depends(get_db)):
    return AttemptEngine(db).list_attempts(user.sub, quiz_id=quiz_id)

@router.get("/attempts/{attempt_id}", response_model=AttemptResult)
def get_attempt(attempt_id: str, user: TokenData = Depends(get_current_user), db: Session = Depends(get_db)):
    review = AttemptEngine(db).get_review(attempt_id)
    if review.attempt.user_id != user.sub and not user.is_staff():
        raise HTTPException(status_code=403, detail="Not your attempt")
    return _attempt_result(review)

# ============= Quiz views =============

@router.get("/{quiz_id}/authoring", response_model=AuthoringQuiz, dependencies=[Depends(require_roles(ADMIN, TEACHER))])
def get_quiz_for_authoring(quiz_id: str, db: Session = Depends(get_db)):
    quiz, drafts = ResourceStore(db).get_quiz_for_authoring(quiz_id)
    return AuthoringQuiz(
        **_summary(quiz),
        context=QuizContext.of(quiz),
        questions=[AuthoringQuestion.model_validate(d) for d in drafts],
    )

@router.get("/{quiz_id}", response_model=LearnerQuiz, dependencies=[Depends(get_current_user)])
def get_quiz(quiz_id: str, db: Session = Depends(get_db)):
    quiz, questions = ResourceStore(db).get_quiz_for_learner(quiz_id)
    return LearnerQuiz(
        **_summary(quiz),
        context=QuizContext.of(quiz),
        questions=[LearnerQuestion.model_validate(q) for q in questions],
    )
