"""
Quiz definition rules: mark policy, answer-index conversion and question
drafts as they arrive from the authoring form.
"""
from dataclasses import dataclass, field
from typing import List, Optional

from schoolhub.models.orm import Difficulty, Question
from schoolhub.services.errors import InvalidQuestionError

OPTION_COUNT = 4
DEFAULT_MARKS = 1
# passing threshold is 60% of total marks, rounded up
PASS_NUMERATOR, PASS_DENOMINATOR = 3, 5


def to_stored_answer_index(authored_index: int) -> int:
    """Authoring forms use 0-based option indices; storage keeps 1-based."""
    return authored_index + 1


def to_authoring_answer_index(stored_index: int) -> int:
    """Inverse of :func:`to_stored_answer_index`, for re-editing only.

    Grading compares submissions against the stored 1-based value and never
    goes through this function.
    """
    return stored_index - 1


def passing_marks_for(total_marks: int) -> int:
    return -(-total_marks * PASS_NUMERATOR // PASS_DENOMINATOR)


@dataclass
class QuestionDraft:
    text: str
    options: List[str]
    correct_answer: int  # 0-based
    explanation: Optional[str] = None


@dataclass
class QuizDraft:
    questions: List[QuestionDraft] = field(default_factory=list)
    duration: int = 30
    difficulty: Difficulty = Difficulty.MEDIUM


def validate_draft(draft: QuestionDraft, position: int) -> None:
    where = {"position": position}
    if not draft.text or not draft.text.strip():
        raise InvalidQuestionError("Question text must not be empty", where)
    if len(draft.options) != OPTION_COUNT:
        raise InvalidQuestionError(f"Each question must have exactly {OPTION_COUNT} options", where)
    if not 0 <= draft.correct_answer < OPTION_COUNT:
        raise InvalidQuestionError(f"Correct answer index must be between 0 and {OPTION_COUNT - 1}", where)


def build_question(draft: QuestionDraft, position: int) -> Question:
    """Turn the draft at ``position`` (0-based) into an unsaved Question."""
    validate_draft(draft, position)
    option1, option2, option3, option4 = draft.options
    return Question(
        text=draft.text.strip(),
        option1=option1,
        option2=option2,
        option3=option3,
        option4=option4,
        correct_answer=to_stored_answer_index(draft.correct_answer),
        explanation=draft.explanation,
        marks=DEFAULT_MARKS,
        order=position + 1,
    )


def authoring_drafts(questions: List[Question]) -> List[QuestionDraft]:
    return [
        QuestionDraft(
            text=q.text,
            options=q.options,
            correct_answer=to_authoring_answer_index(q.correct_answer),
            explanation=q.explanation,
        )
        for q in questions
    ]


@dataclass
class LearnerQuestionView:
    """A question without its answer key, as shown while the quiz is taken."""
    id: str
    text: str
    options: List[str]
    marks: int
    order: int


def learner_questions(questions: List[Question]) -> List[LearnerQuestionView]:
    return [LearnerQuestionView(id=q.id, text=q.text, options=q.options, marks=q.marks, order=q.order) for q in questions]
