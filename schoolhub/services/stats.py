from typing import Dict

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from schoolhub.models.orm import Quiz, QuizAttempt, Resource, User, UserRole


def dashboard_stats(db: Session) -> Dict[str, int]:
    """Counts shown on the admin dashboard."""
    def count(model, *where) -> int:
        return db.scalar(select(func.count()).select_from(model).where(*where)) or 0

    return {
        "totalStudents": count(User, User.role == UserRole.STUDENT),
        "totalTeachers": count(User, User.role.in_([UserRole.TEACHER, UserRole.ADMIN])),
        "totalResources": count(Resource, Resource.is_published.is_(True)),
        "totalQuizzes": count(Quiz, Quiz.is_active.is_(True)),
        "completedAttempts": count(QuizAttempt, QuizAttempt.is_completed.is_(True)),
    }
