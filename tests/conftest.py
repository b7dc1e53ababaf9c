import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from schoolhub.api.resources import get_storage
from schoolhub.core.auth import create_token
from schoolhub.core.database import enable_sqlite_foreign_keys, get_db
from schoolhub.main import app
from schoolhub.models.orm import Base, ResourceType
from schoolhub.services.catalog import CatalogStore
from schoolhub.services.quizzes import QuestionDraft, QuizDraft
from schoolhub.services.resources import ResourceStore
from schoolhub.services.storage import LocalFileStorage


@pytest.fixture
def engine():
    eng = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    enable_sqlite_foreign_keys(eng)
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def other_db(engine):
    """A second session, standing in for a concurrent request."""
    session = sessionmaker(bind=engine, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def interleave(monkeypatch):
    """Patch ``target.name`` so its first call is skipped or followed by ``then()``.

    Later calls go to the real method, so the post-rollback recheck still runs.
    """
    def _patch(target, name, then=None, skip=False):
        real = getattr(target, name)
        calls = []

        def wrapper(*args, **kwargs):
            calls.append(args)
            if len(calls) > 1:
                return real(*args, **kwargs)
            result = None if skip else real(*args, **kwargs)
            if then is not None:
                then()
            return result

        monkeypatch.setattr(target, name, wrapper)
        return calls
    return _patch


@pytest.fixture
def storage(tmp_path):
    return LocalFileStorage(root=str(tmp_path / "uploads"), url_prefix="/uploads")


@pytest.fixture
def catalog(db):
    return CatalogStore(db)


@pytest.fixture
def resources(db, storage):
    return ResourceStore(db, storage)


@pytest.fixture
def subject(catalog):
    c = catalog.create_class("Class VI", 9)
    t = catalog.create_term(c.id, "Term 1", 1)
    return catalog.create_subject(t.id, "Mathematics", "MATH-6")


@pytest.fixture
def make_quiz(resources, subject):
    """Factory for QUIZ resources; ``answers`` are the 0-based correct options."""
    def _make(answers, title="Quiz"):
        drafts = [
            QuestionDraft(text=f"Q{i + 1}", options=["A", "B", "C", "D"], correct_answer=a, explanation=f"E{i + 1}")
            for i, a in enumerate(answers)
        ]
        resource = resources.create_resource(
            subject.id, ResourceType.QUIZ, title, "teacher-1", quiz=QuizDraft(questions=drafts)
        )
        return resource.quiz
    return _make


@pytest.fixture
def client(engine, storage):
    Session = sessionmaker(bind=engine, autoflush=False)

    def override_get_db():
        session = Session()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    yield TestClient(app)
    app.dependency_overrides.clear()


def _headers(user_id, role):
    return {"Authorization": f"Bearer {create_token(user_id, [role])}"}


@pytest.fixture
def admin():
    return _headers("admin-1", "ADMIN")


@pytest.fixture
def teacher():
    return _headers("teacher-1", "TEACHER")


@pytest.fixture
def student():
    return _headers("student-1", "STUDENT")


@pytest.fixture
def other_student():
    return _headers("student-2", "STUDENT")
