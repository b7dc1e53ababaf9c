"""
Catalog store: the Class -> Term -> Subject tree.

Ordering and code uniqueness are validated on create and update (the row
being updated is excluded from its own check), and deletes are refused
while the target still owns children.
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from schoolhub.models.orm import Resource, SchoolClass, Subject, Term, User
from schoolhub.services.errors import (
    DuplicateCodeError, DuplicateNameError, DuplicateOrderError, HasDependentsError,
    NotFoundError, UnknownClassError, UnknownTermError
)
from schoolhub.services.guards import KEEP, commit_or_recheck, count_rows, is_taken, refuse

logger = logging.getLogger(__name__)


class CatalogStore:
    def __init__(self, db: Session):
        self.db = db

    # ============= Classes =============

    def list_classes(self) -> List[SchoolClass]:
        return list(self.db.scalars(select(SchoolClass).order_by(SchoolClass.order)))

    def get_class(self, class_id: str) -> SchoolClass:
        school_class = self.db.get(SchoolClass, class_id)
        if school_class is None:
            raise NotFoundError("Class", class_id)
        return school_class

    def class_dependents(self, class_id: str) -> Dict[str, int]:
        return {
            "users": count_rows(self.db, User, class_id=class_id),
            "terms": count_rows(self.db, Term, class_id=class_id),
            "subjects": self.db.scalar(
                select(func.count()).select_from(Subject).join(Subject.term).where(Term.class_id == class_id)
            ) or 0,
        }

    def _check_class(self, name: str, order: int, exclude_id: Optional[str] = None) -> None:
        if is_taken(self.db, SchoolClass, exclude_id, order=order):
            refuse(DuplicateOrderError("A class with this order already exists", order))
        if is_taken(self.db, SchoolClass, exclude_id, name=name):
            refuse(DuplicateNameError("A class with this name already exists", name))

    def create_class(self, name: str, order: int, description: Optional[str] = None) -> SchoolClass:
        self._check_class(name, order)
        school_class = SchoolClass(name=name, description=description, order=order)
        self.db.add(school_class)
        commit_or_recheck(self.db, lambda: self._check_class(name, order))
        logger.info("Created class %s (order %s)", name, order)
        return school_class

    def update_class(self, class_id: str, *, name: str = KEEP, description: Optional[str] = KEEP,
                     order: int = KEEP) -> SchoolClass:
        school_class = self.get_class(class_id)
        name = school_class.name if name is KEEP else name
        order = school_class.order if order is KEEP else order
        self._check_class(name, order, exclude_id=class_id)
        school_class.name, school_class.order = name, order
        if description is not KEEP:
            school_class.description = description
        commit_or_recheck(self.db, lambda: self._check_class(name, order, exclude_id=class_id))
        logger.info("Updated class %s", class_id)
        return school_class

    def delete_class(self, class_id: str) -> None:
        school_class = self.get_class(class_id)
        self._refuse_if_dependents("Class", self.class_dependents(class_id))
        self.db.delete(school_class)
        commit_or_recheck(self.db, lambda: self._refuse_if_dependents("Class", self.class_dependents(class_id)))
        logger.info("Deleted class %s", class_id)

    # ============= Terms =============

    def list_terms(self, class_id: Optional[str] = None) -> List[Term]:
        stmt = (
            select(Term).join(Term.school_class)
            .options(selectinload(Term.school_class))
            .order_by(SchoolClass.order, Term.order)
        )
        if class_id:
            stmt = stmt.where(Term.class_id == class_id)
        return list(self.db.scalars(stmt))

    def get_term(self, term_id: str) -> Term:
        term = self.db.get(Term, term_id)
        if term is None:
            raise NotFoundError("Term", term_id)
        return term

    def term_dependents(self, term_id: str) -> Dict[str, int]:
        return {"subjects": count_rows(self.db, Subject, term_id=term_id)}

    def _check_term(self, class_id: str, name: str, order: int, exclude_id: Optional[str] = None) -> None:
        scope = {"classId": class_id}
        if is_taken(self.db, Term, exclude_id, class_id=class_id, order=order):
            refuse(DuplicateOrderError("A term with this order already exists for this class", order, scope))
        if is_taken(self.db, Term, exclude_id, class_id=class_id, name=name):
            refuse(DuplicateNameError("A term with this name already exists for this class", name, scope))

    def create_term(self, class_id: str, name: str, order: int) -> Term:
        if self.db.get(SchoolClass, class_id) is None:
            refuse(UnknownClassError(class_id))
        self._check_term(class_id, name, order)
        term = Term(class_id=class_id, name=name, order=order)
        self.db.add(term)
        commit_or_recheck(self.db, lambda: self._check_term(class_id, name, order))
        logger.info("Created term %s under class %s (order %s)", name, class_id, order)
        return term

    def update_term(self, term_id: str, *, name: str = KEEP, class_id: str = KEEP, order: int = KEEP) -> Term:
        term = self.get_term(term_id)
        name = term.name if name is KEEP else name
        order = term.order if order is KEEP else order
        class_id = term.class_id if class_id is KEEP else class_id
        if class_id != term.class_id and self.db.get(SchoolClass, class_id) is None:
            refuse(UnknownClassError(class_id))
        self._check_term(class_id, name, order, exclude_id=term_id)
        term.name, term.class_id, term.order = name, class_id, order
        commit_or_recheck(self.db, lambda: self._check_term(class_id, name, order, exclude_id=term_id))
        logger.info("Updated term %s", term_id)
        return term

    def delete_term(self, term_id: str) -> None:
        term = self.get_term(term_id)
        self._refuse_if_dependents("Term", self.term_dependents(term_id))
        self.db.delete(term)
        commit_or_recheck(self.db, lambda: self._refuse_if_dependents("Term", self.term_dependents(term_id)))
        logger.info("Deleted term %s", term_id)

    # ============= Subjects =============

    def list_subjects(self, term_id: Optional[str] = None, class_id: Optional[str] = None) -> List[Subject]:
        stmt = (
            select(Subject).join(Subject.term).join(Term.school_class)
            .options(selectinload(Subject.term).selectinload(Term.school_class))
            .order_by(SchoolClass.order, Term.order, Subject.name)
        )
        if term_id:
            stmt = stmt.where(Subject.term_id == term_id)
        elif class_id:
            stmt = stmt.where(Term.class_id == class_id)
        return list(self.db.scalars(stmt))

    def get_subject(self, subject_id: str) -> Subject:
        subject = self.db.get(Subject, subject_id)
        if subject is None:
            raise NotFoundError("Subject", subject_id)
        return subject

    def subject_dependents(self, subject_id: str) -> Dict[str, int]:
        return {"resources": count_rows(self.db, Resource, subject_id=subject_id)}

    def _check_subject(self, term_id: str, code: str, exclude_id: Optional[str] = None) -> None:
        if is_taken(self.db, Subject, exclude_id, term_id=term_id, code=code):
            refuse(DuplicateCodeError("A subject with this code already exists for this term", code, {"termId": term_id}))

    def create_subject(self, term_id: str, name: str, code: str) -> Subject:
        if self.db.get(Term, term_id) is None:
            refuse(UnknownTermError(term_id))
        self._check_subject(term_id, code)
        subject = Subject(term_id=term_id, name=name, code=code)
        self.db.add(subject)
        commit_or_recheck(self.db, lambda: self._check_subject(term_id, code))
        logger.info("Created subject %s (%s) under term %s", name, code, term_id)
        return subject

    def update_subject(self, subject_id: str, *, name: str = KEEP, code: str = KEEP, term_id: str = KEEP) -> Subject:
        subject = self.get_subject(subject_id)
        code = subject.code if code is KEEP else code
        term_id = subject.term_id if term_id is KEEP else term_id
        if term_id != subject.term_id and self.db.get(Term, term_id) is None:
            refuse(UnknownTermError(term_id))
        self._check_subject(term_id, code, exclude_id=subject_id)
        if name is not KEEP:
            subject.name = name
        subject.code, subject.term_id = code, term_id
        commit_or_recheck(self.db, lambda: self._check_subject(term_id, code, exclude_id=subject_id))
        logger.info("Updated subject %s", subject_id)
        return subject

    def delete_subject(self, subject_id: str) -> None:
        subject = self.get_subject(subject_id)
        self._refuse_if_dependents("Subject", self.subject_dependents(subject_id))
        self.db.delete(subject)
        commit_or_recheck(self.db, lambda: self._refuse_if_dependents("Subject", self.subject_dependents(subject_id)))
        logger.info("Deleted subject %s", subject_id)

    # ============= Public tree =============

    def catalog_tree(self, published_only: bool = True) -> List[Dict[str, Any]]:
        """Class -> Term -> Subject -> Resource tree in stored display order."""
        classes = self.db.scalars(
            select(SchoolClass).order_by(SchoolClass.order).options(
                selectinload(SchoolClass.terms).selectinload(Term.subjects)
                .selectinload(Subject.resources).selectinload(Resource.quiz)
            )
        )
        tree = []
        for school_class in classes:
            terms = []
            for term in school_class.terms:
                subjects = []
                for subject in term.subjects:
                    resources = [r for r in subject.resources if r.is_published or not published_only]
                    subjects.append({"subject": subject, "resources": resources})
                terms.append({"term": term, "subjects": subjects})
            tree.append({"class": school_class, "terms": terms})
        return tree

    @staticmethod
    def _refuse_if_dependents(entity: str, dependents: Dict[str, int]) -> None:
        if any(dependents.values()):
            refuse(HasDependentsError(entity, dependents))
