import pytest

from schoolhub.models.orm import Resource, ResourceType, SchoolClass, User, UserRole
from schoolhub.services.catalog import CatalogStore
from schoolhub.services.errors import (
    DuplicateCodeError, DuplicateNameError, DuplicateOrderError, HasDependentsError,
    NotFoundError, UnknownClassError, UnknownTermError
)


def test_class_order_must_be_unique(catalog, db):
    catalog.create_class("Class VI", 9)
    with pytest.raises(DuplicateOrderError) as err:
        catalog.create_class("Class VII", 9)
    assert err.value.details == {"field": "order", "value": 9}
    assert err.value.status_code == 409
    assert [c.name for c in catalog.list_classes()] == ["Class VI"]


def test_class_name_must_be_unique(catalog):
    catalog.create_class("Class VI", 9)
    with pytest.raises(DuplicateNameError):
        catalog.create_class("Class VI", 10)


def test_update_class_excludes_itself(catalog):
    c = catalog.create_class("Class VI", 9)
    updated = catalog.update_class(c.id, order=9, description="Sixth grade")
    assert updated.order == 9
    assert updated.description == "Sixth grade"


def test_update_class_into_taken_order_leaves_row_unchanged(catalog):
    catalog.create_class("Class VI", 9)
    other = catalog.create_class("Class VII", 10)
    with pytest.raises(DuplicateOrderError):
        catalog.update_class(other.id, order=9)
    catalog.db.rollback()
    assert catalog.get_class(other.id).order == 10


def test_classes_listed_by_order(catalog):
    for name, order in [("Class VIII", 11), ("Class VI", 9), ("Class VII", 10)]:
        catalog.create_class(name, order)
    assert [c.order for c in catalog.list_classes()] == [9, 10, 11]


def test_term_order_unique_within_class_only(catalog):
    six = catalog.create_class("Class VI", 9)
    seven = catalog.create_class("Class VII", 10)
    catalog.create_term(six.id, "Term 1", 1)
    catalog.create_term(seven.id, "Term 1", 1)
    with pytest.raises(DuplicateOrderError) as err:
        catalog.create_term(six.id, "Term 2", 1)
    assert err.value.details["scope"] == {"classId": six.id}
    with pytest.raises(DuplicateNameError):
        catalog.create_term(six.id, "Term 1", 2)


def test_create_term_unknown_class(catalog):
    with pytest.raises(UnknownClassError) as err:
        catalog.create_term("missing", "Term 1", 1)
    assert err.value.status_code == 400
    assert "missing" in err.value.message


def test_move_term_checks_destination_class(catalog):
    six = catalog.create_class("Class VI", 9)
    seven = catalog.create_class("Class VII", 10)
    catalog.create_term(seven.id, "Term 1", 1)
    term = catalog.create_term(six.id, "Term 1", 1)
    with pytest.raises(DuplicateOrderError):
        catalog.update_term(term.id, class_id=seven.id)
    with pytest.raises(UnknownClassError):
        catalog.update_term(term.id, class_id="missing")


def test_subject_code_unique_within_term(catalog, subject):
    with pytest.raises(DuplicateCodeError) as err:
        catalog.create_subject(subject.term_id, "Maths again", "MATH-6")
    assert err.value.details["field"] == "code"
    other_term = catalog.create_term(subject.term.class_id, "Term 2", 2)
    assert catalog.create_subject(other_term.id, "Mathematics", "MATH-6").code == "MATH-6"


def test_create_subject_unknown_term(catalog):
    with pytest.raises(UnknownTermError):
        catalog.create_subject("missing", "Mathematics", "MATH-6")


def test_update_subject_keeps_own_code(catalog, subject):
    assert catalog.update_subject(subject.id, name="Maths", code="MATH-6").name == "Maths"


def test_subjects_listed_by_class_term_then_name(catalog):
    seven = catalog.create_class("Class VII", 10)
    six = catalog.create_class("Class VI", 9)
    t7 = catalog.create_term(seven.id, "Term 1", 1)
    t6b = catalog.create_term(six.id, "Term 2", 2)
    t6a = catalog.create_term(six.id, "Term 1", 1)
    catalog.create_subject(t7.id, "Algebra", "ALG-7")
    catalog.create_subject(t6b.id, "Biology", "BIO-6")
    catalog.create_subject(t6a.id, "Science", "SCI-6")
    catalog.create_subject(t6a.id, "English", "ENG-6")
    assert [s.code for s in catalog.list_subjects()] == ["ENG-6", "SCI-6", "BIO-6", "ALG-7"]
    assert [s.code for s in catalog.list_subjects(class_id=six.id)] == ["ENG-6", "SCI-6", "BIO-6"]
    assert [s.code for s in catalog.list_subjects(term_id=t6a.id)] == ["ENG-6", "SCI-6"]


def test_delete_class_refused_with_dependents(catalog, db):
    c = catalog.create_class("Class VI", 9)
    catalog.create_term(c.id, "Term 1", 1)
    db.add(User(email="kid@school.test", name="Kid", role=UserRole.STUDENT, class_id=c.id))
    db.commit()
    with pytest.raises(HasDependentsError) as err:
        catalog.delete_class(c.id)
    assert err.value.dependents == {"users": 1, "terms": 1, "subjects": 0}
    db.rollback()
    assert db.get(SchoolClass, c.id) is not None


def test_delete_term_and_subject_refused_with_children(catalog, subject, db):
    with pytest.raises(HasDependentsError) as err:
        catalog.delete_term(subject.term_id)
    assert err.value.dependents == {"subjects": 1}
    db.rollback()
    db.add(Resource(title="Syllabus", type=ResourceType.SYLLABUS, subject_id=subject.id, uploaded_by="t"))
    db.commit()
    with pytest.raises(HasDependentsError) as err:
        catalog.delete_subject(subject.id)
    assert err.value.dependents == {"resources": 1}


def test_delete_empty_chain(catalog, subject):
    term_id, class_id = subject.term_id, subject.term.class_id
    catalog.delete_subject(subject.id)
    catalog.delete_term(term_id)
    catalog.delete_class(class_id)
    with pytest.raises(NotFoundError):
        catalog.get_class(class_id)


def test_catalog_tree_hides_unpublished(catalog, subject, db):
    db.add_all([
        Resource(title="Syllabus", type=ResourceType.SYLLABUS, subject_id=subject.id, uploaded_by="t"),
        Resource(title="Draft", type=ResourceType.QUESTION_PAPER, subject_id=subject.id, uploaded_by="t", is_published=False),
    ])
    db.commit()
    tree = catalog.catalog_tree()
    assert tree[0]["class"].name == "Class VI"
    node = tree[0]["terms"][0]["subjects"][0]
    assert node["subject"].code == "MATH-6"
    assert [r.title for r in node["resources"]] == ["Syllabus"]
    all_titles = {r.title for r in catalog.catalog_tree(published_only=False)[0]["terms"][0]["subjects"][0]["resources"]}
    assert all_titles == {"Syllabus", "Draft"}


def test_delete_class_counts_subjects_under_its_terms(catalog, subject, db):
    class_id = subject.term.class_id
    with pytest.raises(HasDependentsError) as err:
        catalog.delete_class(class_id)
    assert err.value.dependents == {"users": 0, "terms": 1, "subjects": 1}
    assert "1 subjects" in err.value.message


# ============= Storage-level guards =============

def test_duplicate_class_order_caught_by_unique_constraint(catalog, interleave):
    catalog.create_class("Class VI", 9)
    calls = interleave(catalog, "_check_class", skip=True)
    with pytest.raises(DuplicateOrderError) as err:
        catalog.create_class("Class VII", 9)
    assert len(calls) == 2
    assert err.value.details == {"field": "order", "value": 9}
    assert [c.name for c in catalog.list_classes()] == ["Class VI"]


def test_duplicate_term_order_caught_by_unique_constraint(catalog, interleave):
    six = catalog.create_class("Class VI", 9)
    catalog.create_term(six.id, "Term 1", 1)
    interleave(catalog, "_check_term", skip=True)
    with pytest.raises(DuplicateOrderError) as err:
        catalog.create_term(six.id, "Term 2", 1)
    assert err.value.details["scope"] == {"classId": six.id}
    assert [t.name for t in catalog.list_terms(class_id=six.id)] == ["Term 1"]


def test_duplicate_subject_code_caught_by_unique_constraint(catalog, subject, interleave):
    interleave(catalog, "_check_subject", skip=True)
    with pytest.raises(DuplicateCodeError):
        catalog.create_subject(subject.term_id, "Maths again", "MATH-6")
    assert [s.name for s in catalog.list_subjects(term_id=subject.term_id)] == ["Mathematics"]


def test_concurrent_term_insert_reported_as_duplicate(catalog, other_db, interleave):
    six = catalog.create_class("Class VI", 9)
    rival = CatalogStore(other_db)
    interleave(catalog, "_check_term", then=lambda: rival.create_term(six.id, "Term A", 1))
    with pytest.raises(DuplicateOrderError):
        catalog.create_term(six.id, "Term B", 1)
    assert [t.name for t in catalog.list_terms(class_id=six.id)] == ["Term A"]


def test_delete_class_blocked_by_foreign_key(catalog, db, interleave):
    six = catalog.create_class("Class VI", 9)
    catalog.create_term(six.id, "Term 1", 1)
    interleave(catalog, "_refuse_if_dependents", skip=True)
    with pytest.raises(HasDependentsError) as err:
        catalog.delete_class(six.id)
    assert err.value.dependents["terms"] == 1
    assert db.get(SchoolClass, six.id) is not None
