import json

import pytest


def seed_subject(client, admin):
    c = client.post("/v1/admin/classes", headers=admin, json={"name": "Class VI", "order": 9}).json()
    t = client.post("/v1/admin/terms", headers=admin, json={"name": "Term 1", "classId": c["id"], "order": 1}).json()
    s = client.post("/v1/admin/subjects", headers=admin, json={"name": "Mathematics", "code": "MATH-6", "termId": t["id"]}).json()
    return c, t, s


def upload_quiz(client, headers, subject_id, correct=(0, 1)):
    questions = [
        {"text": f"Q{i + 1}", "options": ["A", "B", "C", "D"], "correctAnswer": a, "explanation": f"E{i + 1}"}
        for i, a in enumerate(correct)
    ]
    r = client.post("/v1/resources/upload", headers=headers, data={
        "title": "Unit test", "type": "QUIZ", "subjectId": subject_id,
        "duration": "20", "difficulty": "EASY", "questions": json.dumps(questions),
    })
    assert r.status_code == 201, r.text
    return r.json()


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200 and r.json()["status"] == "ok"


def test_mock_login_issues_usable_token(client):
    r = client.post("/v1/auth/mock-login", json={"user_id": "admin-9", "roles": ["ADMIN"], "email": "a@school.test"})
    assert r.status_code == 200
    hdr = {"Authorization": f"Bearer {r.json()['access_token']}"}
    stats = client.get("/v1/admin/stats", headers=hdr).json()
    assert stats["totalTeachers"] == 1


def test_roles_enforced(client, student):
    assert client.get("/v1/admin/classes").status_code in (401, 403)
    r = client.post("/v1/admin/classes", headers=student, json={"name": "Class VI", "order": 9})
    assert r.status_code == 403
    assert r.json()["error"]["type"] == "http_error"


def test_admin_catalog_crud(client, admin):
    c, t, s = seed_subject(client, admin)
    assert (c["name"], c["order"], c["counts"]) == ("Class VI", 9, {"users": 0, "terms": 0, "subjects": 0})
    assert t["className"] == "Class VI" and t["classOrder"] == 9
    assert s["termName"] == "Term 1" and s["code"] == "MATH-6"
    classes = client.get("/v1/admin/classes", headers=admin).json()
    assert classes[0]["counts"] == {"users": 0, "terms": 1, "subjects": 1}
    r = client.put(f"/v1/admin/classes/{c['id']}", headers=admin, json={"description": "Sixth"})
    assert r.status_code == 200 and r.json()["description"] == "Sixth" and r.json()["order"] == 9
    assert [x["code"] for x in client.get("/v1/admin/subjects", headers=admin, params={"classId": c["id"]}).json()] == ["MATH-6"]


def test_duplicate_order_is_409_with_envelope(client, admin):
    seed_subject(client, admin)
    r = client.post("/v1/admin/classes", headers=admin, json={"name": "Class VII", "order": 9})
    assert r.status_code == 409
    err = r.json()["error"]
    assert err["type"] == "structural_conflict"
    assert err["details"] == {"field": "order", "value": 9}


def test_unknown_parent_is_400(client, admin):
    r = client.post("/v1/admin/terms", headers=admin, json={"name": "Term 1", "classId": "nope", "order": 1})
    assert r.status_code == 400
    assert r.json()["error"]["type"] == "unknown_reference"


def test_delete_with_children_is_409(client, admin):
    c, t, s = seed_subject(client, admin)
    r = client.delete(f"/v1/admin/terms/{t['id']}", headers=admin)
    assert r.status_code == 409
    assert r.json()["error"]["details"]["dependents"] == {"subjects": 1}
    assert client.delete(f"/v1/admin/subjects/{s['id']}", headers=admin).status_code == 200
    assert client.delete(f"/v1/admin/terms/{t['id']}", headers=admin).status_code == 200


def test_missing_entity_is_404(client, admin):
    r = client.put("/v1/admin/classes/nope", headers=admin, json={"name": "X"})
    assert r.status_code == 404
    assert r.json()["error"]["type"] == "not_found"


def test_validation_error_envelope(client, admin):
    r = client.post("/v1/admin/classes", headers=admin, json={"order": 9})
    assert r.status_code == 422
    assert r.json()["error"]["type"] == "validation_error"


def test_file_upload_and_listing(client, admin, teacher, student):
    _, _, s = seed_subject(client, admin)
    r = client.post(
        "/v1/resources/upload", headers=teacher,
        data={"title": "Syllabus", "type": "SYLLABUS", "subjectId": s["id"]},
        files={"file": ("syllabus.pdf", b"%PDF-1.4", "application/pdf")},
    )
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["fileName"] == "syllabus.pdf" and body["uploadedBy"] == "teacher-1"
    client.put(f"/v1/resources/{body['id']}", headers=teacher, json={"isPublished": False})
    assert client.get("/v1/resources", headers=student).json() == []
    assert len(client.get("/v1/resources", headers=teacher, params={"subjectId": s["id"]}).json()) == 1


def test_students_cannot_upload(client, admin, student):
    _, _, s = seed_subject(client, admin)
    r = client.post("/v1/resources/upload", headers=student, data={"title": "X", "type": "SYLLABUS", "subjectId": s["id"]})
    assert r.status_code == 403


def test_malformed_questions_rejected(client, admin, teacher):
    _, _, s = seed_subject(client, admin)
    r = client.post("/v1/resources/upload", headers=teacher, data={
        "title": "Quiz", "type": "QUIZ", "subjectId": s["id"], "questions": "not json",
    })
    assert r.status_code == 400
    assert r.json()["error"]["type"] == "invalid_question"


def test_quiz_flow(client, admin, teacher, student, other_student):
    _, _, s = seed_subject(client, admin)
    resource = upload_quiz(client, teacher, s["id"])
    quiz = resource["quiz"]
    assert (quiz["totalMarks"], quiz["passingMarks"], quiz["difficulty"]) == (2, 2, "EASY")

    learner = client.get(f"/v1/quizzes/{quiz['id']}", headers=student).json()
    assert learner["context"]["className"] == "Class VI"
    assert [q["order"] for q in learner["questions"]] == [1, 2]
    assert all("correctAnswer" not in q and "explanation" not in q for q in learner["questions"])

    authoring = client.get(f"/v1/quizzes/{quiz['id']}/authoring", headers=teacher).json()
    assert [q["correctAnswer"] for q in authoring["questions"]] == [0, 1]
    assert client.get(f"/v1/quizzes/{quiz['id']}/authoring", headers=student).status_code == 403

    q1, q2 = (q["id"] for q in learner["questions"])
    r = client.post("/v1/quizzes/submit", headers=student, json={"quizId": quiz["id"], "answers": {q1: 1, q2: 4}, "timeSpent": 75})
    assert r.status_code == 201
    result = r.json()
    assert (result["userId"], result["score"], result["totalMarks"], result["percentage"]) == ("student-1", 1, 2, 50.0)
    assert result["passed"] is False
    assert [(a["questionId"], a["isCorrect"]) for a in result["answers"]] == [(q1, True), (q2, False)]
    assert [q["correctAnswer"] for q in result["quiz"]["questions"]] == [1, 2]
    assert result["quiz"]["context"]["subjectCode"] == "MATH-6"

    attempt_id = result["id"]
    assert client.get(f"/v1/quizzes/attempts/{attempt_id}", headers=student).status_code == 200
    assert client.get(f"/v1/quizzes/attempts/{attempt_id}", headers=other_student).status_code == 403
    assert client.get(f"/v1/quizzes/attempts/{attempt_id}", headers=teacher).status_code == 200
    assert [a["id"] for a in client.get("/v1/quizzes/attempts", headers=student).json()] == [attempt_id]
    assert client.get("/v1/quizzes/attempts", headers=other_student).json() == []

    r = client.delete(f"/v1/resources/{resource['id']}", headers=teacher)
    assert r.status_code == 409
    assert r.json()["error"]["details"]["dependents"] == {"attempts": 1}


def test_catalog_tree(client, admin, teacher, student):
    _, _, s = seed_subject(client, admin)
    upload_quiz(client, teacher, s["id"])
    tree = client.get("/v1/classes", headers=student).json()
    subject = tree[0]["terms"][0]["subjects"][0]
    assert subject["code"] == "MATH-6"
    assert subject["resources"][0]["quiz"]["totalMarks"] == 2


def test_stats(client, admin, teacher):
    _, _, s = seed_subject(client, admin)
    upload_quiz(client, teacher, s["id"])
    stats = client.get("/v1/admin/stats", headers=admin).json()
    assert stats["totalResources"] == 1 and stats["totalQuizzes"] == 1 and stats["completedAttempts"] == 0


@pytest.mark.parametrize("path", ["/v1/quizzes/nope", "/v1/quizzes/attempts/nope"])
def test_unknown_quiz_paths_404(client, student, path):
    assert client.get(path, headers=student).status_code == 404
