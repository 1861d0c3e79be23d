def _create(client, headers, **overrides):
    body = {
        "review_id": 1,
        "title": "Capitals quiz",
        "subject": "Geography",
        "grade": "10",
        "start_date": "2025-03-20",
        "end_date": "2025-03-27",
        "audience_kind": "class",
        "target_class_ids": [5],
    }
    body.update(overrides)
    return client.post("/api/teacher/assessments", json=body, headers=headers.teacher())


def test_health(client):
    res = client.get("/api/health")
    assert res.status_code == 200
    assert res.json()["status"] == "ok"


def test_teacher_creates_and_lists(client, world, headers):
    res = _create(client, headers)
    assert res.status_code == 200
    body = res.json()
    assert body["error"] is None
    assert body["request_id"]
    created = body["data"]
    assert created["status"] == "scheduled"
    assert created["audience_details"] == "Geography Class"

    listed = client.get("/api/teacher/assessments?subject=All%20Subjects", headers=headers.teacher()).json()["data"]
    assert [a["assessment_id"] for a in listed] == [created["assessment_id"]]


def test_request_id_is_echoed(client, world, headers):
    res = client.get("/api/teacher/assessments", headers={**headers.teacher(), "X-Request-ID": "abc-123"})
    assert res.headers["X-Request-ID"] == "abc-123"
    assert res.json()["request_id"] == "abc-123"


def test_learner_cannot_use_teacher_routes(client, world, headers):
    res = client.get("/api/teacher/assessments", headers=headers.learner(2))
    assert res.status_code == 403
    assert res.json()["error"]["code"] == "HTTP_ERROR"


def test_missing_identity_is_unauthorized(client, world):
    res = client.get("/api/learner/assessments")
    assert res.status_code == 401


def test_domain_errors_use_the_envelope(client, world, headers):
    res = _create(client, headers, end_date="2025-03-01")
    assert res.status_code == 422
    assert res.json()["error"]["code"] == "VALIDATION_ERROR"
    assert res.json()["data"] is None

    res = _create(client, headers, audience_kind="school")
    assert res.status_code == 422

    res = client.get("/api/teacher/assessments/999", headers=headers.teacher())
    assert res.status_code == 404
    assert res.json()["error"]["code"] == "NOT_FOUND"


def test_lifecycle_endpoints(client, world, headers):
    aid = _create(client, headers, as_scheduled=False).json()["data"]["assessment_id"]

    res = client.post(f"/api/teacher/assessments/{aid}/send-now", headers=headers.teacher())
    assert res.status_code == 409
    assert res.json()["error"]["code"] == "INVALID_TRANSITION"

    assert client.post(f"/api/teacher/assessments/{aid}/schedule", headers=headers.teacher()).json()["data"]["status"] == "scheduled"

    res = client.post(
        f"/api/teacher/assessments/{aid}/reschedule",
        json={"start_date": "2025-04-01"},
        headers=headers.teacher(),
    )
    assert res.json()["data"]["end_date"] == "2025-04-08"

    res = client.patch(f"/api/teacher/assessments/{aid}", json={"title": "Capitals v2"}, headers=headers.teacher())
    assert res.json()["data"]["title"] == "Capitals v2"

    assert client.post(f"/api/teacher/assessments/{aid}/send-now", headers=headers.teacher()).json()["data"]["status"] == "active"
    assert client.post(f"/api/teacher/assessments/{aid}/cancel", headers=headers.teacher()).json()["data"]["status"] == "cancelled"


def test_learner_flow_end_to_end(client, world, headers):
    aid = _create(client, headers).json()["data"]["assessment_id"]
    learner = headers.learner(2)

    items = client.get("/api/learner/assessments?bucket=in_progress", headers=learner).json()["data"]
    assert [i["assessment_id"] for i in items] == [aid]
    assert items[0]["time_remaining"] == "5 days"

    opened = client.get(f"/api/learner/assessments/{aid}", headers=learner).json()["data"]
    assert len(opened["questions"]) == 2

    res = client.put(f"/api/learner/assessments/{aid}/progress", json={"answers": {"11": "A"}}, headers=learner)
    assert res.json()["data"]["answered"] == 1

    res = client.post(f"/api/learner/assessments/{aid}/submit", json={"answers": {"12": "B"}}, headers=learner)
    result = res.json()["data"]
    assert result["score"] == 100
    assert result["submission_status"] == "completed"

    res = client.post(f"/api/learner/assessments/{aid}/submit", json={"answers": {}}, headers=learner)
    assert res.status_code == 409
    assert res.json()["error"]["code"] == "ALREADY_SUBMITTED"

    review = client.get(f"/api/learner/assessments/{aid}/result", headers=learner).json()["data"]
    assert review["questions"][0]["correct_answer"] == "Paris"

    summary = client.get("/api/learner/assessments/summary", headers=learner).json()["data"]
    assert summary["by_bucket"]["completed"] == 1
    assert summary["average_score_display"] == "100%"


def test_invalid_bucket_is_rejected(client, world, headers):
    res = client.get("/api/learner/assessments?bucket=later", headers=headers.learner(2))
    assert res.status_code == 422
    assert res.json()["error"]["code"] == "VALIDATION_ERROR"


def test_untargeted_learner_gets_not_found(client, world, headers):
    aid = _create(client, headers).json()["data"]["assessment_id"]
    res = client.get(f"/api/learner/assessments/{aid}", headers=headers.learner(4))
    assert res.status_code == 404


def test_reminders_grading_and_notifications(client, world, headers):
    aid = _create(client, headers).json()["data"]["assessment_id"]
    client.post(f"/api/learner/assessments/{aid}/submit", json={"answers": {"11": "B"}}, headers=headers.learner(2))

    res = client.post(
        f"/api/teacher/assessments/{aid}/reminders",
        json={"message": "Due Thursday"},
        headers=headers.teacher(),
    )
    assert res.json()["data"]["recipients"] == [3]

    roster = client.get(f"/api/teacher/assessments/{aid}/submissions", headers=headers.teacher()).json()["data"]
    assert {r["learner_id"]: r["status"] for r in roster["submissions"]} == {2: "submitted", 3: "pending"}

    res = client.put("/api/teacher/responses/2/1/grade", json={"score": 101}, headers=headers.teacher())
    assert res.status_code == 422

    res = client.put(
        "/api/teacher/responses/2/1/grade",
        json={"score": 70, "feedback": "Nice reasoning"},
        headers=headers.teacher(),
    )
    assert res.json()["data"]["score"] == 70

    notes = client.get("/api/notifications", headers=headers.learner(3)).json()["data"]
    assert [n["type"] for n in notes] == ["assessment_reminder"]
    assert notes[0]["message"] == "Due Thursday"

    notes = client.get("/api/notifications", headers=headers.learner(2)).json()["data"]
    assert [n["type"] for n in notes] == ["assessment_graded"]

    res = client.patch(f"/api/notifications/{notes[0]['id']}/read", headers=headers.learner(2))
    assert res.json()["data"]["is_read"] is True
    assert client.get("/api/notifications", headers=headers.learner(2)).json()["data"] == []

    res = client.patch(f"/api/notifications/{notes[0]['id']}/read", headers=headers.learner(3))
    assert res.status_code == 404


def test_classroom_reports_and_response_details(client, world, headers):
    aid = _create(client, headers).json()["data"]["assessment_id"]
    client.post(f"/api/learner/assessments/{aid}/submit", json={"answers": {"11": "A"}}, headers=headers.learner(2))
    client.put(f"/api/learner/assessments/{aid}/progress", json={"answers": {"11": "A"}}, headers=headers.learner(3))

    res = client.put("/api/teacher/responses/3/1/grade", json={"score": 90}, headers=headers.teacher())
    assert res.status_code == 409
    assert res.json()["error"]["code"] == "NOT_SUBMITTED"

    report = client.get(
        "/api/teacher/classrooms/5/submissions?subject=Geography", headers=headers.teacher()
    ).json()["data"]
    assert report["classroom_name"] == "10A1"
    assert [(r["learner_id"], r["status"]) for r in report["submissions"]] == [(2, "submitted"), (3, "pending")]
    assert report["stats"]["average_score_display"] == "50%"

    board = client.get("/api/teacher/classrooms/5/leaderboard", headers=headers.teacher()).json()["data"]
    assert [(r["rank"], r["learner_id"]) for r in board["learners"]] == [(1, 2), (None, 3)]

    details = client.get("/api/teacher/responses/2/1", headers=headers.teacher()).json()["data"]
    assert details["score"] == 50
    assert [q["is_correct"] for q in details["questions"]] == [True, False]

    assert client.get("/api/teacher/responses/4/1", headers=headers.teacher()).status_code == 404
    assert client.get("/api/teacher/classrooms/9/leaderboard", headers=headers.learner(4)).status_code == 403


def test_student_role_header_is_treated_as_learner(client, world, headers):
    _create(client, headers)
    res = client.get("/api/learner/assessments", headers={"X-User-Id": "2", "X-User-Role": "Student"})
    assert res.status_code == 200
    assert len(res.json()["data"]) == 1
    assert client.get("/api/teacher/assessments", headers={"X-User-Id": "2", "X-User-Role": "student"}).status_code == 403
