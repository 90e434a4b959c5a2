STAR_ANSWER = (
    "The situation was a failing deploy pipeline on our project. My task was to restore releases. "
    "I implemented a rollback script and we built alerts. As a result we reduced failed deploys by 40%."
)


def _start(client, **overrides):
    body = {"role": "Backend Engineer", "interview_type": "Full Simulation", "interview_mode": "full"}
    body.update(overrides)
    resp = client.post("/api/interview/start", json=body)
    assert resp.status_code == 201
    return resp.json()


def test_full_flow(client):
    start = _start(client, company="Hooli", candidate_context="Six years of Python services.")
    session_id = start["session_id"]
    assert "Hooli" in start["first_message"]
    assert start["question"]["category"] == "behavioral"
    assert [msg["kind"] for msg in start["ui_messages"]] == ["greeting", "question"]

    turn = client.post("/api/interview/next-step", json={"session_id": session_id, "answer": STAR_ANSWER})
    assert turn.status_code == 200
    body = turn.json()
    assert body["action"] == "CONTINUE"
    assert body["question"]["text"].startswith("Question 1")
    assert body["analysis"]["is_weak"] is False
    assert [event["span"] for event in body["event_log"]] == ["analyze", "policy", "dialogue"]

    end = client.post("/api/interview/end", json={"session_id": session_id})
    assert end.status_code == 200
    assert end.json()["status"] == "completed"
    assert end.json()["end_reason"] == "user_ended"
    assert end.json()["report_id"]

    again = client.post("/api/interview/end", json={"session_id": session_id})
    assert again.json()["report_id"] == end.json()["report_id"]

    late = client.post("/api/interview/next-step", json={"session_id": session_id, "answer": "hello?"})
    assert late.json()["action"] == "NOOP"

    session = client.get(f"/api/interview/session/{session_id}").json()
    assert session["session"]["status"] == "completed"
    assert session["metrics"]["total_questions"] == 2
    assert session["summary"]["questions_answered"] == 1


def test_stage_transition_through_api(client):
    session_id = _start(client)["session_id"]
    bodies = [
        client.post("/api/interview/next-step", json={"session_id": session_id, "answer": STAR_ANSWER}).json()
        for _ in range(3)
    ]
    assert bodies[1]["current_difficulty"] == "hard"
    assert bodies[2]["current_stage"] == 2
    assert bodies[2]["transition_text"]
    assert bodies[2]["question"]["category"] == "theory"


def test_rudeness_escalation(client, services):
    session_id = _start(client)["session_id"]
    first = client.post(
        "/api/interview/next-step", json={"session_id": session_id, "answer": "This is a stupid question."}
    ).json()
    assert first["is_warning"] is True
    assert first["warnings"] == 1
    assert first["status"] == "ongoing"

    second = client.post("/api/interview/next-step", json={"session_id": session_id, "answer": "Shut up."}).json()
    assert second["action"] == "END_INTERVIEW"
    assert second["end_reason"] == "inappropriate_behavior"
    assert second["report_id"]
    assert services.reports.count_for_session(session_id) == 1


def test_errors(client):
    assert client.post("/api/interview/next-step", json={"session_id": "nope", "answer": "x"}).status_code == 404
    assert client.post("/api/interview/end", json={"session_id": "nope"}).status_code == 404
    assert client.post("/api/interview/abandon", json={"session_id": "nope"}).status_code == 404
    assert client.get("/api/interview/session/nope").status_code == 404
    bad = client.post("/api/interview/start", json={"role": "", "interview_type": "Behavioral"})
    assert bad.status_code == 422
    bad_type = client.post("/api/interview/start", json={"role": "Dev", "interview_type": "Karaoke"})
    assert bad_type.status_code == 422


def test_abandon(client, services):
    session_id = _start(client)["session_id"]
    resp = client.post("/api/interview/abandon", json={"session_id": session_id})
    assert resp.status_code == 200
    assert resp.json()["status"] == "abandoned"
    assert client.post("/api/interview/abandon", json={"session_id": session_id}).status_code == 200
    assert services.reports.get_by_session(session_id) is None
    assert client.get(f"/api/report/session/{session_id}").status_code == 400

    ended = _start(client)["session_id"]
    client.post("/api/interview/end", json={"session_id": ended})
    assert client.post("/api/interview/abandon", json={"session_id": ended}).status_code == 400


def test_health(client):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_blank_answers_are_rejected(client):
    session_id = _start(client)["session_id"]
    empty = client.post("/api/interview/next-step", json={"session_id": session_id, "answer": ""})
    assert empty.status_code == 422
    blank = client.post("/api/interview/next-step", json={"session_id": session_id, "answer": "   \n "})
    assert blank.status_code == 400

    session = client.get(f"/api/interview/session/{session_id}").json()
    assert session["metrics"]["total_questions"] == 1
    assert session["summary"]["questions_answered"] == 0
    assert session["timeline"] == []


def test_session_timeline(client):
    start = _start(client)
    session_id = start["session_id"]
    for _ in range(3):
        client.post("/api/interview/next-step", json={"session_id": session_id, "answer": STAR_ANSWER})

    body = client.get(f"/api/interview/session/{session_id}").json()
    timeline = body["timeline"]
    assert [entry["index"] for entry in timeline] == [1, 2, 3]
    assert [entry["stage"] for entry in timeline] == [1, 1, 1]
    assert {entry["category"] for entry in timeline} == {"behavioral"}
    assert timeline[0]["question"] == start["question"]["text"]
    assert all(entry["score"] is not None for entry in timeline)
    assert all(entry["response_seconds"] >= 0 for entry in timeline)
    assert list(body["metrics"]["category_scores"]) == ["behavioral"]
