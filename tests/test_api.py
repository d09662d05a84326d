import uuid

from conftest import login


OPTIONS = ["2", "3", "4", "5", "6"]


def _subject(client, headers):
	name = f"Subject {uuid.uuid4().hex[:6]}"
	resp = client.post("/subjects", json={"name": name}, headers=headers)
	assert resp.status_code == 201, resp.text
	return resp.json()


def _question(client, headers, statement="What is 1 + 1?", subject="Math", tags=("arithmetic",)):
	payload = {"subject": subject, "tags": list(tags), "statement": statement, "options": OPTIONS, "correct_option": 0}
	resp = client.post("/questions", json=payload, headers=headers)
	assert resp.status_code == 201, resp.text
	return resp.json()


def test_info(client):
	assert client.get("/info").json()["status"] == "ok"


def test_auth_flow(client, coordinator):
	me = client.get("/auth/me", headers=coordinator).json()
	assert me["role"] == "coordinator"
	assert client.get("/auth/me").status_code == 401
	assert client.post("/auth/token", data={"username": "coordinator@school.test", "password": "nope"}).status_code == 401


def test_register_rejects_duplicates_and_short_passwords(client):
	email = f"{uuid.uuid4().hex[:8]}@school.test"
	payload = {"name": "Dana", "email": email, "password": "secret-pass"}
	created = client.post("/auth/register", json=payload)
	assert created.status_code == 201
	assert created.json()["role"] == "teacher"
	assert client.post("/auth/register", json=payload).status_code == 409
	short = {"name": "Eve", "email": f"x{email}", "password": "123"}
	assert client.post("/auth/register", json=short).status_code == 400


def test_logout_revokes_token(client):
	email = f"{uuid.uuid4().hex[:8]}@school.test"
	client.post("/auth/register", json={"name": "Fay", "email": email, "password": "secret-pass"})
	headers = login(client, email, "secret-pass")
	assert client.post("/auth/logout", headers=headers).status_code == 200
	assert client.get("/auth/me", headers=headers).status_code == 401


def test_teachers_are_managed_by_coordinators(client, coordinator, teacher):
	assert client.get("/teachers", headers=teacher).status_code == 403
	email = f"{uuid.uuid4().hex[:8]}@school.test"
	created = client.post("/teachers", json={"name": "Gil", "email": email}, headers=coordinator)
	assert created.status_code == 201
	teacher_id = created.json()["id"]
	assert client.post("/teachers", json={"name": "Gil", "email": email}, headers=coordinator).status_code == 409
	assert email in [t["email"] for t in client.get("/teachers", headers=coordinator).json()]
	edited = client.put(f"/teachers/{teacher_id}", json={"name": "Gil Souza", "email": email}, headers=coordinator)
	assert edited.json()["name"] == "Gil Souza"
	assert client.delete(f"/teachers/{teacher_id}", headers=coordinator).status_code == 200
	assert client.delete(f"/teachers/{teacher_id}", headers=coordinator).status_code == 404
	# password-less accounts cannot log in
	resp = client.post("/auth/token", data={"username": email, "password": ""})
	assert resp.status_code in (401, 422)


def test_subjects(client, coordinator, teacher):
	subject = _subject(client, teacher)
	assert client.post("/subjects", json={"name": f"  {subject['name']} "}, headers=teacher).status_code == 409
	assert client.post("/subjects", json={"name": "  "}, headers=teacher).status_code == 400
	assert client.put(f"/subjects/{subject['id']}", json={"name": "Renamed"}, headers=teacher).status_code == 403
	renamed_to = f"Renamed {uuid.uuid4().hex[:6]}"
	renamed = client.put(f"/subjects/{subject['id']}", json={"name": renamed_to}, headers=coordinator)
	assert renamed.json()["name"] == renamed_to
	assert renamed_to in [s["name"] for s in client.get("/subjects", headers=teacher).json()]
	assert client.delete(f"/subjects/{subject['id']}", headers=coordinator).status_code == 200


def test_question_crud_and_permissions(client, coordinator, make_teacher):
	author = make_teacher("Author")
	other = make_teacher("Other")
	question = _question(client, author)
	assert question["author_name"] == "Author"
	qid = question["id"]

	missing_option = {"subject": "Math", "statement": "x", "options": ["a", "", "c", "d", "e"], "correct_option": 0}
	assert client.post("/questions", json=missing_option, headers=author).status_code == 400

	update = {"subject": "Math", "tags": [], "statement": "Edited", "options": OPTIONS, "correct_option": 4}
	assert client.put(f"/questions/{qid}", json=update, headers=other).status_code == 403
	edited = client.put(f"/questions/{qid}", json=update, headers=author)
	assert edited.json()["statement"] == "Edited"
	assert edited.json()["correct_option"] == 4
	assert client.get(f"/questions/{qid}", headers=other).json()["statement"] == "Edited"

	assert client.delete(f"/questions/{qid}", headers=coordinator).status_code == 200
	assert client.get(f"/questions/{qid}", headers=author).status_code == 404


def test_question_filters_facets_and_export(client, make_teacher):
	author = make_teacher("Filter Author")
	marker = uuid.uuid4().hex[:8]
	_question(client, author, statement=f"Photosynthesis {marker}", subject="Biology", tags=["plants", marker])
	_question(client, author, statement=f"Mitosis {marker}", subject="Biology", tags=["cells"])

	found = client.get("/questions", params={"search": marker.upper()}, headers=author).json()
	assert len(found) == 2
	tagged = client.get("/questions", params={"search": marker, "tags": ["plants", marker]}, headers=author).json()
	assert [q["statement"] for q in tagged] == [f"Photosynthesis {marker}"]

	facet_data = client.get("/questions/facets", headers=author).json()
	assert "Biology" in facet_data["subjects"]
	assert marker in facet_data["tags"]

	export = client.get("/questions/export.csv", params={"search": marker}, headers=author)
	assert export.status_code == 200
	assert export.headers["content-type"].startswith("text/csv")
	assert "questions_" in export.headers["content-disposition"]
	body = export.content.decode("utf-8")
	assert body.startswith("\ufeff")
	assert len(body.split("\n")) == 3
	assert client.get("/questions/export.csv", params={"search": "no-such-" + marker}, headers=author).status_code == 404


def test_tag_suggestions_fall_back_to_local(client, make_teacher):
	author = make_teacher()
	marker = f"tag-{uuid.uuid4().hex[:6]}"
	_question(client, author, tags=[marker])
	assert marker in client.get("/tags", headers=author).json()["tags"]


def test_statement_draft_lifecycle(client, teacher):
	draft = client.post("/drafts", json={}, headers=teacher).json()
	draft_id = draft["draft_id"]
	assert draft["markup"] == ""

	state = client.put(f"/drafts/{draft_id}/text", json={"text": "What is 2+2?"}, headers=teacher).json()
	assert state["plain_text"] == "What is 2+2?"

	state = client.post(f"/drafts/{draft_id}/images/url", json={"url": "http://x/y.png"}, headers=teacher).json()
	assert [(i["src"], i["width"], i["height"]) for i in state["images"]] == [("http://x/y.png", 300, 200)]
	assert state["plain_text"] == "What is 2+2?\n\n"
	assert client.post(f"/drafts/{draft_id}/images/url", json={"url": " "}, headers=teacher).status_code == 400

	state = client.post(f"/drafts/{draft_id}/click", json={"index": 0}, headers=teacher).json()
	assert state["selected_index"] == 0
	state = client.post(f"/drafts/{draft_id}/images/0/resize", json={"delta_width": 20, "delta_height": -10}, headers=teacher).json()
	assert (state["images"][0]["width"], state["images"][0]["height"]) == (320, 190)
	assert "width: 320px; height: 190px;" in state["markup"]

	rejected = client.post(
		f"/drafts/{draft_id}/images/upload",
		files={"file": ("notes.txt", b"hello", "text/plain")},
		headers=teacher,
	)
	assert rejected.status_code == 400
	assert len(client.get(f"/drafts/{draft_id}", headers=teacher).json()["images"]) == 1

	state = client.post(
		f"/drafts/{draft_id}/images/upload",
		files={"file": ("dot.png", b"\x89PNG\r\n", "image/png")},
		headers=teacher,
	).json()
	assert len(state["images"]) == 2
	assert state["images"][1]["src"].startswith("data:image/png;base64,")

	state = client.delete(f"/drafts/{draft_id}/images/1", headers=teacher).json()
	assert len(state["images"]) == 1
	assert state["selected_index"] is None
	# stale index is ignored
	assert client.delete(f"/drafts/{draft_id}/images/7", headers=teacher).json()["markup"] == state["markup"]

	state = client.post(
		f"/drafts/{draft_id}/format",
		json={"kind": "bold", "selection_start": 0, "selection_end": 4},
		headers=teacher,
	).json()
	assert state["markup"].startswith("<strong>What</strong>")
	assert state["images"] == []

	saved = client.post(
		f"/drafts/{draft_id}/submit",
		json={"subject": "Math", "tags": ["sums"], "options": OPTIONS, "correct_option": 2},
		headers=teacher,
	)
	assert saved.status_code == 200, saved.text
	assert saved.json()["statement"] == state["markup"]
	assert client.get(f"/drafts/{draft_id}", headers=teacher).status_code == 404


def test_draft_opened_from_question_updates_it(client, make_teacher):
	author = make_teacher()
	other = make_teacher()
	question = _question(client, author, statement="Original")
	assert client.post("/drafts", json={"question_id": question["id"]}, headers=other).status_code == 403

	draft = client.post("/drafts", json={"question_id": question["id"]}, headers=author).json()
	assert draft["markup"] == "Original"
	assert client.get(f"/drafts/{draft['draft_id']}", headers=other).status_code == 404

	client.post(f"/drafts/{draft['draft_id']}/images/url", json={"url": "http://x/z.png"}, headers=author)
	saved = client.post(
		f"/drafts/{draft['draft_id']}/submit",
		json={"subject": "Math", "options": OPTIONS, "correct_option": 1},
		headers=author,
	).json()
	assert saved["id"] == question["id"]
	assert 'src="http://x/z.png"' in saved["statement"]


def test_draft_format_rejects_unknown_kind(client, teacher):
	draft_id = client.post("/drafts", json={"markup": "Hello"}, headers=teacher).json()["draft_id"]
	resp = client.post(f"/drafts/{draft_id}/format", json={"kind": "strike", "selection_start": 0, "selection_end": 2}, headers=teacher)
	assert resp.status_code == 400
	assert client.delete(f"/drafts/{draft_id}", headers=teacher).status_code == 200


def test_oversized_upload_is_rejected(client, teacher):
	draft_id = client.post("/drafts", json={}, headers=teacher).json()["draft_id"]
	too_big = b"\x00" * (5 * 1024 * 1024 + 1)
	resp = client.post(f"/drafts/{draft_id}/images/upload", files={"file": ("big.png", too_big, "image/png")}, headers=teacher)
	assert resp.status_code == 400
	assert "5MB" in resp.json()["detail"]
	assert client.get(f"/drafts/{draft_id}", headers=teacher).json()["images"] == []
