import os
import tempfile
import uuid

# Settings are read at import time, so the environment must be set first
_tmp_dir = tempfile.mkdtemp(prefix="questionbank-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_tmp_dir, 'test.db')}"
os.environ["SEED_NAME"] = "Coordinator"
os.environ["SEED_EMAIL"] = "coordinator@school.test"
os.environ["SEED_PASSWORD"] = "coordinator-pass"
os.environ["STATEMENT_PRESERVE_IMAGES"] = "false"
os.environ.pop("TAGS_API_URL", None)

import pytest
from fastapi.testclient import TestClient

from questionbank.main import app


SCENARIO_A = '<br><img src="x.png" style="width: 300px; height: 200px;" data-id="img-1" /><br>'


def login(client, email, password):
	resp = client.post("/auth/token", data={"username": email, "password": password})
	assert resp.status_code == 200, resp.text
	return {"Authorization": f"Bearer {resp.json()['access_token']}"}


@pytest.fixture(scope="session")
def client():
	with TestClient(app) as c:
		yield c


@pytest.fixture
def coordinator(client):
	return login(client, "coordinator@school.test", "coordinator-pass")


@pytest.fixture
def make_teacher(client):
	def _make(name="Teacher"):
		email = f"{uuid.uuid4().hex[:10]}@school.test"
		resp = client.post("/auth/register", json={"name": name, "email": email, "password": "secret-pass"})
		assert resp.status_code == 201, resp.text
		return login(client, email, "secret-pass")
	return _make


@pytest.fixture
def teacher(make_teacher):
	return make_teacher()
