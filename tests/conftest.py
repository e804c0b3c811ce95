import json

import pytest


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else json.dumps(payload)

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


@pytest.fixture
def fake_response():
    return FakeResponse


@pytest.fixture
def event_file(tmp_path):
    written = []

    def _write(event):
        path = tmp_path / f"event_{len(written)}.json"
        written.append(path)
        path.write_text(json.dumps(event), encoding="utf-8")
        return str(path)
    return _write


@pytest.fixture
def pr_event():
    return {
        "pull_request": {
            "number": 42,
            "title": "Add payment retries",
            "draft": False,
            "base": {"ref": "main", "sha": "base123"},
            "head": {"ref": "feature/retries", "sha": "head456"},
        }
    }


@pytest.fixture
def review_env(event_file, pr_event):
    return {
        "OPENAI_API_KEY": "sk-test",
        "GITHUB_TOKEN": "ghs-test",
        "GITHUB_REPOSITORY": "acme/shop",
        "GITHUB_EVENT_PATH": event_file(pr_event),
    }
