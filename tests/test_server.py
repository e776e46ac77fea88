import json

import pytest
from fastapi.testclient import TestClient

from reviewkit.broadcast import BroadcastHub
from reviewkit.config import Settings
from reviewkit.engine import default_engine
from reviewkit.errors import ConfigError, ExternalServiceError
from reviewkit.server import create_app
from reviewkit.webhook import ReviewService, sign

SECRET = "s3cret"


class FakeGitHub:
    def __init__(self, files):
        self.files = files
        self.comments = []
        self.issues = []

    async def get_pull_request_files(self, repo, number):
        return [{"filename": path, "status": "modified"} for path in self.files]

    async def get_file_content(self, repo, path, ref):
        if path not in self.files:
            raise ExternalServiceError(f"{path} not found", status_code=404)
        return self.files[path]

    async def create_issue_comment(self, repo, number, body):
        self.comments.append(body)
        return {"id": 1}

    async def create_issue(self, repo, title, body, labels=()):
        self.issues.append({"title": title, "body": body, "labels": list(labels)})
        return {"number": 7, "html_url": f"https://github.com/{repo}/issues/7"}


class RecordingSink:
    def __init__(self):
        self.frames = []

    def send(self, frame):
        self.frames.append(frame)

    @property
    def events(self):
        return [frame.split("\n", 1)[0][len("event: "):] for frame in self.frames if frame.startswith("event: ")]


def make_client(files=None, settings=None):
    settings = settings or Settings(webhook_secret=SECRET)
    github = FakeGitHub(files or {})
    service = ReviewService(engine=default_engine(), hub=BroadcastHub(), github=github, settings=settings)
    sink = RecordingSink()
    service.hub.connect(sink)
    return TestClient(create_app(settings, service=service)), github, sink


def post_webhook(client, event, payload, secret=SECRET):
    body = json.dumps(payload).encode("utf-8")
    headers = {"X-GitHub-Event": event, "Content-Type": "application/json"}
    if secret is not None:
        headers["X-Hub-Signature-256"] = sign(secret, body)
    return client.post("/webhook", content=body, headers=headers)


def push_payload(ref="refs/heads/main"):
    return {
        "ref": ref,
        "after": "abc1234def5678",
        "repository": {"full_name": "octo/repo", "default_branch": "main"},
        "commits": [{"added": ["app.js"], "modified": [], "removed": []}],
    }


def test_missing_webhook_secret_fails_closed():
    with pytest.raises(ConfigError):
        create_app(Settings())


def test_index_and_health():
    client, _, _ = make_client()

    assert client.get("/").json()["endpoints"][0]["path"] == "/api/review"
    assert client.get("/health").json() == {"ok": True, "clients": 1}


def test_direct_review_endpoint():
    client, _, sink = make_client()

    response = client.post("/api/review", json={"file": "src/app.js", "content": "eval(input);\n"})

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["file"] == "src/app.js"
    assert "Critical issues:" in data["feedback"]
    assert data["issuesBySeverity"]["critical"][0]["line"] == 1
    assert sink.events == ["review_started", "review_completed"]


def test_direct_review_rejects_missing_fields():
    client, _, _ = make_client()

    response = client.post("/api/review", json={"file": "src/app.js"})

    assert response.status_code == 400
    assert response.json()["success"] is False


def test_direct_review_rejects_non_json_body():
    client, _, _ = make_client()

    response = client.post("/api/review", content=b"not json", headers={"Content-Type": "application/json"})

    assert response.status_code == 400


def test_direct_review_with_non_text_content_fails():
    client, _, sink = make_client()

    response = client.post("/api/review", json={"file": "src/app.js", "content": ["not", "text"]})

    assert response.status_code == 500
    assert "review_error" in sink.events


def test_pull_request_webhook_posts_comment():
    client, github, sink = make_client({"src/app.js": "console.log('debug');\n"})
    payload = {
        "action": "synchronize",
        "number": 5,
        "pull_request": {"number": 5, "head": {"sha": "abc123"}},
        "repository": {"full_name": "octo/repo"},
    }

    response = post_webhook(client, "pull_request", payload)

    assert response.status_code == 200
    data = response.json()
    assert data["event"] == "pull_request"
    assert data["filesReviewed"] == 1
    assert len(github.comments) == 1
    assert "### `src/app.js`" in github.comments[0]
    assert sink.events == ["pr_review_started", "pr_review_completed"]


def test_webhook_with_bad_signature_is_rejected():
    client, github, sink = make_client({"app.js": "eval(x);\n"})

    response = post_webhook(client, "push", push_payload(), secret="wrong")

    assert response.status_code == 401
    assert github.issues == []
    assert sink.events == []


def test_webhook_without_signature_is_rejected():
    client, _, _ = make_client()

    response = post_webhook(client, "push", push_payload(), secret=None)

    assert response.status_code == 401


def test_webhook_with_non_ascii_signature_is_rejected():
    client, github, sink = make_client({"app.js": "eval(x);\n"})
    body = json.dumps(push_payload()).encode("utf-8")
    header = sign(SECRET, body)[:-1].encode("ascii") + b"\xe9"

    response = client.post(
        "/webhook",
        content=body,
        headers={"X-GitHub-Event": "push", "Content-Type": "application/json", "X-Hub-Signature-256": header},
    )

    assert response.status_code == 401
    assert response.json()["success"] is False
    assert github.issues == []
    assert sink.events == []


def test_push_with_findings_creates_issue():
    client, github, sink = make_client({"app.js": "eval(x);\n"})

    response = post_webhook(client, "push", push_payload())

    assert response.status_code == 200
    data = response.json()
    assert data["issueNumber"] == 7
    assert data["issues"] == 1
    assert len(github.issues) == 1
    assert github.issues[0]["labels"] == ["code-review"]
    assert "head `abc1234`" in github.issues[0]["body"]
    assert sink.events == ["push_detected", "issue_created", "push_analyzed"]


def test_clean_push_is_analyzed_without_issue():
    client, github, sink = make_client({"app.js": "export function answer() {\n  return compute();\n}\n"})

    response = post_webhook(client, "push", push_payload())

    assert response.status_code == 200
    assert github.issues == []
    assert sink.events == ["push_detected", "push_analyzed"]


def test_push_to_other_branch_is_ignored():
    client, github, _ = make_client({"app.js": "eval(x);\n"})

    response = post_webhook(client, "push", push_payload("refs/heads/feature"))

    assert response.json()["status"] == "ignored"
    assert github.issues == []


def test_invalid_payload_broadcasts_webhook_error():
    client, _, sink = make_client()

    response = post_webhook(client, "pull_request", {"action": "opened"})

    assert response.status_code == 400
    assert sink.events == ["webhook_error"]


def test_unsigned_webhooks_when_explicitly_allowed():
    settings = Settings(allow_unsigned_webhooks=True)
    client, _, _ = make_client(settings=settings)

    response = post_webhook(client, "ping", {"zen": "Design for failure."}, secret=None)

    assert response.status_code == 200
    assert response.json()["status"] == "pong"
