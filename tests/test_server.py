import pytest
from fastapi.testclient import TestClient

from quizbot.config import Settings
from quizbot.events import SessionEvent
from quizbot.server import _drain_incoming, create_app

QUIZ_URL = "https://canvas.example.edu/courses/7/quizzes/42"


class StubSession:
    def __init__(self, config):
        self.config = config
        self.session_id = "1700000000000000"
        self.started = False

    def start(self):
        self.started = True


@pytest.fixture
def created():
    return []


@pytest.fixture
def client(created):
    def factory(config, registry, broadcaster):
        session = StubSession(config)
        created.append(session)
        return session

    app = create_app(Settings(provider="groq"), session_factory=factory)
    with TestClient(app) as c:
        yield c


def test_root(client):
    data = client.get("/").json()
    assert data["status"] == "running"
    assert data["endpoints"]["start"] == "POST /api/start-quiz"


def test_health(client):
    data = client.get("/api/health").json()
    assert data["status"] == "healthy"
    assert data["activeSessions"] == 0
    assert data["uptime"] >= 0


def test_start_quiz(client, created):
    resp = client.post(
        "/api/start-quiz",
        json={
            "reasoningApiKey": "gsk-test",
            "targetUrl": QUIZ_URL,
            "identity": "student",
            "secret": "pw",
            "delayMin": 1,
            "delayMax": 2,
            "autoSubmit": False,
        },
    )
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "sessionId": "1700000000000000", "message": "Quiz bot started"}
    (session,) = created
    assert session.started
    cfg = session.config
    assert cfg.target_url == QUIZ_URL
    assert cfg.has_credentials
    assert (cfg.delay_min, cfg.delay_max) == (1, 2)
    assert cfg.auto_submit is False
    assert cfg.provider == "groq"


@pytest.mark.parametrize(
    "body",
    [
        {"targetUrl": QUIZ_URL},
        {"reasoningApiKey": "   ", "targetUrl": QUIZ_URL},
        {"reasoningApiKey": "k"},
        {"reasoningApiKey": "k", "targetUrl": "not a url"},
        {"reasoningApiKey": "k", "targetUrl": QUIZ_URL, "delayMin": 5, "delayMax": 2},
        {"reasoningApiKey": "k", "targetUrl": QUIZ_URL, "delayMin": -1},
    ],
)
def test_start_quiz_rejects_invalid_requests(client, created, body):
    resp = client.post("/api/start-quiz", json=body)
    assert resp.status_code == 422
    assert created == []


def test_websocket_greets_new_observer(client):
    with client.websocket_connect("/ws") as ws:
        event = ws.receive_json()
    assert event["type"] == "info"
    assert event["message"] == "Connected to Quiz Bot server"
    assert "timestamp" in event


def test_websocket_forwards_events_after_binary_frame(client):
    broadcaster = client.app.state.broadcaster
    with client.websocket_connect("/ws") as ws:
        ws.receive_json()
        ws.send_bytes(b"\x00")
        client.portal.call(broadcaster.publish, SessionEvent(kind="info", session_id="7", message="hello observer"))
        event = ws.receive_json()
    assert event["message"] == "hello observer"
    assert event["sessionId"] == "7"
    assert broadcaster.observer_count == 0


class ScriptedSocket:
    def __init__(self, messages):
        self.messages = list(messages)

    async def receive(self):
        return self.messages.pop(0)


async def test_drain_incoming_ignores_text_and_binary_frames():
    ws = ScriptedSocket([
        {"type": "websocket.receive", "bytes": b"\x00"},
        {"type": "websocket.receive", "text": "ping"},
        {"type": "websocket.disconnect", "code": 1000},
    ])
    await _drain_incoming(ws)
    assert ws.messages == []
