import pytest
from fastapi.testclient import TestClient

from app import app
from routers.signaling import get_directory

HEADERS = {"x-ws-proxy-send": "https://bridge/send/abc"}


class RecordingDirectory:
    def __init__(self):
        self.calls = []

    async def join(self, self_url, room):
        self.calls.append(("join", self_url, room))

    async def leave(self, self_url):
        self.calls.append(("leave", self_url))

    async def relay(self, from_url, to_url, message):
        self.calls.append(("relay", from_url, to_url, message))


@pytest.fixture
def recording():
    directory = RecordingDirectory()
    app.dependency_overrides[get_directory] = lambda: directory
    yield directory
    app.dependency_overrides.clear()


@pytest.fixture
def client(recording):
    return TestClient(app)


def test_room_frame_joins(client, recording):
    response = client.post("/frame", content='{"type":"room","name":"room1"}', headers=HEADERS)

    assert response.status_code == 200
    assert response.content == b""
    assert recording.calls == [("join", "https://bridge/send/abc", "room1")]


def test_ping_frame_is_a_noop(client, recording):
    response = client.post("/frame", content='{"type":"ping"}', headers=HEADERS)

    assert response.status_code == 200
    assert recording.calls == []


def test_frame_without_identity_header(client, recording):
    response = client.post("/frame", content='{"type":"room","name":"room1"}')

    assert response.status_code == 400
    assert recording.calls == []


@pytest.mark.parametrize("body", ["", "not json", '{"type":"dance"}', '{"type":"room"}'])
def test_malformed_frame(client, recording, body):
    response = client.post("/frame", content=body, headers=HEADERS)

    assert response.status_code == 400
    assert recording.calls == []


def test_disconnect_leaves(client, recording):
    response = client.post("/disconnect", headers=HEADERS)

    assert response.status_code == 200
    assert recording.calls == [("leave", "https://bridge/send/abc")]


def test_disconnect_without_identity_header(client, recording):
    assert client.post("/disconnect").status_code == 400
    assert recording.calls == []


def test_peer_relays_message(client, recording):
    response = client.post(
        "/peer",
        content='{"url":"https://bridge/send/def","message":{"type":"answer","sdp":"v=0"}}',
        headers=HEADERS,
    )

    assert response.status_code == 200
    [(kind, from_url, to_url, message)] = recording.calls
    assert (kind, from_url, to_url) == ("relay", "https://bridge/send/abc", "https://bridge/send/def")
    assert message.type == "answer"
    assert message.sdp == "v=0"


def test_peer_with_malformed_message(client, recording):
    response = client.post(
        "/peer",
        content='{"url":"https://bridge/send/def","message":{"type":"you","url":"x"}}',
        headers=HEADERS,
    )

    assert response.status_code == 400
    assert recording.calls == []


@pytest.mark.parametrize("method, path", [("GET", "/frame"), ("POST", "/nowhere"), ("PUT", "/disconnect")])
def test_unexpected_method_or_path(client, method, path):
    assert client.request(method, path, headers=HEADERS).status_code == 400


@pytest.mark.parametrize("send_url", ["http://x:notaport/cb", "ftp://bridge/send/abc", "not a url"])
def test_frame_with_unusable_identity_header(client, recording, send_url):
    response = client.post("/frame", content='{"type":"room","name":"room1"}', headers={"x-ws-proxy-send": send_url})

    assert response.status_code == 400
    assert recording.calls == []


def test_disconnect_with_unusable_identity_header(client, recording):
    assert client.post("/disconnect", headers={"x-ws-proxy-send": "http://x:notaport/cb"}).status_code == 400
    assert recording.calls == []
