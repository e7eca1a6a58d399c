import threading

import pytest
from werkzeug.serving import make_server

from linkdrop.backend.app import create_app
from linkdrop.config import ServerSettings
from linkdrop.frontend.api import ApiClient


class RecordingNotifier:
    """Keeps every notification so tests can assert on them."""

    def __init__(self):
        self.events = []
        self._next = 0

    def success(self, message):
        self.events.append(("success", message))

    def error(self, message):
        self.events.append(("error", message))

    def loading(self, message):
        self._next += 1
        self.events.append(("loading", message))
        return self._next

    def dismiss(self, handle):
        self.events.append(("dismiss", handle))

    def of(self, kind):
        return [value for event, value in self.events if event == kind]


class FakeTimer:
    """Stands in for ``threading.Timer``; fires only when told to."""

    instances = []

    def __init__(self, interval, function):
        self.interval = interval
        self.function = function
        self.started = False
        self.cancelled = False
        self.daemon = False
        FakeTimer.instances.append(self)

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if self.started and not self.cancelled:
            self.function()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def fake_timer():
    FakeTimer.instances = []
    yield FakeTimer
    FakeTimer.instances = []


@pytest.fixture
def server_settings(tmp_path):
    return ServerSettings(upload_folder=str(tmp_path / "uploads"))


@pytest.fixture
def app(server_settings):
    app = create_app(server_settings)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def http(app):
    return app.test_client()


@pytest.fixture
def store(app):
    return app.extensions["linkdrop.store"]


@pytest.fixture
def live_server(app):
    """Serve ``app`` on a free local port and yield its base URL."""
    server = make_server("127.0.0.1", 0, app, threaded=True)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_port}"
    server.shutdown()
    thread.join(timeout=5)


@pytest.fixture
def api_client(live_server):
    with ApiClient(live_server, timeout=10) as client:
        yield client
