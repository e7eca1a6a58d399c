"""Smoke tests for the Streamlit pages, run headless through AppTest."""

import pytest
from streamlit.testing.v1 import AppTest

from linkdrop.frontend.api import ApiClient
from linkdrop.frontend.errors import GENERIC_MESSAGE, TransportError
from linkdrop.frontend.models import SelectedFile, UploadResult
from linkdrop.frontend.upload import UploadFlow

SCRIPT = "../linkdrop/frontend/streamlit_ui.py"
LINK = "http://api.test/download/abc123"


class StubClient(ApiClient):
    """Fakes the API: scripted upload outcome and probe status."""

    def __init__(self, status=200, error=None):
        super().__init__("http://api.test", timeout=5)
        self.status = status
        self.error = error
        self.probes = []

    def upload(self, file, on_progress=None):
        on_progress(50, 100)
        on_progress(100, 100)
        if self.error:
            raise self.error
        return UploadResult(download_url=LINK, short_code="abc123")

    def probe(self, short_code):
        self.probes.append(short_code)
        return self.status


class PinnedFlow(UploadFlow):
    """Keeps its selection, as the file uploader can't be driven headless."""

    def remove(self):
        pass


def app_with(client, flow=None):
    at = AppTest.from_file(SCRIPT, default_timeout=10)
    at.session_state["client"] = client
    if flow is not None:
        at.session_state["upload_flow"] = flow
    return at


def pinned_flow(client):
    flow = PinnedFlow(client)
    flow.select(SelectedFile.from_bytes("a.txt", b"abc"))
    return flow


# ──────────────────────────────────────────────
# Upload page
# ──────────────────────────────────────────────
def test_upload_page_renders() -> None:
    at = app_with(StubClient()).run()

    assert not at.exception
    assert at.title[0].value == "📂 Share Files Securely"
    assert at.button[0].label == "🚀 Upload File"
    assert at.button[0].disabled
    assert not at.code


def test_upload_shows_link_and_progress() -> None:
    client = StubClient()
    flow = pinned_flow(client)
    at = app_with(client, flow).run()
    assert not at.button[0].disabled
    assert callable(flow.on_progress)

    at.button[0].click().run()

    assert not at.exception
    assert flow.progress.value == 100
    assert at.success[0].value == "✅ File uploaded successfully!"
    assert at.code[0].value == LINK
    assert not at.error


def test_upload_failure_is_shown_inline() -> None:
    client = StubClient(error=TransportError())
    at = app_with(client, pinned_flow(client)).run()
    at.button[0].click().run()

    assert not at.exception
    assert at.error[0].value == f"❌ {GENERIC_MESSAGE}"
    assert not at.code


# ──────────────────────────────────────────────
# Download page
# ──────────────────────────────────────────────
@pytest.mark.parametrize("status,header", [
    (200, "⬇️ Your download has started"),
    (404, "⚠️ File Not Found"),
    (410, "⌛ File Expired"),
])
def test_download_page_follows_probe(status, header) -> None:
    client = StubClient(status=status)
    at = app_with(client)
    at.query_params["code"] = "xyz"
    at.run()

    assert not at.exception
    assert client.probes == ["xyz"]
    assert at.header[0].value == header

    refresh = [m.value for m in at.markdown if "http-equiv" in m.value]
    if status == 200:
        assert refresh == [f'<meta http-equiv="refresh" content="0; url={client.download_url("xyz")}">']
    else:
        assert refresh == []
