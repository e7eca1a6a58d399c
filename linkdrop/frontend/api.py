"""
HTTP client for the file sharing API.

Wraps a ``requests.Session`` with the base URL, timeout and multipart content
type the API expects, and turns every failed request into an ``ApiError``
carrying ``message``, ``status`` and ``details``.
"""

import email.message
import io
import logging
import os
from pathlib import Path
from urllib.parse import quote

import requests
from urllib3.fields import RequestField, guess_content_type
from urllib3.filepost import choose_boundary

from linkdrop.config import REQUEST_TIMEOUT, ClientSettings
from linkdrop.frontend.errors import (
    GENERIC_MESSAGE,
    TIMEOUT_MESSAGE,
    ApiError,
    ServerError,
    TransportError,
)
from linkdrop.frontend.models import UploadResult

logger = logging.getLogger(__name__)

UPLOAD_CONTENT_TYPE = "multipart/form-data"
CHUNK_SIZE = 64 * 1024


# ------------------
# Error normalization
# ------------------
def error_from_response(response):
    """Build a ``ServerError`` from a non-2xx response."""
    try:
        payload = response.json()
    except ValueError:
        payload = None

    server_error = payload.get("error") if isinstance(payload, dict) else None
    return ServerError(
        message=server_error or GENERIC_MESSAGE,
        status=response.status_code or 500,
        details=server_error or response.reason,
    )


def normalize_error(exc):
    """Map any request failure to the uniform ``ApiError`` shape."""
    if isinstance(exc, ApiError):
        return exc
    if isinstance(exc, requests.exceptions.Timeout):
        return TransportError(TIMEOUT_MESSAGE, 500, str(exc))
    if isinstance(exc, requests.exceptions.RequestException):
        if exc.response is not None:
            return error_from_response(exc.response)
        return TransportError(GENERIC_MESSAGE, 500, str(exc))
    return ApiError(GENERIC_MESSAGE, 500, str(exc))


def _is_success(status):
    return 200 <= status < 300


# ------------------
# Streaming multipart body
# ------------------
class MultipartBody:
    """
    A ``multipart/form-data`` body holding one file field.

    The file is read lazily while the transport sends the request, and
    ``callback(bytes_read, bytes_total)`` is called after every read so the
    caller can follow upload progress. ``len()`` gives the exact body size,
    which ``requests`` uses as ``Content-Length``.
    """

    def __init__(self, field, filename, stream, size, content_type=None, callback=None):
        self.boundary = choose_boundary()
        part = RequestField(name=field, data=b"", filename=filename)
        part.make_multipart(content_type=content_type or guess_content_type(filename))

        head = f"--{self.boundary}\r\n".encode("latin-1") + part.render_headers().encode("utf-8")
        tail = f"\r\n--{self.boundary}--\r\n".encode("latin-1")

        self._parts = [io.BytesIO(head), stream, io.BytesIO(tail)]
        self._total = len(head) + size + len(tail)
        self._sent = 0
        self._callback = callback

    @property
    def content_type(self):
        return f"{UPLOAD_CONTENT_TYPE}; boundary={self.boundary}"

    def __len__(self):
        return self._total

    def read(self, size=-1):
        out = bytearray()
        while self._parts and (size is None or size < 0 or len(out) < size):
            want = -1 if size is None or size < 0 else size - len(out)
            chunk = self._parts[0].read(want)
            if not chunk:
                self._parts.pop(0)
                continue
            out += chunk

        if out:
            self._sent += len(out)
            if self._callback:
                self._callback(self._sent, self._total)
        return bytes(out)


# ------------------
# Client
# ------------------
class ApiClient:
    def __init__(self, base_url=None, timeout=REQUEST_TIMEOUT, session=None):
        if base_url is None:
            base_url = ClientSettings.from_env().api_url
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.upload_content_type = UPLOAD_CONTENT_TYPE
        self.session = session or requests.Session()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def close(self):
        self.session.close()

    def url(self, path):
        return f"{self.base_url}/{path.lstrip('/')}"

    def download_url(self, short_code):
        return self.url(f"download/{quote(short_code, safe='')}")

    def upload(self, file, on_progress=None):
        """POST ``file`` (a ``SelectedFile``) and return an ``UploadResult``."""
        body = MultipartBody("file", file.name, file.content, file.size, callback=on_progress)
        logger.info("Uploading %s (%d bytes) to %s", file.name, file.size, self.base_url)

        try:
            response = self.session.post(
                self.url("/upload"),
                data=body,
                headers={"Content-Type": body.content_type},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as exc:
            raise normalize_error(exc) from exc

        if not _is_success(response.status_code):
            raise error_from_response(response)

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if not isinstance(payload, dict) or not payload.get("downloadUrl"):
            raise ServerError("Download link missing in response.", response.status_code, payload)

        return UploadResult.from_payload(payload)

    def probe(self, short_code):
        """Return the status the download endpoint answers for ``short_code``."""
        try:
            response = self.session.head(
                self.download_url(short_code),
                timeout=self.timeout,
                allow_redirects=True,
            )
        except requests.exceptions.RequestException as exc:
            raise normalize_error(exc) from exc
        logger.debug("Probe %s -> %s", short_code, response.status_code)
        return response.status_code

    def fetch(self, short_code, dest_dir="."):
        """Download the file behind ``short_code`` into ``dest_dir``."""
        try:
            response = self.session.get(
                self.download_url(short_code),
                timeout=self.timeout,
                stream=True,
            )
        except requests.exceptions.RequestException as exc:
            raise normalize_error(exc) from exc

        with response:
            if not _is_success(response.status_code):
                raise error_from_response(response)

            filename = (_attachment_filename(response.headers.get("Content-Disposition"))
                        or _safe_name(short_code) or "download")
            target = Path(dest_dir) / filename
            try:
                with open(target, "wb") as fh:
                    for chunk in response.iter_content(CHUNK_SIZE):
                        fh.write(chunk)
            except (requests.exceptions.RequestException, OSError) as exc:
                # no half-written files left behind
                if target.is_file():
                    target.unlink()
                raise normalize_error(exc) from exc

        logger.info("Saved %s to %s", short_code, target)
        return target


def _attachment_filename(header):
    if not header:
        return None
    msg = email.message.Message()
    msg["Content-Disposition"] = header
    return _safe_name(msg.get_filename())


def _safe_name(name):
    """A bare file name, or ``None`` when ``name`` can't be used as one."""
    name = os.path.basename(name or "")
    if name in ("", ".", ".."):
        return None
    return name
