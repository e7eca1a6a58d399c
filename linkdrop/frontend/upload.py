"""
Upload flow: validate the selected file, send it, follow progress and keep
the resulting download link.

The flow holds page-level state only (selected file, progress, link, error)
and never retries on its own; the user uploads again to retry.
"""

import logging
import math
import threading
from io import BytesIO

import qrcode

from linkdrop.config import MAX_FILE_SIZE
from linkdrop.frontend.errors import ApiError, UploadInProgressError, ValidationError
from linkdrop.frontend.notify import LogNotifier

logger = logging.getLogger(__name__)

NO_FILE_MESSAGE = "Please select a file."
TOO_LARGE_MESSAGE = "File size exceeds 100MB limit."


def validate_file(file, max_size=MAX_FILE_SIZE):
    if file is None:
        raise ValidationError(NO_FILE_MESSAGE)
    if file.size > max_size:
        raise ValidationError(TOO_LARGE_MESSAGE)


def percent_complete(loaded, total):
    """``round(loaded * 100 / total)`` with halves rounded up, kept in [0, 100]."""
    if total <= 0:
        return 0
    value = math.floor(loaded * 100 / total + 0.5)
    return max(0, min(100, value))


def format_size(size):
    return f"{size / 1024 / 1024:.2f} MB"


def qr_code_png(url):
    """Render ``url`` as a PNG QR code."""
    qr = qrcode.make(url)
    qr_bytes = BytesIO()
    qr.save(qr_bytes, format="PNG")
    return qr_bytes.getvalue()


class UploadProgress:
    """Percent sent for the current attempt. Never goes backwards until reset."""

    def __init__(self):
        self.value = 0

    def reset(self):
        self.value = 0

    def update(self, loaded, total):
        self.value = max(self.value, percent_complete(loaded, total))
        return self.value


class UploadFlow:
    def __init__(self, client, notifier=None, max_file_size=MAX_FILE_SIZE, on_progress=None):
        self.client = client
        self.notifier = notifier or LogNotifier()
        self.max_file_size = max_file_size
        self.on_progress = on_progress

        self.file = None
        self.progress = UploadProgress()
        self.result = None
        self.download_url = ""
        self.error = ""

        self._uploading = False
        self._lock = threading.Lock()

    @property
    def uploading(self):
        return self._uploading

    @property
    def can_upload(self):
        return self.file is not None and not self._uploading

    def select(self, file):
        self.file = file

    def remove(self):
        self.file = None

    def upload(self):
        """
        Upload the selected file.

        Returns the download link, or ``None`` when validation or the request
        failed; the reason is then in ``self.error`` and was sent to the
        notifier. Raises ``UploadInProgressError`` if an upload is already
        running.
        """
        with self._lock:
            if self._uploading:
                raise UploadInProgressError()
            try:
                validate_file(self.file, self.max_file_size)
            except ValidationError as exc:
                self._fail(exc.message)
                return None
            self._uploading = True

        handle = None
        try:
            handle = self.notifier.loading("Uploading file...")
            self.progress.reset()
            self.result = None
            self.download_url = ""
            self.error = ""

            self.file.rewind()
            result = self.client.upload(self.file, on_progress=self._report_progress)
        except ApiError as exc:
            logger.error("Upload error details: %s", exc.details)
            self._fail(exc.message)
            return None
        else:
            self.result = result
            self.download_url = result.download_url
            logger.info("Uploaded %s -> %s", self.file.name, self.download_url)
            self.notifier.success("File uploaded successfully!")
            return self.download_url
        finally:
            with self._lock:
                self._uploading = False
            if handle is not None:
                self.notifier.dismiss(handle)

    def copy_link(self, clipboard):
        """Hand the download link to ``clipboard`` (a callable taking a string)."""
        if not self.download_url:
            return False
        clipboard(self.download_url)
        self.notifier.success("Link copied to clipboard!")
        return True

    def qr_png(self):
        return qr_code_png(self.download_url) if self.download_url else None

    def _report_progress(self, loaded, total):
        value = self.progress.update(loaded, total)
        if self.on_progress:
            self.on_progress(value)

    def _fail(self, message):
        self.error = message
        self.notifier.error(message)
