"""
Download flow for a short code.

After a fixed delay the download endpoint is probed with HEAD. Only a 2xx
answer sends the browser to the file; 410 means the link expired, anything
else means the file could not be found. A flow settles once and stays in
its terminal state.
"""

import enum
import logging
import threading

from linkdrop.config import DOWNLOAD_DELAY
from linkdrop.frontend.errors import ApiError

logger = logging.getLogger(__name__)


class DownloadStatus(str, enum.Enum):
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"
    EXPIRED = "expired"

    @property
    def terminal(self):
        return self is not DownloadStatus.LOADING


STATUS_TEXT = {
    DownloadStatus.LOADING: (
        "Preparing Your Download",
        "Your download will begin automatically in a moment...",
    ),
    DownloadStatus.SUCCESS: (
        "Your download has started",
        "If your download doesn't begin automatically, click the button below.",
    ),
    DownloadStatus.ERROR: (
        "File Not Found",
        "The file you're looking for doesn't exist or has been removed.",
    ),
    DownloadStatus.EXPIRED: (
        "File Expired",
        "This file has expired and is no longer available for download.",
    ),
}


def status_from_probe(code):
    if code == 410:
        return DownloadStatus.EXPIRED
    if 200 <= code < 300:
        return DownloadStatus.SUCCESS
    return DownloadStatus.ERROR


class DownloadFlow:
    def __init__(self, client, short_code, navigate, delay=DOWNLOAD_DELAY,
                 timer_factory=threading.Timer):
        self.client = client
        self.short_code = short_code
        self.delay = delay
        self._navigate = navigate
        self._timer_factory = timer_factory

        self.status = DownloadStatus.LOADING
        self._timer = None
        self._started = False
        self._cancelled = False
        self._settled = threading.Event()
        self._lock = threading.Lock()

    @property
    def url(self):
        return self.client.download_url(self.short_code)

    @property
    def title(self):
        return STATUS_TEXT[self.status][0]

    @property
    def message(self):
        return STATUS_TEXT[self.status][1]

    def start(self):
        """Schedule the probe. Calling it again does nothing."""
        with self._lock:
            if self._started or self._cancelled:
                return
            self._started = True
            self._timer = self._timer_factory(self.delay, self._run)
            self._timer.daemon = True
            self._timer.start()

    def cancel(self):
        """Teardown: drop the pending timer so nothing is probed or opened."""
        with self._lock:
            self._cancelled = True
            if self._timer is not None:
                self._timer.cancel()
        self._settled.set()

    def wait(self, timeout=None):
        """Block until the flow settles or is cancelled."""
        return self._settled.wait(timeout)

    def _run(self):
        try:
            with self._lock:
                if self._cancelled or self.status.terminal:
                    return

            try:
                outcome = status_from_probe(self.client.probe(self.short_code))
            except ApiError as exc:
                logger.warning("Probe for %s failed: %s", self.short_code, exc.details)
                outcome = DownloadStatus.ERROR

            with self._lock:
                if self._cancelled:
                    return
                self.status = outcome

            logger.info("Download %s: %s", self.short_code, outcome.value)
            if outcome is DownloadStatus.SUCCESS:
                self._navigate(self.url)
        finally:
            self._settled.set()
