import itertools
import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """Transient user notifications, injected into the flows."""

    def success(self, message): ...

    def error(self, message): ...

    def loading(self, message):
        """Show an in-progress notice and return a handle for ``dismiss``."""

    def dismiss(self, handle): ...


class LogNotifier:
    """Notifications as log lines, for scripts and headless use."""

    def __init__(self):
        self._ids = itertools.count(1)

    def success(self, message):
        logger.info("%s", message)

    def error(self, message):
        logger.error("%s", message)

    def loading(self, message):
        handle = next(self._ids)
        logger.info("[%d] %s", handle, message)
        return handle

    def dismiss(self, handle):
        logger.debug("[%s] done", handle)


class StreamlitNotifier:
    def __init__(self, st=None):
        if st is None:
            import streamlit as st
        self.st = st

    def success(self, message):
        self.st.toast(f"✅ {message}")

    def error(self, message):
        self.st.toast(f"❌ {message}")

    def loading(self, message):
        placeholder = self.st.empty()
        placeholder.info(f"⏳ {message}")
        return placeholder

    def dismiss(self, handle):
        handle.empty()
