from __future__ import annotations

import logging
import threading
from typing import Optional

from clovalink.services.conversation import MessagingSession

logger = logging.getLogger(__name__)


class ConversationPoller:
    """
    Re-fetches the open conversation on a fixed interval.

    Runs in a daemon thread. A failed poll is logged and skipped; the
    messages already shown are kept. restart() is called on selection
    change so the next poll uses the new conversation.
    """

    def __init__(self, session: MessagingSession, interval: Optional[float] = None):
        self.session = session
        self.interval = interval if interval is not None else session.settings.poll_interval_seconds
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._poll_loop, name="clovalink-poller", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        self._thread = None

    def restart(self) -> None:
        self.stop()
        self.start()

    def poll_once(self) -> bool:
        if self.session.selection is None:
            return False
        try:
            return self.session.refresh()
        except Exception:
            # Never let one bad poll kill the thread
            logger.exception("Unexpected error while polling messages")
            return False

    def _poll_loop(self) -> None:
        while not self._stop.wait(self.interval):
            self.poll_once()

    def __enter__(self) -> "ConversationPoller":
        self.start()
        return self

    def __exit__(self, *exc) -> None:
        self.stop()
