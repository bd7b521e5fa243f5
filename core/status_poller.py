import logging
import threading
from collections.abc import Callable

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 3.0


class StatusPoller:
    """
    Re-checks the status of one restore operation at a fixed interval.

    The poller is bound to a single operation handle. Each tick calls
    ``refresh(handle)``, which returns True while polling should go on.
    ``cancel()`` only stops future ticks; a refresh that is already running
    is allowed to finish and its result is discarded by the caller if the
    operation is no longer the active one.
    """

    def __init__(
        self,
        handle: str,
        refresh: Callable[[str], bool],
        interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
    ):
        self.handle = handle
        self._refresh = refresh
        self._interval = interval
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self):
        if self._thread and self._thread.is_alive():
            logger.warning(f"Status poller for {self.handle} already running")
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._loop, name="RestoreStatusPoller", daemon=True
        )
        self._thread.start()
        logger.info(f"Polling restore status of {self.handle} every {self._interval}s")

    def cancel(self):
        """Stops polling after the current tick, if any."""
        if not self._stop_event.is_set():
            self._stop_event.set()
            logger.info(f"Status poller for {self.handle} cancelled")

    def join(self, timeout: float | None = None):
        if self._thread:
            self._thread.join(timeout=timeout)

    @property
    def is_running(self) -> bool:
        return (
            self._thread is not None
            and self._thread.is_alive()
            and not self._stop_event.is_set()
        )

    # ------------------------------------------------------------------
    # Worker
    # ------------------------------------------------------------------

    def _loop(self):
        while not self._stop_event.wait(self._interval):
            try:
                keep_polling = self._refresh(self.handle)
            except Exception as e:
                # Keep the loop alive, the next tick retries.
                logger.error(f"Status poll tick for {self.handle} failed: {e}", exc_info=True)
                keep_polling = True

            if not keep_polling:
                break

        self._stop_event.set()
        logger.info(f"Status poller for {self.handle} stopped")
