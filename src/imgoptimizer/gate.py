from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from .errors import GateBusyError


logger = logging.getLogger(__name__)


class SingleFlightGate:
    """Admit at most one guarded operation at a time; contenders are rejected, never queued."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._holder: Optional[str] = None

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    @property
    def holder(self) -> Optional[str]:
        return self._holder

    @contextmanager
    def hold(self, operation: str = "operation") -> Iterator[None]:
        if not self._lock.acquire(blocking=False):
            logger.info("Rejected %s: %s is in progress", operation, self._holder)
            raise GateBusyError(f"Another operation is in progress ({self._holder}); please wait for it to finish.")
        self._holder = str(operation)
        try:
            yield
        finally:
            self._holder = None
            self._lock.release()
