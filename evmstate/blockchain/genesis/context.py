"""
Execution context for long-running genesis operations.

Carries a cancellation signal and an optional deadline. A passed deadline
is reported exactly like an explicit cancel.
"""

import threading
import time
from typing import Optional


class ExecutionContext:
    def __init__(self, deadline: Optional[float] = None, parent: Optional["ExecutionContext"] = None):
        self._cancelled = threading.Event()
        self._deadline = deadline
        self._parent = parent

    @classmethod
    def background(cls) -> "ExecutionContext":
        """Context that is never done unless cancelled."""
        return cls()

    def with_timeout(self, seconds: float) -> "ExecutionContext":
        """Child context that is done after `seconds` or when self is done."""
        deadline = time.monotonic() + seconds
        if self._deadline is not None:
            deadline = min(deadline, self._deadline)
        return ExecutionContext(deadline=deadline, parent=self)

    def cancel(self):
        self._cancelled.set()

    def done(self) -> bool:
        if self._cancelled.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            return True
        if self._parent is not None:
            return self._parent.done()
        return False

    def reason(self) -> Optional[str]:
        if self._cancelled.is_set():
            return "cancelled"
        if self._deadline is not None and time.monotonic() >= self._deadline:
            return "deadline exceeded"
        if self._parent is not None:
            return self._parent.reason()
        return None
