"""Progress reporting and cooperative cancellation for long-running computations."""

import threading
from typing import Optional, Protocol

from tqdm import tqdm

from splitarchitect.exceptions import Cancelled


class CancellationToken:
    """Thread-safe flag a caller can set to abort a running computation."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class Progress(Protocol):
    def set_maximum(self, maximum: int) -> None: ...

    def set_progress(self, value: int) -> None: ...

    def check_cancelled(self) -> None: ...

    def close(self) -> None: ...


class ProgressSilent:
    """
    Progress listener that reports nothing.

    Cancellation still works: if a token is supplied and it fires,
    `check_cancelled` raises `Cancelled`.
    """

    def __init__(self, token: Optional[CancellationToken] = None):
        self.token = token
        self.maximum = 0
        self.value = 0

    def set_maximum(self, maximum: int) -> None:
        self.maximum = maximum

    def set_progress(self, value: int) -> None:
        self.value = value

    def check_cancelled(self) -> None:
        if self.token is not None and self.token.cancelled:
            raise Cancelled("Computation cancelled by caller")

    def close(self) -> None:
        pass


class TqdmProgress(ProgressSilent):
    """Progress listener that renders a tqdm bar."""

    def __init__(
        self,
        desc: str = "Split decomposition",
        token: Optional[CancellationToken] = None,
        disable: bool = False,
    ):
        super().__init__(token)
        self._bar = tqdm(total=0, desc=desc, disable=disable)

    def set_maximum(self, maximum: int) -> None:
        super().set_maximum(maximum)
        self._bar.reset(total=maximum)

    def set_progress(self, value: int) -> None:
        self._bar.update(max(0, value - self.value))
        super().set_progress(value)

    def close(self) -> None:
        self._bar.close()


def ensure_progress(progress: Optional[Progress]) -> Progress:
    return progress if progress is not None else ProgressSilent()
