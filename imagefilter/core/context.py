"""
Per-request run context: placeholder expansion and cooperative cancellation.
"""

import re
import threading
import time
from dataclasses import dataclass
from typing import Callable, Mapping, Optional

from .errors import RequestCancelled


class CancelToken:
    """
    Cancellation signal for one request.

    Cancelled explicitly via cancel(), or implicitly once the optional
    timeout has elapsed. Polled at the pipeline's checkpoints.
    """

    def __init__(self, timeout: Optional[float] = None):
        self._event = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout else None

    def cancel(self) -> None:
        """Signal cancellation."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self._event.set()
            return True
        return False

    def wait(self, timeout: float) -> bool:
        """Block up to timeout seconds. Returns True if cancelled."""
        if self._deadline is not None:
            timeout = max(0.0, min(timeout, self._deadline - time.monotonic()))
        self._event.wait(timeout)
        return self.cancelled

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise RequestCancelled("request cancelled")


_PLACEHOLDER = re.compile(r"\{([^{}\s]+)\}")


class Replacer:
    """
    Expands {key} placeholders in configuration strings.

    Unknown placeholders expand to the empty string.
    """

    def __init__(self, variables: Optional[Mapping[str, str]] = None):
        self._vars = dict(variables or {})

    def set(self, key: str, value: str) -> None:
        self._vars[key] = value

    def get(self, key: str) -> Optional[str]:
        return self._vars.get(key)

    def expand(self, text: str) -> str:
        if not text or "{" not in text:
            return text
        return _PLACEHOLDER.sub(lambda m: str(self._vars.get(_normalize_key(m.group(1)), "")), text)

    @classmethod
    def for_request(
        cls,
        path: str,
        query: Optional[Mapping[str, str]] = None,
        headers: Optional[Mapping[str, str]] = None,
        extra: Optional[Mapping[str, str]] = None,
    ) -> "Replacer":
        """
        Build a replacer exposing {path}, {query.<name>} and {header.<name>}.

        Header names are matched case-insensitively (stored lowercase).
        """
        variables = {"path": path}
        for key, value in (query or {}).items():
            variables[f"query.{key}"] = value
        for key, value in (headers or {}).items():
            variables[f"header.{key.lower()}"] = value
        variables.update(extra or {})
        return cls(variables)


def _normalize_key(key: str) -> str:
    if key.startswith("header."):
        return key.lower()
    return key


@dataclass(frozen=True)
class RunContext:
    """What a pipeline run may consult: expansion and cancellation."""
    expand: Callable[[str], str]
    cancel: CancelToken

    @classmethod
    def create(cls, expand: Optional[Callable[[str], str]] = None,
               cancel: Optional[CancelToken] = None) -> "RunContext":
        return cls(expand=expand or (lambda text: text), cancel=cancel or CancelToken())

    def check(self) -> None:
        """Cancellation checkpoint."""
        self.cancel.raise_if_cancelled()
