from __future__ import annotations

import threading
from contextlib import contextmanager


_guards: dict[int, threading.Lock] = {}
_registry = threading.Lock()


@contextmanager
def event_guard(event_id: int):
    """
    Serialize state-changing work on one event inside this process.

    Other processes are kept out by the conditional UPDATEs in the services;
    this only stops two local requests from computing the same draw.
    """
    with _registry:
        guard = _guards.setdefault(int(event_id), threading.Lock())
    with guard:
        yield
