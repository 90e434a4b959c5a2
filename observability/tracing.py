"""Simple span helper for recording step timings."""
from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Iterator


@contextmanager
def span(target, name: str) -> Iterator[None]:
    """Append ``{"span": name, "ms": elapsed}`` to ``target.events`` on exit."""
    start = time.time()
    try:
        yield
    finally:
        elapsed_ms = int((time.time() - start) * 1000)
        target.events.append({"span": name, "ms": elapsed_ms})


__all__ = ["span"]
