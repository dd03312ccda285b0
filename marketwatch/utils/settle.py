# marketwatch/utils/settle.py
# Purpose: Run independent calls side by side and collect every outcome;
# one failing branch never cancels or hides its siblings.
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional


@dataclass(frozen=True)
class Settled:
    ok: bool
    value: Any = None
    error: Optional[BaseException] = None


def _run(fn: Callable[[], Any]) -> Settled:
    try:
        return Settled(ok=True, value=fn())
    except Exception as e:
        return Settled(ok=False, error=e)


def settle(calls: Dict[str, Callable[[], Any]], max_workers: Optional[int] = None) -> Dict[str, Settled]:
    """Execute ``calls`` concurrently; returns {name: Settled} in the input key order."""
    if not calls:
        return {}
    workers = max(1, min(max_workers or len(calls), len(calls)))
    with ThreadPoolExecutor(max_workers=workers) as ex:
        futs = {name: ex.submit(_run, fn) for name, fn in calls.items()}
        return {name: fut.result() for name, fut in futs.items()}
