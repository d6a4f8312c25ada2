"""In-memory store of finished probe results, latest N retained."""

import asyncio
from collections import deque

from ctxprobe.models import ProbeResult

DEFAULT_HISTORY_LIMIT = 10


class RunHistory:
    """Bounded log of results shared by concurrent runs of one service.

    Appends go through an asyncio.Lock; reads return copies.
    """

    def __init__(self, limit: int = DEFAULT_HISTORY_LIMIT) -> None:
        self.limit = limit
        self._results: deque[ProbeResult] = deque(maxlen=limit)
        self._lock = asyncio.Lock()

    async def append(self, result: ProbeResult) -> None:
        async with self._lock:
            self._results.append(result)

    async def clear(self) -> None:
        async with self._lock:
            self._results.clear()

    def results(self) -> list[ProbeResult]:
        """Newest first."""
        return list(reversed(self._results))

    def get(self, run_id: str) -> ProbeResult | None:
        for result in self._results:
            if result.run_id == run_id:
                return result
        return None

    def best_by_model(self) -> dict[str, ProbeResult]:
        """Largest discovered boundary per model, over completed runs."""
        best: dict[str, ProbeResult] = {}
        for result in self._results:
            if result.status != "completed":
                continue
            current = best.get(result.model)
            if current is None or result.discovered_boundary > current.discovered_boundary:
                best[result.model] = result
        return best

    def __len__(self) -> int:
        return len(self._results)
