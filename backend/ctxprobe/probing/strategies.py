"""Search strategies: linear scan, binary search, and coarse-then-fine adaptive.

Every strategy assumes the endpoint is monotonic: if a size fails with a
boundary error, every larger size fails too. The assumption is not checked.

Strategies never call the executor directly. They go through a SearchSession,
which records steps, tracks the boundary, and halts the search (by raising
SearchHalted) when the attempt budget runs out, transient failures pile up,
the floor fails, or cancellation is requested.
"""

import asyncio
import inspect
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable

from ctxprobe.models import (
    ModelDescriptor,
    ProbeConfiguration,
    ProbeOutcome,
    ProbeStep,
    SearchPhase,
    SearchStrategyName,
    TerminationReason,
)
from ctxprobe.probing.executor import ProbeCancelled, ProbeExecutor

logger = logging.getLogger(__name__)

MAX_CONSECUTIVE_TRANSIENT = 3
COARSE_PRECISION_FACTOR = 10

StepCallback = Callable[[ProbeStep], Awaitable[None] | None]


class SearchSession:
    """Mutable state of one run: the step log, the boundary, and the budgets."""

    def __init__(
        self,
        config: ProbeConfiguration,
        descriptor: ModelDescriptor,
        executor: ProbeExecutor,
        *,
        cancel_event: asyncio.Event | None = None,
        on_step: StepCallback | None = None,
    ) -> None:
        self.config = config
        self.descriptor = descriptor
        self.steps: list[ProbeStep] = []
        self.boundary = 0
        self.smallest_failure: int | None = None
        self.consecutive_transient = 0
        self._executor = executor
        self._cancel_event = cancel_event
        self._on_step = on_step

    def confirmed_tokens(self, step: ProbeStep) -> int:
        """Size a successful step proved: the target, capped at what was actually sent."""
        sent = step.input_tokens
        if self.config.include_output_tokens:
            sent += step.expected_output_tokens
        return min(step.target_tokens, sent)

    @property
    def cancelled(self) -> bool:
        return self._cancel_event is not None and self._cancel_event.is_set()

    async def probe(self, target_tokens: int, phase: SearchPhase) -> ProbeOutcome:
        if self.cancelled:
            raise SearchHalted("cancelled")
        if len(self.steps) >= self.config.max_attempts:
            raise SearchHalted("attempts_exhausted")

        try:
            step = await self._executor.execute(
                len(self.steps) + 1,
                target_tokens,
                self.config,
                self.descriptor,
                phase=phase,
                cancel_event=self._cancel_event,
            )
        except ProbeCancelled:
            raise SearchHalted("cancelled")

        self.steps.append(step)
        if step.outcome == "success":
            self.boundary = max(self.boundary, self.confirmed_tokens(step))
            self.consecutive_transient = 0
        elif step.outcome == "boundary_exceeded":
            if self.smallest_failure is None or target_tokens < self.smallest_failure:
                self.smallest_failure = target_tokens
            self.consecutive_transient = 0
        else:
            self.consecutive_transient += 1

        logger.debug(
            "Step %d [%s] target=%d input=%d -> %s (%d ms)",
            step.step, phase, target_tokens, step.input_tokens, step.outcome, step.latency_ms,
        )

        if self._on_step is not None:
            maybe = self._on_step(step)
            if inspect.isawaitable(maybe):
                await maybe

        if step.outcome == "boundary_exceeded" and target_tokens == self.config.min_tokens:
            self.boundary = 0
            raise SearchHalted("floor_exceeded")
        if self.consecutive_transient >= MAX_CONSECUTIVE_TRANSIENT:
            raise SearchHalted("transient_failures")
        return step.outcome


class SearchStrategy(ABC):
    name: SearchStrategyName

    async def run(self, session: SearchSession) -> TerminationReason:
        """Drive the search to completion and return why it stopped."""
        try:
            return await self._search(session)
        except SearchHalted as halt:
            return halt.reason

    @abstractmethod
    async def _search(self, session: SearchSession) -> TerminationReason:
        ...


class LinearSearch(SearchStrategy):
    """Scan upward from min by step_size until the first boundary failure."""

    name = "linear"

    async def _search(self, session: SearchSession) -> TerminationReason:
        config = session.config
        return await _scan(session, config.min_tokens, config.max_tokens, config.step_size, "linear")


class BinarySearch(SearchStrategy):
    name = "binary"

    async def _search(self, session: SearchSession) -> TerminationReason:
        config = session.config
        reason, _ = await _bisect(
            session, config.min_tokens, config.max_tokens, config.precision, "binary"
        )
        return reason


class AdaptiveSearch(SearchStrategy):
    """Binary search at coarse precision, then a linear scan at fine precision.

    The fine scan covers the gap between the coarse boundary and the smallest
    size known to fail, stepping by `precision`.
    """

    name = "adaptive"

    async def _search(self, session: SearchSession) -> TerminationReason:
        config = session.config
        coarse_precision = config.precision * COARSE_PRECISION_FACTOR
        reason, high = await _bisect(
            session, config.min_tokens, config.max_tokens, coarse_precision, "coarse"
        )
        if reason == "range_exhausted" and session.smallest_failure is None:
            # max itself succeeded; nothing left to refine
            return reason

        start = session.boundary + config.precision if session.boundary else config.min_tokens
        end = high
        if session.smallest_failure is not None:
            end = min(end, session.smallest_failure - 1)
        if start > end:
            return "precision_reached"

        reason = await _scan(session, start, end, config.precision, "fine")
        return "precision_reached" if reason == "range_exhausted" else reason


async def _scan(
    session: SearchSession, start: int, end: int, step: int, phase: SearchPhase
) -> TerminationReason:
    target = start
    while target <= end:
        outcome = await session.probe(target, phase)
        if outcome == "transient_error":
            continue
        if outcome == "boundary_exceeded":
            return "boundary_found"
        target += step
    return "range_exhausted"


async def _bisect(
    session: SearchSession, low: int, high: int, precision: int, phase: SearchPhase
) -> tuple[TerminationReason, int]:
    """Returns the termination reason and the final upper bound."""
    while True:
        mid = (low + high) // 2
        outcome = await session.probe(mid, phase)
        if outcome == "transient_error":
            continue
        if outcome == "success":
            low = mid + 1
        else:
            high = mid - 1
        if low > high:
            return "range_exhausted", high
        if high - low < precision:
            return "precision_reached", high


_STRATEGIES: dict[str, type[SearchStrategy]] = {
    "linear": LinearSearch,
    "binary": BinarySearch,
    "adaptive": AdaptiveSearch,
}


def get_strategy(name: str) -> SearchStrategy:
    try:
        return _STRATEGIES[name]()
    except KeyError:
        available = ", ".join(_STRATEGIES)
        raise ValueError(f"Unknown search strategy '{name}'. Available: {available}")


class SearchHalted(Exception):
    def __init__(self, reason: TerminationReason) -> None:
        super().__init__(reason)
        self.reason = reason
