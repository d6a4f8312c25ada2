"""Probe service: validates configurations, drives runs, keeps the history."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import uuid4

from ctxprobe.catalog import ModelCatalog
from ctxprobe.config import Settings
from ctxprobe.models import (
    ModelDescriptor,
    ProbeConfiguration,
    ProbeResult,
    RunStatus,
    TerminationReason,
)
from ctxprobe.probing.classifier import BoundaryClassifier, MarkerClassifier
from ctxprobe.probing.executor import ProbeExecutor
from ctxprobe.probing.history import RunHistory
from ctxprobe.probing.statistics import compute_statistics
from ctxprobe.probing.strategies import SearchSession, StepCallback, get_strategy
from ctxprobe.probing.synthesizer import ContentSynthesizer
from ctxprobe.probing.tokens import TokenCounter, get_token_counter
from ctxprobe.transports.base import ChatTransport

logger = logging.getLogger(__name__)


def validate_configuration(config: ProbeConfiguration) -> list[str]:
    """Return every problem with the configuration; empty when it is valid."""
    errors: list[str] = []
    if not config.model.strip():
        errors.append("model must not be empty")
    if config.min_tokens < 0:
        errors.append("min_tokens must be >= 0")
    if config.min_tokens > config.max_tokens:
        errors.append(
            f"min_tokens ({config.min_tokens}) must not exceed max_tokens ({config.max_tokens})"
        )
    if config.precision <= 0:
        errors.append("precision must be > 0")
    if config.max_attempts <= 0:
        errors.append("max_attempts must be > 0")
    if config.step_size <= 0:
        errors.append("step_size must be > 0")
    if config.timeout_seconds <= 0:
        errors.append("timeout_seconds must be > 0")
    if config.retry_count < 0:
        errors.append("retry_count must be >= 0")
    if config.output_tokens < 0:
        errors.append("output_tokens must be >= 0")
    if config.include_output_tokens and config.output_tokens >= config.max_tokens:
        errors.append("output_tokens must be smaller than max_tokens when included in the budget")
    return errors


@dataclass
class _ActiveRun:
    run_id: str
    config: ProbeConfiguration
    descriptor: ModelDescriptor
    session: SearchSession
    cancel_event: asyncio.Event
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    task: asyncio.Task | None = None


class ProbeService:
    """Entry point for probe runs.

    `run` executes a probe to completion in the caller's task. `start` runs it
    in a background task and returns the run id for `snapshot`, `cancel` and
    `wait`. Both validate the configuration before any request is sent.
    """

    def __init__(
        self,
        catalog: ModelCatalog | None = None,
        token_counter: TokenCounter | None = None,
        *,
        history: RunHistory | None = None,
        classifier: BoundaryClassifier | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._settings = settings or Settings()
        self.catalog = catalog if catalog is not None else ModelCatalog()
        self._counter = token_counter or get_token_counter(self._settings.token_counter)
        self._synthesizer = ContentSynthesizer(
            self._counter, tolerance=self._settings.synthesis_tolerance
        )
        self._classifier = classifier or MarkerClassifier()
        if history is None:
            history = RunHistory(limit=self._settings.history_limit)
        self.history = history
        self._active: dict[str, _ActiveRun] = {}

    async def run(
        self,
        config: ProbeConfiguration,
        transport: ChatTransport,
        *,
        on_step: StepCallback | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> ProbeResult:
        active = self._prepare(config, transport, on_step, cancel_event)
        return await self._execute(active)

    def start(
        self,
        config: ProbeConfiguration,
        transport: ChatTransport,
        *,
        on_step: StepCallback | None = None,
    ) -> str:
        """Launch a run in the background. Raises ConfigurationError immediately."""
        active = self._prepare(config, transport, on_step, None)
        active.task = asyncio.create_task(self._execute(active), name=f"probe-{active.run_id}")
        return active.run_id

    def cancel(self, run_id: str) -> bool:
        """Request cancellation. Returns False when the run already finished."""
        active = self._active.get(run_id)
        if active is None:
            if self.history.get(run_id) is not None:
                return False
            raise RunNotFoundError(run_id)
        active.cancel_event.set()
        return True

    def snapshot(self, run_id: str) -> ProbeResult:
        """Current view of a run: partial while running, final once finished."""
        active = self._active.get(run_id)
        if active is not None:
            return self._build_result(active, "running", None, None)
        result = self.history.get(run_id)
        if result is None:
            raise RunNotFoundError(run_id)
        return result

    async def wait(self, run_id: str) -> ProbeResult:
        active = self._active.get(run_id)
        if active is not None and active.task is not None:
            return await active.task
        result = self.history.get(run_id)
        if result is None:
            raise RunNotFoundError(run_id)
        return result

    def active_runs(self) -> list[str]:
        return list(self._active)

    # -- internals --

    def _prepare(
        self,
        config: ProbeConfiguration,
        transport: ChatTransport,
        on_step: StepCallback | None,
        cancel_event: asyncio.Event | None,
    ) -> _ActiveRun:
        errors = validate_configuration(config)
        if errors:
            raise ConfigurationError(errors)

        descriptor = self.catalog.resolve(config.model, config.provider or transport.name)
        executor = ProbeExecutor(
            transport,
            self._synthesizer,
            classifier=self._classifier,
            retry_base_delay=self._settings.retry_base_delay,
            retry_max_delay=self._settings.retry_max_delay,
            price_table=self.catalog,
        )
        cancel_event = cancel_event or asyncio.Event()
        session = SearchSession(
            config, descriptor, executor, cancel_event=cancel_event, on_step=on_step
        )
        active = _ActiveRun(
            run_id=str(uuid4()),
            config=config,
            descriptor=descriptor,
            session=session,
            cancel_event=cancel_event,
        )
        self._active[active.run_id] = active
        return active

    async def _execute(self, active: _ActiveRun) -> ProbeResult:
        config = active.config
        logger.info(
            "Probe %s started: model=%s strategy=%s range=[%d, %d]",
            active.run_id, config.model, config.strategy, config.min_tokens, config.max_tokens,
        )
        try:
            strategy = get_strategy(config.strategy)
            reason = await strategy.run(active.session)
            status: RunStatus = "cancelled" if reason == "cancelled" else "completed"
            result = self._build_result(active, status, reason, datetime.now(UTC))
            await self.history.append(result)
        finally:
            self._active.pop(active.run_id, None)

        logger.info(
            "Probe %s %s (%s): boundary=%d after %d steps",
            result.run_id, result.status, reason, result.discovered_boundary, len(result.steps),
        )
        return result

    def _build_result(
        self,
        active: _ActiveRun,
        status: RunStatus,
        reason: TerminationReason | None,
        finished_at: datetime | None,
    ) -> ProbeResult:
        session = active.session
        steps = tuple(session.steps)
        statistics = compute_statistics(
            steps,
            session.boundary,
            active.descriptor.max_context_tokens,
            active.config.precision,
            active.started_at,
            finished_at or datetime.now(UTC),
        )
        return ProbeResult(
            run_id=active.run_id,
            model=active.config.model,
            provider=active.descriptor.provider,
            strategy=active.config.strategy,
            status=status,
            partial=status != "completed",
            termination_reason=reason,
            configured_max_tokens=active.config.max_tokens,
            theoretical_max_tokens=active.descriptor.max_context_tokens,
            discovered_boundary=session.boundary,
            steps=steps,
            statistics=statistics,
            started_at=active.started_at,
            finished_at=finished_at,
        )


class ConfigurationError(Exception):
    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        super().__init__("Invalid probe configuration: " + "; ".join(errors))


class RunNotFoundError(Exception):
    def __init__(self, run_id: str) -> None:
        self.run_id = run_id
        super().__init__(f"Probe run not found: {run_id}")
