"""Probe executor: one synthesized payload, one classified step."""

import asyncio
import logging
import time
from datetime import UTC, datetime

from ctxprobe.catalog import ModelCatalog
from ctxprobe.models import (
    ModelDescriptor,
    ProbeConfiguration,
    ProbeOutcome,
    ProbeStep,
    SearchPhase,
)
from ctxprobe.probing.classifier import BoundaryClassifier, MarkerClassifier
from ctxprobe.probing.synthesizer import ContentSynthesizer
from ctxprobe.transports.base import ChatTransport, TransportReply

logger = logging.getLogger(__name__)


class ProbeExecutor:
    """Sends payloads through a transport and turns the outcome into a ProbeStep.

    Boundary failures are returned immediately. Everything else (timeouts,
    rate limits, network faults) is retried with exponential backoff and,
    once retries run out, recorded as a transient step.
    """

    def __init__(
        self,
        transport: ChatTransport,
        synthesizer: ContentSynthesizer,
        *,
        classifier: BoundaryClassifier | None = None,
        retry_base_delay: float = 1.0,
        retry_max_delay: float = 30.0,
        price_table: ModelCatalog | None = None,
    ) -> None:
        self._transport = transport
        self._synthesizer = synthesizer
        self._classifier = classifier or MarkerClassifier()
        self._retry_base_delay = retry_base_delay
        self._retry_max_delay = retry_max_delay
        self._price_table = price_table

    async def execute(
        self,
        step_number: int,
        target_tokens: int,
        config: ProbeConfiguration,
        descriptor: ModelDescriptor,
        *,
        phase: SearchPhase,
        cancel_event: asyncio.Event | None = None,
    ) -> ProbeStep:
        input_target = target_tokens
        if config.include_output_tokens:
            input_target = max(0, target_tokens - config.output_tokens)

        def make_step(
            outcome: ProbeOutcome, latency_ms: int, attempts: int, input_tokens: int, **extra
        ) -> ProbeStep:
            return ProbeStep(
                step=step_number,
                phase=phase,
                target_tokens=target_tokens,
                input_tokens=input_tokens,
                expected_output_tokens=config.output_tokens,
                outcome=outcome,
                latency_ms=latency_ms,
                attempts=attempts,
                timestamp=datetime.now(UTC),
                **extra,
            )

        try:
            content = self._synthesizer.compose(
                input_target, descriptor.encoding, project_context=config.project_context
            )
        except Exception as e:
            # Nothing was sent; the step is inconclusive.
            logger.warning(
                "Step %d (%d tokens): synthesis failed: %s", step_number, target_tokens, e
            )
            return make_step("transient_error", 0, 0, 0, error=_describe(e))
        messages = [{"role": "user", "content": content.text}]

        last_error: Exception | None = None
        latency_ms = 0
        for attempt in range(config.retry_count + 1):
            if attempt:
                logger.warning(
                    "Step %d (%d tokens): transient failure, retry %d/%d: %s",
                    step_number, target_tokens, attempt, config.retry_count, last_error,
                )
                await self._backoff(attempt - 1, cancel_event)

            start = time.monotonic()
            try:
                reply = await self._send(
                    messages, descriptor.model, config.output_tokens,
                    config.timeout_seconds, cancel_event,
                )
            except ProbeCancelled:
                raise
            except ProbeTimeout as e:
                latency_ms = int((time.monotonic() - start) * 1000)
                last_error = e
                continue
            except Exception as e:
                latency_ms = int((time.monotonic() - start) * 1000)
                if self._classifier(e):
                    return make_step(
                        "boundary_exceeded", latency_ms, attempt + 1, content.token_count,
                        error=_describe(e),
                    )
                last_error = e
                continue

            latency_ms = int((time.monotonic() - start) * 1000)
            billed_input = reply.input_tokens if reply.input_tokens is not None else content.token_count
            input_price, output_price = self._prices(descriptor)
            cost = (billed_input / 1000) * input_price + (reply.output_tokens / 1000) * output_price
            return make_step(
                "success", latency_ms, attempt + 1, content.token_count,
                output_tokens=reply.output_tokens, cost=cost,
            )

        return make_step(
            "transient_error", latency_ms, config.retry_count + 1, content.token_count,
            error=_describe(last_error),
        )

    async def _send(
        self,
        messages: list[dict[str, str]],
        model: str,
        max_output_tokens: int,
        timeout: float,
        cancel_event: asyncio.Event | None,
    ) -> TransportReply:
        """Race the transport call against the timeout and the cancel signal."""
        send = asyncio.ensure_future(self._transport.send(messages, model, max_output_tokens))
        waiters: set[asyncio.Future] = {send}
        cancelled = None
        if cancel_event is not None:
            cancelled = asyncio.ensure_future(cancel_event.wait())
            waiters.add(cancelled)

        try:
            done, _ = await asyncio.wait(
                waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for waiter in waiters:
                if not waiter.done():
                    waiter.cancel()

        if send in done:
            return send.result()
        if cancelled is not None and cancelled in done:
            raise ProbeCancelled()
        raise ProbeTimeout(f"No response within {timeout:g}s")

    def _prices(self, descriptor: ModelDescriptor) -> tuple[float, float]:
        if self._price_table is not None:
            return self._price_table.prices(descriptor.model)
        return descriptor.input_price_per_1k, descriptor.output_price_per_1k

    async def _backoff(self, attempt: int, cancel_event: asyncio.Event | None) -> None:
        delay = min(self._retry_base_delay * 2**attempt, self._retry_max_delay)
        if cancel_event is None:
            await asyncio.sleep(delay)
            return
        if cancel_event.is_set():
            raise ProbeCancelled()
        try:
            await asyncio.wait_for(cancel_event.wait(), timeout=delay)
        except TimeoutError:
            return
        raise ProbeCancelled()


def _describe(error: Exception | None) -> str:
    if error is None:
        return "unknown error"
    message = str(error)
    return f"{type(error).__name__}: {message}" if message else type(error).__name__


class ProbeCancelled(Exception):
    """Cancellation observed while a step was in flight; no step is recorded."""


class ProbeTimeout(Exception):
    pass
