from __future__ import annotations

import asyncio
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Sequence

from ..errors import AgentError, ArgumentError, DecisionError, TransportError
from ..tools.schemas import ADJUST_THRESHOLD_SPEC
from ..trace import NullTraceEmitter, TraceEmitter
from ..transport import ToolTransport
from ..types import CPU_USAGE_METRIC, ActionProposal, ActionResult, ActionSpec, SituationalContext
from ..utils import setup_logger
from .decision_port import DecisionPort
from .metrics import DEFAULT_RULE, MetricsSource, build_context


logger = setup_logger("autoconf.loop")


class LoopState(str, Enum):
    IDLE = "idle"
    SAMPLING = "sampling"
    DECIDING = "deciding"
    DISPATCHING = "dispatching"


@dataclass
class DispatchOutcome:
    proposal: ActionProposal
    result: Optional[ActionResult] = None
    error_kind: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.result is not None


@dataclass
class TickOutcome:
    tick: int
    context: Optional[SituationalContext] = None
    proposals: List[ActionProposal] = field(default_factory=list)
    dispatched: List[DispatchOutcome] = field(default_factory=list)
    dropped: List[ActionProposal] = field(default_factory=list)
    decision_error: Optional[str] = None


class DecisionLoop:
    """Sample, decide, dispatch; one tick at a time.

    The two awaits (oracle and tool call) are the only suspension points and
    both are bounded. Recoverable errors end the tick early; only the initial
    handshake failure escapes ``run``.
    """

    def __init__(
        self,
        *,
        metrics: MetricsSource,
        port: DecisionPort,
        transport: ToolTransport,
        actions: Sequence[ActionSpec] = (ADJUST_THRESHOLD_SPEC,),
        rule: str = DEFAULT_RULE,
        interval_s: float = 5.0,
        decision_timeout_s: float = 45.0,
        tool_timeout_s: float = 10.0,
        trace: Optional[TraceEmitter] = None,
        run_id: Optional[str] = None,
    ) -> None:
        self.metrics = metrics
        self.port = port
        self.transport = transport
        self.actions = list(actions)
        self.rule = rule
        self.interval_s = interval_s
        self.decision_timeout_s = decision_timeout_s
        self.tool_timeout_s = tool_timeout_s
        self.trace = trace or NullTraceEmitter()
        self.run_id = run_id or str(uuid.uuid4())
        self.ticks = 0
        self._state = LoopState.IDLE
        self._known_actions = {action.name for action in self.actions}

    @property
    def state(self) -> LoopState:
        return self._state

    async def run(self, max_ticks: Optional[int] = None) -> int:
        await self.transport.initialize()
        logger.info("Decision loop started, running every %.1f seconds", self.interval_s)
        completed = 0
        while max_ticks is None or completed < max_ticks:
            started = time.monotonic()
            await self.tick()
            completed += 1
            if max_ticks is not None and completed >= max_ticks:
                break
            # an overrunning tick delays the next one; no catch-up
            remaining = self.interval_s - (time.monotonic() - started)
            if remaining > 0:
                await asyncio.sleep(remaining)
        return completed

    async def tick(self) -> TickOutcome:
        self.ticks += 1
        outcome = TickOutcome(tick=self.ticks)
        try:
            self._state = LoopState.SAMPLING
            context = build_context(self.metrics.sample(), self.rule)
            outcome.context = context
            cpu = context.metric(CPU_USAGE_METRIC)
            if cpu is not None:
                logger.info("Current CPU: %.1f%%", cpu)
            self._emit("tick.sampled", {"metrics": dict(context.metrics)})

            self._state = LoopState.DECIDING
            try:
                outcome.proposals = await self._decide(context)
            except DecisionError as exc:
                outcome.decision_error = str(exc)
                logger.warning("Decision failed, skipping tick %d: %s", self.ticks, exc)
                self._emit("decision", {}, status="error", error=str(exc))
                return outcome
            self._emit(
                "decision",
                {"proposals": [{"name": p.name, "arguments": p.arguments} for p in outcome.proposals]},
            )
            if not outcome.proposals:
                logger.info("Oracle proposed no configuration change")
                return outcome

            self._state = LoopState.DISPATCHING
            for proposal in outcome.proposals:
                if proposal.name not in self._known_actions:
                    logger.debug("Dropping proposal for unknown action %s", proposal.name)
                    outcome.dropped.append(proposal)
                    continue
                outcome.dispatched.append(await self._dispatch(proposal))
            return outcome
        finally:
            self._state = LoopState.IDLE

    async def _decide(self, context: SituationalContext) -> List[ActionProposal]:
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self.port.decide, context, self.actions),
                timeout=self.decision_timeout_s,
            )
        except asyncio.TimeoutError as exc:
            raise DecisionError(f"oracle did not answer within {self.decision_timeout_s:.1f}s") from exc

    async def _dispatch(self, proposal: ActionProposal) -> DispatchOutcome:
        outcome = DispatchOutcome(proposal=proposal)
        attempted = proposal.arguments.get("value")
        logger.info("Oracle decision: %s(%s)", proposal.name, proposal.arguments)
        started = time.monotonic()
        try:
            outcome.result = await asyncio.wait_for(
                self.transport.call(proposal.name, proposal.arguments),
                timeout=self.tool_timeout_s,
            )
        except asyncio.TimeoutError:
            self._record_error(outcome, TransportError(f"{proposal.name} timed out after {self.tool_timeout_s:.1f}s"))
            logger.error("Tool call %s(%r) failed [%s]: %s", proposal.name, attempted, outcome.error_kind, outcome.error)
        except ArgumentError as exc:
            self._record_error(outcome, exc)
            logger.info("Service rejected %s(%r) [%s]: %s", proposal.name, attempted, exc.kind, exc)
        except AgentError as exc:
            self._record_error(outcome, exc)
            logger.error("Tool call %s(%r) failed [%s]: %s", proposal.name, attempted, exc.kind, exc)
        else:
            logger.info(
                "Configuration updated: %.1f -> %.1f (%s)",
                outcome.result.old_value,
                outcome.result.new_value,
                outcome.result.status,
            )
        duration_ms = (time.monotonic() - started) * 1000.0
        payload: dict[str, Any] = {"name": proposal.name, "arguments": proposal.arguments}
        if outcome.result is not None:
            payload["result"] = outcome.result.to_dict()
        else:
            payload["error_kind"] = outcome.error_kind
        self._emit(
            "dispatch",
            payload,
            status="ok" if outcome.ok else "error",
            error=outcome.error,
            duration_ms=duration_ms,
        )
        return outcome

    @staticmethod
    def _record_error(outcome: DispatchOutcome, exc: AgentError) -> None:
        outcome.error_kind = exc.kind
        outcome.error = str(exc)

    def _emit(
        self,
        type: str,
        payload: dict[str, Any],
        *,
        status: str = "ok",
        error: Optional[str] = None,
        duration_ms: Optional[float] = None,
    ) -> None:
        self.trace.event(
            run_id=self.run_id,
            tick=self.ticks,
            actor="agent",
            type=type,
            payload=payload,
            status=status,
            error=error,
            duration_ms=duration_ms,
        )
