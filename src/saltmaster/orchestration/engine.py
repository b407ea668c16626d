"""Execution engine: runs a step graph as a dataflow of asyncio tasks."""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional, Set

import structlog

from saltmaster.core.errors import ProviderError
from saltmaster.deferred import Deferred
from saltmaster.orchestration.registry import Step, StepGraph
from saltmaster.orchestration.results import ExecutionTrace

logger = structlog.get_logger()


class _UpstreamFailed(Exception):
    """A dependency failed or was cancelled, so this step never started."""


class ExecutionEngine:
    """Starts every step as soon as all of its inputs resolve.

    Steps without a data dependency between them run concurrently. The first
    failing step stops the run: steps that have not started their action are
    cancelled, actions already in flight are left to finish and their
    results are discarded. An action may return a Deferred; the step then
    completes only once that value resolved. The first error is re-raised
    unchanged, after a ProviderError has been annotated with the failing step.
    """

    def __init__(self, graph: StepGraph) -> None:
        self._graph = graph

    async def execute(self, trace: Optional[ExecutionTrace] = None) -> Dict[str, Any]:
        order = self._graph.order()
        trace = trace if trace is not None else ExecutionTrace()

        tasks: Dict[str, asyncio.Task[Any]] = {}
        started: Set[str] = set()
        skipped: Set[str] = set()
        failures: list[tuple[str, BaseException]] = []

        def mark_skipped(name: str) -> None:
            if name not in skipped:
                skipped.add(name)
                trace.record(name, "skipped")
                logger.debug("step_skipped", step=name)

        def on_failure(name: str, exc: BaseException) -> None:
            failures.append((name, exc))
            if len(failures) > 1:
                return
            for other, task in tasks.items():
                if other not in started and not task.done():
                    task.cancel()

        async def run_step(step: Step) -> Any:
            try:
                # Shielded: cancelling a waiting step must not cancel a dependency in flight.
                inputs = {dep: await asyncio.shield(tasks[dep]) for dep in step.depends_on}
            except (Exception, asyncio.CancelledError) as exc:
                mark_skipped(step.name)
                raise _UpstreamFailed(step.name) from exc

            if failures:
                mark_skipped(step.name)
                raise _UpstreamFailed(step.name)

            started.add(step.name)
            trace.record(step.name, "started")
            logger.info("step_started", step=step.name)
            try:
                result = await step.action(inputs)
                if isinstance(result, Deferred):
                    await result
            except Exception as exc:
                if isinstance(exc, ProviderError):
                    exc.annotate(step.name, step.display_name)
                else:
                    exc.add_note(f"while running step '{step.name}' ({step.display_name})")
                trace.record(step.name, "failed")
                logger.error("step_failed", step=step.name, error=str(exc), error_type=type(exc).__name__)
                on_failure(step.name, exc)
                raise
            trace.record(step.name, "completed")
            logger.info("step_completed", step=step.name)
            return result

        for name in order:
            tasks[name] = asyncio.create_task(run_step(self._graph[name]), name=f"step:{name}")

        outcomes = await asyncio.gather(*tasks.values(), return_exceptions=True)

        # Tasks cancelled before their first turn never ran their body.
        for name, outcome in zip(tasks.keys(), outcomes):
            if isinstance(outcome, asyncio.CancelledError):
                mark_skipped(name)

        if failures:
            raise failures[0][1]

        return dict(zip(tasks.keys(), outcomes))
