"""WorkflowEngine — runs a workflow's steps layer by layer.

Steps are grouped into dependency layers (see :mod:`.dag`).  All steps of
a layer run concurrently and the next layer starts only once every step of
the current one has finished.  After a layer, each failed step that still
has retries is re-run once; if any step remains failed the run ends in
``error`` and later layers never start.

Run progress (status, step results, blackboard) is persisted at the start
of every layer, after it finishes, and after every retry.  Pass
``on_update`` to receive each persisted snapshot.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import aclosing
from typing import TYPE_CHECKING, Any

from conductor.core.agents.models import AgentConfig
from conductor.core.workflows.conditions import evaluate_condition, interpolate_prompt
from conductor.core.workflows.dag import resolve_layers
from conductor.core.workflows.models import WorkflowStepResult
from conductor.errors import StepTimeoutError, WorkflowNotFoundError
from conductor.storage.database import utc_now
from conductor.utils.telemetry import (
    ATTR_LAYER,
    ATTR_LAYER_SIZE,
    ATTR_RUN_ID,
    ATTR_STEP_ID,
    ATTR_STEP_STATUS,
    ATTR_WORKFLOW_ID,
    get_tracer,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from conductor.core.agents.launcher import AgentLauncher
    from conductor.core.agents.logbuffer import LogLevel
    from conductor.core.agents.models import AgentInstance
    from conductor.core.agents.registry import AgentRegistry
    from conductor.core.logs.store import LogStore
    from conductor.core.traces.models import AgentTrace
    from conductor.core.traces.store import TraceStore
    from conductor.core.workflows.models import WorkflowRun, WorkflowStep
    from conductor.core.workflows.store import WorkflowStore

    RunCallback = Callable[[WorkflowRun], Awaitable[None]]

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

STEP_TIMEOUT_ERROR = "Step timed out"


class WorkflowEngine:
    """Executes workflows against the agent launcher.

    Usage::

        engine = WorkflowEngine(store, registry, launcher, traces)
        run = await engine.run(workflow.id, {"topic": "solar"})
        print(run.status, run.blackboard)
    """

    def __init__(
        self,
        store: WorkflowStore,
        registry: AgentRegistry,
        launcher: AgentLauncher,
        traces: TraceStore,
        *,
        default_runtime: str = "litellm",
        logs: LogStore | None = None,
    ) -> None:
        self.store = store
        self.registry = registry
        self.launcher = launcher
        self.traces = traces
        self.default_runtime = default_runtime
        self.logs = logs
        self._resolve_lock = asyncio.Lock()

    async def run(
        self,
        workflow_id: str,
        input: dict[str, Any] | None = None,  # noqa: A002
        on_update: RunCallback | None = None,
    ) -> WorkflowRun:
        """Execute a workflow to completion and return the finished run.

        Raises:
            WorkflowNotFoundError: If *workflow_id* does not exist.
        """
        workflow = await self.store.get(workflow_id)
        if workflow is None:
            raise WorkflowNotFoundError(workflow_id)

        run = await self.store.create_run(workflow.id, input)
        run.step_results = {s.id: WorkflowStepResult(step_id=s.id) for s in workflow.steps}
        logger.info("Starting run %s of workflow %s", run.id, workflow.name)
        await self._log("info", run, f"Starting workflow \"{workflow.name}\"", input=input or {})

        with _tracer.start_as_current_span("workflow.run") as span:
            span.set_attribute(ATTR_WORKFLOW_ID, workflow.id)
            span.set_attribute(ATTR_RUN_ID, run.id)
            try:
                for index, layer in enumerate(resolve_layers(workflow.steps)):
                    failed = await self._run_layer(run, layer, index, on_update)
                    if failed:
                        run.status = "error"
                        run.error = f"Steps failed: {', '.join(failed)}"
                        await self._log("error", run, run.error, failed=failed)
                        break
                else:
                    run.status = "completed"
                    await self._log("info", run, "Workflow completed")
            except Exception as exc:
                logger.exception("Run %s of workflow %s failed", run.id, workflow.id)
                run.status = "error"
                run.error = str(exc) or exc.__class__.__name__
                await self._log("error", run, f"Workflow failed: {run.error}")
            run.completed_at = utc_now()
            await self._persist(run, on_update)

        logger.info("Run %s finished with status %s", run.id, run.status)
        return run

    async def _run_layer(
        self,
        run: WorkflowRun,
        layer: list[WorkflowStep],
        index: int,
        on_update: RunCallback | None,
    ) -> list[str]:
        """Run one layer and its retries, returning the ids of failed steps."""
        with _tracer.start_as_current_span("workflow.layer") as span:
            span.set_attribute(ATTR_LAYER, index)
            span.set_attribute(ATTR_LAYER_SIZE, len(layer))

            eligible: list[WorkflowStep] = []
            for step in layer:
                result = run.step_results[step.id]
                if step.condition and not evaluate_condition(step.condition, run.blackboard):
                    logger.info("Skipping step %s: condition %r not met", step.id, step.condition)
                    result.status = "skipped"
                    result.completed_at = utc_now()
                else:
                    result.status = "running"
                    result.started_at = utc_now()
                    eligible.append(step)
            await self._persist(run, on_update)

            await asyncio.gather(*(self._execute_step(run, step) for step in eligible))
            await self._persist(run, on_update)

            for step in eligible:
                if run.step_results[step.id].status == "error" and step.retries > 0:
                    logger.warning("Retrying step %s (%d retries left)", step.id, step.retries - 1)
                    await self._log("warn", run, f"Retrying step {step.id}", retries_left=step.retries - 1)
                    await self._execute_step(run, step.model_copy(update={"retries": step.retries - 1}))
                    await self._persist(run, on_update)

        return [step_id for step_id, r in run.step_results.items() if r.status == "error"]

    async def _execute_step(self, run: WorkflowRun, step: WorkflowStep) -> None:
        result = run.step_results[step.id]
        result.status = "running"
        result.started_at = utc_now()
        result.output = None
        result.error = None
        prompt = interpolate_prompt(step.prompt, run.blackboard)

        with _tracer.start_as_current_span("workflow.step") as span:
            span.set_attribute(ATTR_STEP_ID, step.id)
            trace: AgentTrace | None = None
            output = ""
            error: str | None = None
            try:
                agent = await self._resolve_agent(step)
                trace = await self.traces.create_trace(
                    agent.id,
                    agent.runtime,
                    agent_name=f"Workflow step: {step.name}",
                    prompt_preview=prompt,
                )
                result.trace_id = trace.trace_id
                output, error = await self._run_with_timeout(step, trace, agent.id, prompt)
            except StepTimeoutError as exc:
                logger.warning("%s", exc)
                error = STEP_TIMEOUT_ERROR
                if trace is not None:
                    await self.traces.complete_trace(trace.trace_id, "error", error=error)
            except Exception as exc:
                logger.exception("Step %s failed", step.id)
                error = str(exc) or exc.__class__.__name__

            if error is not None:
                result.status = "error"
                result.error = error
            else:
                result.status = "completed"
                result.output = output
                if step.output_key and output:
                    run.blackboard[step.output_key] = output
            result.completed_at = utc_now()
            span.set_attribute(ATTR_STEP_STATUS, result.status)

    async def _run_with_timeout(
        self,
        step: WorkflowStep,
        trace: AgentTrace,
        agent_id: str,
        prompt: str,
    ) -> tuple[str, str | None]:
        try:
            return await asyncio.wait_for(self._consume(trace, agent_id, prompt), timeout=step.timeout)
        except TimeoutError as exc:
            raise StepTimeoutError(step.id, step.timeout) from exc

    async def _consume(self, trace: AgentTrace, agent_id: str, prompt: str) -> tuple[str, str | None]:
        """Drain the agent stream, returning its text output and any error."""
        texts: list[str] = []
        error: str | None = None
        async with (
            aclosing(self.launcher.launch(agent_id, prompt)) as stream,
            aclosing(self.traces.instrument(trace, stream)) as events,
        ):
            async for event in events:
                if event.type == "assistant":
                    texts.extend(event.text_blocks)
                elif event.type == "error":
                    error = event.error or "Agent error"
        return "\n".join(texts), error

    async def _resolve_agent(self, step: WorkflowStep) -> AgentInstance:
        """Find the step's agent by id or name, creating an ephemeral one if needed."""
        async with self._resolve_lock:
            agent = await self.registry.find(step.agent_id)
            if agent is not None:
                return agent
            runtime = step.runtime or self.default_runtime
            logger.info("Creating ephemeral agent %s for step %s (runtime=%s)", step.agent_id, step.id, runtime)
            return await self.registry.create(
                step.name,
                agent_id=step.agent_id,
                display_name=f"Workflow: {step.name}",
                config=AgentConfig(runtime=runtime),
            )

    async def _log(self, level: LogLevel, run: WorkflowRun, message: str, **metadata: Any) -> None:
        if self.logs is not None:
            await self.logs.insert(
                level, "workflow", message, source_id=run.workflow_id, metadata={"run_id": run.id, **metadata}
            )

    async def _persist(self, run: WorkflowRun, on_update: RunCallback | None) -> None:
        await self.store.update_run(run)
        if on_update is not None:
            await on_update(run.model_copy(deep=True))
