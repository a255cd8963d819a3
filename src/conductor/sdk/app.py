"""Conductor — the programmatic entry point to the coordination core.

Wires the durable stores, execution backends, launcher, workflow engine,
team supervisor and tool server around a single database connection.

Usage::

    async with Conductor(load_settings()) as conductor:
        agent = await conductor.create_agent("researcher")
        async for event in conductor.launch_agent(agent.id, "Summarise ..."):
            print(event.type, event.text)
"""

from __future__ import annotations

import logging
from contextlib import aclosing
from typing import TYPE_CHECKING, Any

from conductor import __version__
from conductor.core.agents.launcher import AgentLauncher
from conductor.core.agents.logbuffer import AgentLogBuffer
from conductor.core.agents.models import AgentConfig
from conductor.core.agents.registry import AgentRegistry
from conductor.core.backends.base import BackendRegistry
from conductor.core.backends.litellm_backend import LiteLLMBackend
from conductor.core.backends.sessions import SessionStore
from conductor.core.backends.subprocess_backend import SubprocessBackend
from conductor.core.blackboard.blackboard import Blackboard
from conductor.core.events.bus import EventBus
from conductor.core.events.mailbox import Mailbox
from conductor.core.logs.store import LogStore
from conductor.core.teams.store import TeamStore
from conductor.core.teams.supervisor import TeamSupervisor
from conductor.core.traces.store import TraceStore
from conductor.core.workflows.engine import WorkflowEngine
from conductor.core.workflows.models import WorkflowDefinition
from conductor.core.workflows.store import WorkflowStore
from conductor.core.workflows.triggers import TriggerDispatcher
from conductor.errors import WorkflowNotFoundError
from conductor.protocols.server import TeamToolServer
from conductor.sdk.loader import parse_workflow
from conductor.sdk.models import ConductorSettings
from conductor.storage.database import Database
from conductor.utils.telemetry import configure_telemetry

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from conductor.core.agents.events import AgentEvent
    from conductor.core.agents.logbuffer import LogEntry, LogLevel
    from conductor.core.agents.models import AgentInstance
    from conductor.core.backends.base import ExecutionBackend
    from conductor.core.logs.models import LogSource, SystemLog
    from conductor.core.teams.models import Team, TeamMember, TeamStatus
    from conductor.core.traces.models import AgentTrace
    from conductor.core.workflows.engine import RunCallback
    from conductor.core.workflows.models import Workflow, WorkflowRun

logger = logging.getLogger(__name__)


class Conductor:
    """Facade over the coordination core.

    Args:
        settings: Runtime settings; defaults are used when omitted.
        backends: Extra execution backends, registered after (and
            overriding) the built-in ``litellm`` and ``subprocess`` ones.
    """

    def __init__(
        self,
        settings: ConductorSettings | None = None,
        *,
        backends: list[ExecutionBackend] | None = None,
    ) -> None:
        self.settings = settings or ConductorSettings()
        self.db = Database(self.settings.database_path)

        self.registry = AgentRegistry(self.db)
        self.bus = EventBus(self.db)
        self.mailbox = Mailbox(self.db)
        self.blackboard = Blackboard(self.db)
        self.traces = TraceStore(self.db)
        self.workflows = WorkflowStore(self.db)
        self.teams = TeamStore(self.db)
        self.system_logs = LogStore(self.db)
        self.sessions = SessionStore(self.db)
        self.tools = TeamToolServer(
            self.bus, self.mailbox, self.blackboard, self.registry, self.teams, version=__version__
        )

        llm = self.settings.litellm
        self.backends = BackendRegistry(
            [
                LiteLLMBackend(
                    llm.default_model,
                    tool_provider_factory=self.tools.for_agent if llm.team_tools else None,
                    sessions=self.sessions,
                    max_turns=llm.max_turns,
                ),
                SubprocessBackend(self.settings.subprocess.command),
            ]
        )
        for backend in backends or []:
            self.backends.register(backend)

        runtime = self.settings.default_runtime
        self.launcher = AgentLauncher(
            self.registry,
            self.backends,
            logs=AgentLogBuffer(self.settings.log_buffer_size),
        )
        self.engine = WorkflowEngine(
            self.workflows,
            self.registry,
            self.launcher,
            self.traces,
            default_runtime=runtime,
            logs=self.system_logs,
        )
        self.triggers = TriggerDispatcher(self.workflows, self.bus, self.engine)
        self.supervisor = TeamSupervisor(
            self.teams,
            self.registry,
            self.launcher,
            self.bus,
            self.blackboard,
            default_runtime=runtime,
            logs=self.system_logs,
        )

    async def __aenter__(self) -> Conductor:
        await self.open()
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close()

    async def open(self) -> None:
        """Connect the database and recover agents and traces orphaned by a previous process."""
        if self.settings.telemetry is not None:
            configure_telemetry(self.settings.telemetry)
        await self.db.connect()
        await self.registry.recover()
        await self.traces.recover()
        logger.debug("Conductor ready (db=%s, backends=%s)", self.db.path, self.backends.names)

    async def close(self) -> None:
        await self.db.close()

    # ------------------------------------------------------------------
    # Agents
    # ------------------------------------------------------------------

    async def create_agent(
        self,
        agent_name: str,
        *,
        display_name: str | None = None,
        config: AgentConfig | None = None,
        agent_id: str | None = None,
    ) -> AgentInstance:
        if config is None:
            config = AgentConfig(runtime=self.settings.default_runtime)
        return await self.registry.create(agent_name, display_name=display_name, config=config, agent_id=agent_id)

    async def launch_agent(self, agent_id: str, prompt: str) -> AsyncIterator[AgentEvent]:
        """Launch *agent_id* on *prompt*, recording the run as a trace."""
        async for event in self._traced(agent_id, prompt, self.launcher.launch):
            yield event

    async def prompt_agent(self, agent_id: str, message: str) -> AsyncIterator[AgentEvent]:
        """Continue *agent_id*'s session with *message*, recording a trace."""
        async for event in self._traced(agent_id, message, self.launcher.prompt):
            yield event

    async def _traced(
        self,
        agent_id: str,
        text: str,
        start: Callable[[str, str], AsyncIterator[AgentEvent]],
    ) -> AsyncIterator[AgentEvent]:
        agent = await self.registry.get(agent_id)
        if agent is None:
            async with aclosing(start(agent_id, text)) as events:
                async for event in events:
                    yield event
            return

        trace = await self.traces.create_trace(
            agent.id, agent.runtime, agent_name=agent.agent_name, prompt_preview=text
        )
        async with aclosing(start(agent_id, text)) as stream, aclosing(self.traces.instrument(trace, stream)) as events:
            async for event in events:
                yield event

    async def stop_agent(self, agent_id: str) -> bool:
        return await self.launcher.stop(agent_id)

    async def get_agent(self, agent_id: str) -> AgentInstance | None:
        return await self.registry.get(agent_id)

    async def list_agents(self) -> list[AgentInstance]:
        return await self.registry.list_all()

    def agent_logs(self, agent_id: str, limit: int | None = None) -> list[LogEntry]:
        return self.launcher.agent_logs(agent_id, limit)

    async def agent_traces(self, agent_id: str, limit: int = 20) -> list[AgentTrace]:
        """Persisted execution history for *agent_id*, newest first."""
        return await self.traces.list_traces(agent_id=agent_id, limit=limit)

    async def query_logs(
        self,
        *,
        source: LogSource | None = None,
        source_id: str | None = None,
        level: LogLevel | None = None,
        limit: int = 100,
    ) -> list[SystemLog]:
        """Persisted workflow and team log entries, newest first."""
        return await self.system_logs.query(source=source, source_id=source_id, level=level, limit=limit)

    # ------------------------------------------------------------------
    # Workflows
    # ------------------------------------------------------------------

    async def create_workflow(self, definition: WorkflowDefinition | dict[str, Any]) -> Workflow:
        if isinstance(definition, dict):
            definition = parse_workflow(definition)
        return await self.workflows.create(definition)

    async def get_workflow(self, workflow_id: str) -> Workflow | None:
        return await self.workflows.get(workflow_id)

    async def list_workflows(self) -> list[Workflow]:
        return await self.workflows.list_all()

    async def update_workflow(self, workflow_id: str, definition: WorkflowDefinition | dict[str, Any]) -> Workflow:
        if isinstance(definition, dict):
            definition = parse_workflow(definition)
        return await self.workflows.update(workflow_id, definition)

    async def delete_workflow(self, workflow_id: str) -> bool:
        return await self.workflows.delete(workflow_id)

    async def run_workflow(
        self,
        workflow_id: str,
        input: dict[str, Any] | None = None,  # noqa: A002
        on_update: RunCallback | None = None,
    ) -> WorkflowRun:
        return await self.engine.run(workflow_id, input, on_update)

    async def get_workflow_run(self, run_id: str) -> WorkflowRun | None:
        return await self.workflows.get_run(run_id)

    async def list_workflow_runs(self, workflow_id: str, limit: int = 20) -> list[WorkflowRun]:
        if await self.workflows.get(workflow_id) is None:
            raise WorkflowNotFoundError(workflow_id)
        return await self.workflows.list_runs(workflow_id, limit)

    async def dispatch_triggers(self) -> list[WorkflowRun]:
        return await self.triggers.dispatch()

    # ------------------------------------------------------------------
    # Teams
    # ------------------------------------------------------------------

    async def create_team(
        self,
        name: str,
        members: list[TeamMember] | None = None,
        *,
        supervisor_id: str | None = None,
        description: str = "",
    ) -> Team:
        return await self.teams.create(name, description=description, members=members, supervisor_id=supervisor_id)

    def start_team(self, team_id: str, prompt: str) -> AsyncIterator[AgentEvent]:
        return self.supervisor.start_team(team_id, prompt)

    def message_team_member(self, team_id: str, agent_id: str, message: str) -> AsyncIterator[AgentEvent]:
        return self.supervisor.message_team_member(team_id, agent_id, message)

    async def get_team_status(self, team_id: str) -> TeamStatus:
        return await self.supervisor.get_team_status(team_id)

    # ------------------------------------------------------------------
    # Tool protocol
    # ------------------------------------------------------------------

    async def handle_tool_request(self, agent_id: str, request: dict[str, Any]) -> dict[str, Any]:
        return await self.tools.handle_request(agent_id, request)
