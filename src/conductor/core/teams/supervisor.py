"""TeamSupervisor — runs a team through a designated supervisor agent.

The supervisor receives a prompt describing its teammates and the task.
While its output streams back, assistant text is fed through an
:class:`~conductor.core.teams.delegation.IntentExtractor`; every
delegation found is published on the event bus as ``task.delegated`` for
the target agent to claim.
"""

from __future__ import annotations

import logging
from contextlib import aclosing
from typing import TYPE_CHECKING, Any

from conductor.core.agents.events import AgentEvent
from conductor.core.agents.models import AgentConfig
from conductor.core.teams.delegation import MarkerDelegationExtractor
from conductor.core.teams.models import MemberStatus, TeamStatus
from conductor.errors import TeamNotFoundError
from conductor.utils.telemetry import ATTR_AGENT_ID, ATTR_TEAM_ID, get_tracer

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from conductor.core.agents.launcher import AgentLauncher
    from conductor.core.agents.logbuffer import LogLevel
    from conductor.core.agents.models import AgentInstance
    from conductor.core.agents.registry import AgentRegistry
    from conductor.core.blackboard.blackboard import Blackboard
    from conductor.core.events.bus import EventBus
    from conductor.core.logs.store import LogStore
    from conductor.core.teams.delegation import IntentExtractor
    from conductor.core.teams.models import Team
    from conductor.core.teams.store import TeamStore

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

_SUPERVISOR_PROMPT = """\
You are the supervisor of team "{name}".

Your team members:
{members}

Your task: {task}

You can coordinate by:
1. Analyzing the task and breaking it into subtasks
2. Delegating with [DELEGATE: agentId | task description]
3. Checking results and synthesizing a final answer

Focus on the task and coordinate efficiently."""


def team_source(team_id: str) -> str:
    """Event-bus source identity for events emitted on behalf of a team."""
    return f"team:{team_id}"


class TeamSupervisor:
    def __init__(
        self,
        teams: TeamStore,
        registry: AgentRegistry,
        launcher: AgentLauncher,
        bus: EventBus,
        blackboard: Blackboard,
        *,
        extractor: IntentExtractor | None = None,
        default_runtime: str = "litellm",
        logs: LogStore | None = None,
    ) -> None:
        self.teams = teams
        self.registry = registry
        self.launcher = launcher
        self.bus = bus
        self.blackboard = blackboard
        self.extractor: IntentExtractor = extractor or MarkerDelegationExtractor()
        self.default_runtime = default_runtime
        self.logs = logs

    async def start_team(self, team_id: str, prompt: str) -> AsyncIterator[AgentEvent]:
        """Launch the team's supervisor on *prompt* and relay its stream."""
        team = await self.teams.get(team_id)
        if team is None:
            yield AgentEvent.failure("Team not found")
            yield AgentEvent.done()
            return

        logger.info("Starting team %s with %d members", team.name, len(team.members))
        await self._log("info", team, f"Starting team \"{team.name}\"", prompt=prompt[:200])
        await self.teams.set_status(team.id, "active")
        span = _tracer.start_span("team.supervise")
        span.set_attribute(ATTR_TEAM_ID, team.id)
        try:
            await self.bus.publish(
                "team.started",
                team_source(team.id),
                {"team_id": team.id, "team_name": team.name, "members": [m.agent_id for m in team.members]},
            )
            supervisor_prompt = await self.build_prompt(team, prompt)

            supervisor_ref = team.supervisor_id or (team.members[0].agent_id if team.members else None)
            if supervisor_ref is None:
                await self._log("error", team, "Team has no supervisor or members")
                yield AgentEvent.failure("Team has no supervisor or members")
                yield AgentEvent.done()
                return
            supervisor = await self._resolve_supervisor(team, supervisor_ref)

            yield AgentEvent.status_update(f"Starting team supervisor for {team.name}...")
            span.set_attribute(ATTR_AGENT_ID, supervisor.id)
            async with aclosing(self.launcher.launch(supervisor.id, supervisor_prompt)) as stream:
                async for event in stream:
                    if event.type == "assistant":
                        for text in event.text_blocks:
                            await self._publish_delegations(team, text)
                    yield event
        finally:
            await self.teams.set_status(team.id, "idle")
            span.end()

    async def message_team_member(self, team_id: str, agent_id: str, message: str) -> AsyncIterator[AgentEvent]:
        """Send *message* to one member, resuming its session when it has one."""
        team = await self.teams.get(team_id)
        if team is None:
            yield AgentEvent.failure("Team not found")
            yield AgentEvent.done()
            return
        if not team.has_member(agent_id):
            yield AgentEvent.failure("Agent is not a team member")
            yield AgentEvent.done()
            return
        agent = await self.registry.get(agent_id)
        if agent is None:
            yield AgentEvent.failure("Agent not found")
            yield AgentEvent.done()
            return

        stream = self.launcher.prompt(agent_id, message) if agent.session_id else self.launcher.launch(agent_id, message)
        async with aclosing(stream) as events:
            async for event in events:
                yield event

    async def get_team_status(self, team_id: str) -> TeamStatus:
        """Return member statuses, the last 20 team events, and the team blackboard.

        Raises:
            TeamNotFoundError: If *team_id* does not exist.
        """
        team = await self.teams.get(team_id)
        if team is None:
            raise TeamNotFoundError(team_id)

        statuses: list[MemberStatus] = []
        for member in team.members:
            agent = await self.registry.get(member.agent_id)
            statuses.append(
                MemberStatus(
                    agent_id=member.agent_id,
                    display_name=agent.display_name if agent else member.agent_id,
                    role=member.role,
                    status=agent.status.value if agent else "unknown",
                )
            )
        return TeamStatus(
            team=team,
            member_statuses=statuses,
            recent_events=await self.bus.query(source=team_source(team.id), unconsumed_only=False, limit=20),
            blackboard=await self.blackboard.read_all(team.id),
        )

    async def build_prompt(self, team: Team, task: str) -> str:
        lines: list[str] = []
        for member in team.members:
            agent = await self.registry.get(member.agent_id)
            name = agent.display_name if agent else member.agent_id
            lines.append(f"- {name} (role: {member.role}, capabilities: {', '.join(member.capabilities)})")
        return _SUPERVISOR_PROMPT.format(name=team.name, members="\n".join(lines), task=task)

    async def _resolve_supervisor(self, team: Team, ref: str) -> AgentInstance:
        agent = await self.registry.get(ref)
        if agent is not None:
            return agent
        agent = await self.registry.create(
            f"supervisor-{team.name}",
            display_name=f"{team.name} Supervisor",
            config=AgentConfig(runtime=self.default_runtime),
        )
        await self.teams.update(team.id, supervisor_id=agent.id)
        logger.info("Created supervisor %s for team %s", agent.id, team.id)
        return agent

    async def _publish_delegations(self, team: Team, text: str) -> None:
        for delegation in self.extractor.extract(text):
            logger.info("Delegating to %s: %s", delegation.agent_id, delegation.task[:100])
            await self._log(
                "info", team, f"Delegated to {delegation.agent_id}", agent_id=delegation.agent_id, task=delegation.task
            )
            await self.bus.publish(
                "task.delegated",
                team_source(team.id),
                {"agent_id": delegation.agent_id, "task": delegation.task},
            )

    async def _log(self, level: LogLevel, team: Team, message: str, **metadata: Any) -> None:
        if self.logs is not None:
            await self.logs.insert(level, "team", message, source_id=team.id, metadata=metadata)
