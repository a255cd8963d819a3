"""TeamStore — persistence for teams and their membership."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from conductor.core.teams.models import Team, TeamMember, TeamStatusValue
from conductor.errors import TeamNotFoundError
from conductor.storage.database import dumps, new_id, utc_now

if TYPE_CHECKING:
    from conductor.storage.database import Database

logger = logging.getLogger(__name__)


def _to_team(row: dict[str, Any]) -> Team:
    return Team(**{**row, "members": [TeamMember(**m) for m in json.loads(row["members"])]})


class TeamStore:
    def __init__(self, db: Database) -> None:
        self._db = db

    async def create(
        self,
        name: str,
        *,
        description: str = "",
        members: list[TeamMember] | None = None,
        supervisor_id: str | None = None,
        team_id: str | None = None,
    ) -> Team:
        team = Team(
            id=team_id or new_id("team"),
            name=name,
            description=description,
            supervisor_id=supervisor_id,
            members=members or [],
            created_at=utc_now(),
        )
        await self._db.execute(
            """
            INSERT INTO teams (id, name, description, supervisor_id, members, status, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                team.id,
                team.name,
                team.description,
                team.supervisor_id,
                dumps([m.model_dump() for m in team.members]),
                team.status,
                team.created_at.isoformat(),
            ),
        )
        logger.info("Created team %s (%s, %d members)", team.id, name, len(team.members))
        return team

    async def get(self, team_id: str) -> Team | None:
        row = await self._db.fetchone("SELECT * FROM teams WHERE id = ?", (team_id,))
        return _to_team(row) if row is not None else None

    async def list_all(self) -> list[Team]:
        rows = await self._db.fetchall("SELECT * FROM teams ORDER BY created_at")
        return [_to_team(r) for r in rows]

    async def update(
        self,
        team_id: str,
        *,
        name: str | None = None,
        description: str | None = None,
        supervisor_id: str | None = None,
    ) -> Team:
        await self._db.execute(
            """
            UPDATE teams SET
                name = COALESCE(?, name),
                description = COALESCE(?, description),
                supervisor_id = COALESCE(?, supervisor_id)
            WHERE id = ?
            """,
            (name, description, supervisor_id, team_id),
        )
        return await self._require(team_id)

    async def set_status(self, team_id: str, status: TeamStatusValue) -> None:
        await self._db.execute("UPDATE teams SET status = ? WHERE id = ?", (status, team_id))

    async def add_member(self, team_id: str, member: TeamMember) -> Team:
        """Append *member*, replacing any existing entry for the same agent."""
        await self._db.execute(
            """
            UPDATE teams SET members = json_insert(
                (SELECT json_group_array(json(value)) FROM json_each(teams.members)
                 WHERE json_extract(value, '$.agent_id') != ?),
                '$[#]', json(?)
            )
            WHERE id = ?
            """,
            (member.agent_id, member.model_dump_json(), team_id),
        )
        return await self._require(team_id)

    async def remove_member(self, team_id: str, agent_id: str) -> Team:
        await self._db.execute(
            """
            UPDATE teams SET members = (
                SELECT json_group_array(json(value)) FROM json_each(teams.members)
                WHERE json_extract(value, '$.agent_id') != ?
            )
            WHERE id = ?
            """,
            (agent_id, team_id),
        )
        return await self._require(team_id)

    async def delete(self, team_id: str) -> bool:
        count = await self._db.execute("DELETE FROM teams WHERE id = ?", (team_id,))
        return count > 0

    async def _require(self, team_id: str) -> Team:
        team = await self.get(team_id)
        if team is None:
            raise TeamNotFoundError(team_id)
        return team
