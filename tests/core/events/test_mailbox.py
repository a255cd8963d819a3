"""Tests for direct agent-to-agent messages."""

from __future__ import annotations

from typing import TYPE_CHECKING

from conductor.core.events.mailbox import Mailbox

if TYPE_CHECKING:
    from conductor.storage.database import Database


class TestMailbox:
    async def test_send_and_receive(self, db: Database) -> None:
        mailbox = Mailbox(db)
        sent = await mailbox.send("alice", "bob", "hello")

        inbox = await mailbox.inbox("bob")
        assert [m.id for m in inbox] == [sent.id]
        assert inbox[0].from_agent == "alice"
        assert inbox[0].read is True

    async def test_inbox_marks_read(self, db: Database) -> None:
        mailbox = Mailbox(db)
        await mailbox.send("alice", "bob", "hello")
        await mailbox.inbox("bob")

        assert await mailbox.inbox("bob") == []
        assert len(await mailbox.inbox("bob", unread_only=False)) == 1

    async def test_inbox_newest_first(self, db: Database) -> None:
        mailbox = Mailbox(db)
        await mailbox.send("a", "bob", "first")
        await mailbox.send("a", "bob", "second")

        inbox = await mailbox.inbox("bob")
        assert [m.content for m in inbox] == ["second", "first"]

    async def test_inbox_is_per_recipient(self, db: Database) -> None:
        mailbox = Mailbox(db)
        await mailbox.send("a", "bob", "for bob")
        await mailbox.send("a", "carol", "for carol")

        assert [m.content for m in await mailbox.inbox("carol")] == ["for carol"]

    async def test_limit_leaves_rest_unread(self, db: Database) -> None:
        mailbox = Mailbox(db)
        for i in range(3):
            await mailbox.send("a", "bob", f"m{i}")

        assert len(await mailbox.inbox("bob", limit=2)) == 2
        remaining = await mailbox.inbox("bob")
        assert [m.content for m in remaining] == ["m0"]
