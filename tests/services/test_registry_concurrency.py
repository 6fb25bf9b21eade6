"""Concurrent allocation tests against an in-memory store."""

import asyncio
from datetime import timedelta

import pytest

from shortlinks.models.link import utcnow
from shortlinks.services.exceptions import LinkNotFoundError, PersistenceError
from shortlinks.services.registry import URLRegistry
from tests.fakes import (
    FakeSession,
    InMemoryLinkRepository,
    ScriptedCodeGenerator,
    SeededCodeGenerator,
)


@pytest.mark.service
class TestConcurrentAllocation:

    @pytest.mark.asyncio
    async def test_thousand_concurrent_creates_never_share_a_code(self):
        repository = InMemoryLinkRepository()
        generator = SeededCodeGenerator(space=4000)
        registry = URLRegistry(repository, code_generator=generator)
        db = FakeSession()

        links = await asyncio.gather(*(
            registry.create(db, f"https://example.com/{i}") for i in range(1000)
        ))

        codes = [link.short_code for link in links]
        assert len(set(codes)) == 1000
        assert len(repository.links) == 1000
        # The small code space forces collisions, all of them retried
        assert generator.calls > 1000
        assert db.commits == 1000

    @pytest.mark.asyncio
    async def test_lost_insert_race_retries_with_new_code(self):
        repository = InMemoryLinkRepository()
        generator = ScriptedCodeGenerator(["aaaa", "aaaa", "bbbb"])
        registry = URLRegistry(repository, code_generator=generator)
        db = FakeSession()

        first, second = await asyncio.gather(
            registry.create(db, "https://one.example/"),
            registry.create(db, "https://two.example/"),
        )

        assert {first.short_code, second.short_code} == {"aaaa", "bbbb"}
        assert repository.duplicate_rejections == 1
        assert generator.calls == 3

    @pytest.mark.asyncio
    async def test_single_timeout_is_retried(self):
        repository = InMemoryLinkRepository(timeouts=1)
        registry = URLRegistry(repository, code_generator=ScriptedCodeGenerator(["cafe"]))

        link = await registry.create(FakeSession(), "https://example.com/")

        assert link.short_code == "cafe"

    @pytest.mark.asyncio
    async def test_second_timeout_is_retryable_persistence_error(self):
        repository = InMemoryLinkRepository(timeouts=2)
        registry = URLRegistry(repository, code_generator=ScriptedCodeGenerator(["cafe"]))
        db = FakeSession()

        with pytest.raises(PersistenceError) as excinfo:
            await registry.create(db, "https://example.com/")

        assert excinfo.value.retryable is True
        assert db.rollbacks == 1

    @pytest.mark.asyncio
    async def test_lapsed_link_no_longer_resolves(self):
        repository = InMemoryLinkRepository()
        registry = URLRegistry(repository, code_generator=ScriptedCodeGenerator(["cafe"]))
        link = await registry.create(FakeSession(), "https://example.com/", expiration_days=1)
        assert (await registry.resolve(FakeSession(), "cafe")).id == link.id

        link.expires_at = utcnow() - timedelta(seconds=1)

        with pytest.raises(LinkNotFoundError):
            await registry.resolve(FakeSession(), "cafe")
