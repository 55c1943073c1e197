"""
Unit tests for lifecycle hook probing and dispatch.
"""

import pytest

from conftest import Article
from mdb_blueprint.blueprint.document import Document
from mdb_blueprint.blueprint.hooks import (HookCapabilities, PostUpdate,
                                           PreCreate, run_post, run_pre)
from mdb_blueprint.exceptions import HookAbortError, PostHookError


class Tracked(Document):
    title: str = ""
    calls: list = []

    def pre_create(self):
        self.calls.append("pre_create")

    async def post_update(self, previous):
        self.calls.append(("post_update", previous.title))


class Refusing(Document):
    title: str = ""

    def pre_delete(self):
        raise ValueError("protected")

    async def post_create(self):
        raise RuntimeError("mail server down")


class TestHookCapabilities:
    """Test probing a record type for hook support."""

    def test_no_hooks(self):
        capabilities = HookCapabilities.probe(Article)
        assert capabilities == HookCapabilities()
        assert capabilities.enabled == []

    def test_probe_detects_sync_and_async_hooks(self):
        capabilities = HookCapabilities.probe(Tracked)
        assert capabilities.pre_create is True
        assert capabilities.post_update is True
        assert capabilities.pre_update is False
        assert capabilities.enabled == ["pre_create", "post_update"]

    def test_protocols_are_runtime_checkable(self):
        assert isinstance(Tracked(), PreCreate)
        assert isinstance(Tracked(), PostUpdate)
        assert not isinstance(Article(), PreCreate)

    def test_supports(self):
        capabilities = HookCapabilities.probe(Refusing)
        assert capabilities.supports("pre_delete")
        assert capabilities.supports("post_create")
        assert not capabilities.supports("post_delete")


class TestRunPre:
    """Test pre-mutation hook dispatch."""

    @pytest.mark.asyncio
    async def test_runs_supported_hook(self):
        record = Tracked(calls=[])
        await run_pre(HookCapabilities.probe(Tracked), "pre_create", record)
        assert record.calls == ["pre_create"]

    @pytest.mark.asyncio
    async def test_unsupported_hook_is_skipped(self):
        record = Tracked(calls=[])
        await run_pre(HookCapabilities.probe(Tracked), "pre_delete", record)
        assert record.calls == []

    @pytest.mark.asyncio
    async def test_failure_aborts(self):
        with pytest.raises(HookAbortError, match="protected") as exc_info:
            await run_pre(HookCapabilities.probe(Refusing), "pre_delete", Refusing())
        assert exc_info.value.hook == "pre_delete"
        assert not isinstance(exc_info.value, PostHookError)
        assert isinstance(exc_info.value.__cause__, ValueError)

    @pytest.mark.asyncio
    async def test_hook_abort_error_passes_through(self):
        class Explicit(Document):
            def pre_create(self):
                raise HookAbortError("quota exceeded", hook="pre_create")

        with pytest.raises(HookAbortError, match="quota exceeded"):
            await run_pre(HookCapabilities.probe(Explicit), "pre_create", Explicit())


class TestRunPost:
    """Test post-mutation hook dispatch."""

    @pytest.mark.asyncio
    async def test_async_hook_receives_previous(self):
        record = Tracked(title="new", calls=[])
        previous = Tracked(title="old")
        await run_post(HookCapabilities.probe(Tracked), "post_update", record, previous)
        assert record.calls == [("post_update", "old")]

    @pytest.mark.asyncio
    async def test_failure_reports_post_hook_error(self):
        with pytest.raises(PostHookError, match="mail server down") as exc_info:
            await run_post(HookCapabilities.probe(Refusing), "post_create", Refusing())
        assert exc_info.value.committed is True
        assert exc_info.value.hook == "post_create"
