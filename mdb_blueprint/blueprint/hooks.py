"""
Lifecycle hooks.

A record type takes part in its own lifecycle by defining any of the hook
methods below, either as plain or ``async`` methods. Capabilities are
probed once, when the resource is registered, and cached on its
descriptor; dispatch consults the cached flags.

Failure semantics:
    - A ``pre_*`` hook that raises aborts the operation before the store
      write (HookAbortError).
    - A ``post_*`` hook that raises is reported (PostHookError), but the
      store mutation it followed stays committed.

Example:
    class Article(Document):
        title: str

        def pre_create(self):
            self.id = str(ObjectId())

        async def post_update(self, previous):
            await notify_title_change(previous.title, self.title)
"""

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from ..exceptions import HookAbortError, PostHookError

logger = logging.getLogger(__name__)


@runtime_checkable
class PreCreate(Protocol):
    def pre_create(self) -> Any: ...


@runtime_checkable
class PostCreate(Protocol):
    def post_create(self) -> Any: ...


@runtime_checkable
class PreUpdate(Protocol):
    def pre_update(self) -> Any: ...


@runtime_checkable
class PostUpdate(Protocol):
    def post_update(self, previous: Any) -> Any: ...


@runtime_checkable
class PreDelete(Protocol):
    def pre_delete(self) -> Any: ...


@runtime_checkable
class PostDelete(Protocol):
    def post_delete(self) -> Any: ...


HOOK_PROTOCOLS: dict[str, type] = {
    "pre_create": PreCreate,
    "post_create": PostCreate,
    "pre_update": PreUpdate,
    "post_update": PostUpdate,
    "pre_delete": PreDelete,
    "post_delete": PostDelete,
}


@dataclass(frozen=True)
class HookCapabilities:
    """Which hooks a record type implements."""

    pre_create: bool = False
    post_create: bool = False
    pre_update: bool = False
    post_update: bool = False
    pre_delete: bool = False
    post_delete: bool = False

    @classmethod
    def probe(cls, model: type) -> "HookCapabilities":
        """Inspect a zero-value instance of ``model`` for each hook protocol."""
        instance = model.model_construct()
        flags = {name: isinstance(instance, proto) for name, proto in HOOK_PROTOCOLS.items()}
        return cls(**flags)

    def supports(self, hook: str) -> bool:
        return getattr(self, hook)

    @property
    def enabled(self) -> list[str]:
        return [name for name in HOOK_PROTOCOLS if self.supports(name)]


async def _invoke(instance: Any, hook: str, *args: Any) -> None:
    result = getattr(instance, hook)(*args)
    if inspect.isawaitable(result):
        await result


async def run_pre(capabilities: HookCapabilities, hook: str, instance: Any) -> None:
    """
    Run a ``pre_*`` hook if the record implements it.

    Raises:
        HookAbortError: If the hook raised; no store write has happened
    """
    if not capabilities.supports(hook):
        return
    try:
        await _invoke(instance, hook)
    except HookAbortError:
        raise
    except Exception as e:
        logger.info(f"{type(instance).__name__}.{hook} aborted the operation: {e}")
        raise HookAbortError(f"{hook} hook aborted the operation: {e}", hook=hook) from e


async def run_post(capabilities: HookCapabilities, hook: str, instance: Any, *args: Any) -> None:
    """
    Run a ``post_*`` hook if the record implements it.

    Raises:
        PostHookError: If the hook raised; the preceding mutation stays committed
    """
    if not capabilities.supports(hook):
        return
    try:
        await _invoke(instance, hook, *args)
    except Exception as e:
        logger.warning(
            f"{type(instance).__name__}.{hook} failed after the store mutation committed: {e}"
        )
        raise PostHookError(
            f"{hook} hook failed after the change was saved: {e}", hook=hook
        ) from e
