"""Lazy, single-flight creation of the single-tenant principal."""

from __future__ import annotations

import asyncio
import logging
from uuid import uuid4

from starlette.concurrency import run_in_threadpool

from portfolio_api.core.logging_safety import safe_log_identifier
from portfolio_api.core.security import hash_password
from portfolio_api.repositories.memory import InMemoryStore

logger = logging.getLogger(__name__)


class PrincipalBootstrap:
    """Process-scoped guard that makes sure the principal row exists.

    The first caller for an id starts one creation task; callers arriving while
    it runs await that same task instead of starting another. Once the row is
    known to exist the id is cached and later calls return immediately. A
    failed attempt is not cached, so the next call starts a fresh one.
    """

    def __init__(self, store: InMemoryStore, *, email_template: str, name: str | None) -> None:
        self._store = store
        self._email_template = email_template
        self._name = name
        self._ensured: set[int] = set()
        self._inflight: dict[int, asyncio.Task[None]] = {}

    def is_ensured(self, user_id: int) -> bool:
        return user_id in self._ensured

    async def ensure_principal(self, user_id: int) -> None:
        if user_id in self._ensured:
            return

        task = self._inflight.get(user_id)
        if task is None:
            task = asyncio.get_running_loop().create_task(self._create(user_id))
            self._inflight[user_id] = task
            task.add_done_callback(lambda done: self._clear_inflight(user_id, done))

        # Shielded so a disconnecting client cannot cancel creation for everyone else.
        await asyncio.shield(task)

    def _clear_inflight(self, user_id: int, task: asyncio.Task[None]) -> None:
        if self._inflight.get(user_id) is task:
            del self._inflight[user_id]

    async def _create(self, user_id: int) -> None:
        safe_principal_id = safe_log_identifier(user_id, prefix="pid")
        try:
            created = await run_in_threadpool(self._upsert, user_id)
        except Exception:
            logger.exception("bootstrap.failed principal_id=%s", safe_principal_id)
            raise

        self._ensured.add(user_id)
        if created:
            logger.info("bootstrap.created principal_id=%s", safe_principal_id)

    def _upsert(self, user_id: int) -> bool:
        if self._store.get_user(user_id) is not None:
            return False

        self._store.upsert_user(
            user_id,
            {
                "email": self._email_template.format(user_id=user_id),
                "name": self._name,
                "password_hash": hash_password(str(uuid4())),
            },
        )
        return True


__all__ = ["PrincipalBootstrap"]
