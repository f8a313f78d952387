"""
Upload allow-list: a read-through cache over the users table
"""

import logging

from zoomvault.config import Config
from zoomvault.models import Principal
from zoomvault.store import RecordStore


class AccessGate:
    """Decide who may submit recordings.

    The store is the source of truth. Only granted principals are cached;
    every other lookup reads through to the store, so a grant written by
    another process (e.g. the CLI) takes effect on the next message.
    """

    def __init__(self, store: RecordStore, config: Config) -> None:
        self.store = store
        self.config = config
        self.logger = logging.getLogger(__name__)
        self._cache: set[int] = set()

    async def load(self) -> int:
        """Warm the cache with every principal allowed to upload"""
        uploaders = await self.store.list_uploaders()
        self._cache.update(uploaders)
        self.logger.info(f"Loaded {len(uploaders)} authorized uploader(s)")
        return len(uploaders)

    def is_admin(self, principal_id: int | None) -> bool:
        return self.config.is_admin(principal_id)

    async def is_authorized(self, principal_id: int) -> bool:
        if principal_id in self._cache:
            return True
        principal = await self.store.get_principal(principal_id)
        allowed = bool(principal and principal.can_upload)
        if allowed:
            self._cache.add(principal_id)
        return allowed

    async def grant(self, principal_id: int) -> None:
        """Allow a principal to upload (store write happens before cache update)"""
        await self.store.set_can_upload(principal_id, True)
        self.invalidate(principal_id)
        self.logger.info(f"Upload permission granted to {principal_id}")

    def invalidate(self, principal_id: int) -> None:
        self._cache.discard(principal_id)

    async def register(self, principal_id: int, username: str | None = None) -> Principal:
        """Record first contact; never changes the upload flag"""
        return await self.store.upsert_principal(principal_id, username)
