"""
Cross-tab cart sync.

Every engine write is announced on the storage key's change feed with the
writer's origin id. CartSync polls the feed and reloads its engine when
somebody else wrote. The last write wins: nothing is merged.
"""
import asyncio
from typing import Optional

from snackshop import config
from snackshop.errors import CartStorageError
from snackshop.logging import get_cart_logger, sanitize_id_for_logging
from .storage import FEED_START


class CartSync:
    """
    Keeps one engine in step with writes made by other engines on the same key.

    Usage:
        sync = CartSync(engine)
        await sync.start()      # background polling
        ...
        await sync.stop()
    """

    def __init__(self, engine, poll_interval: float = config.SYNC_POLL_SECONDS):
        self.engine = engine
        self.poll_interval = poll_interval
        self.last_id = FEED_START
        self._task: Optional[asyncio.Task] = None
        self._log = get_cart_logger(__name__, engine.storage_key, engine.origin_id)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def prime(self) -> None:
        """Skip history: only changes published after this call are considered."""
        try:
            entries = await self.engine.storage.read_changes(self.engine.storage_key, FEED_START)
        except CartStorageError as e:
            self._log.warning(f"Could not read cart change feed: {e}")
            return
        if entries:
            self.last_id = entries[-1][0]

    async def poll_once(self) -> bool:
        """
        Consume pending change entries.

        Returns:
            True if a foreign write was seen and the engine reloaded
        """
        try:
            entries = await self.engine.storage.read_changes(self.engine.storage_key, self.last_id)
        except CartStorageError as e:
            self._log.warning(f"Could not read cart change feed: {e}")
            return False

        foreign_origin = None
        for entry_id, change in entries:
            self.last_id = entry_id
            if change.get("key") != self.engine.storage_key:
                continue
            # Own writes echo back through the feed
            if change.get("origin") == self.engine.origin_id:
                continue
            foreign_origin = change.get("origin")

        if foreign_origin is None:
            return False

        self._log.debug(f"Changed by tab {sanitize_id_for_logging(foreign_origin)}, reloading")
        await self.engine.reload()
        return True

    async def start(self) -> None:
        if self.running:
            return
        await self.prime()
        self._task = asyncio.get_running_loop().create_task(self._poll_loop())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _poll_loop(self) -> None:
        while True:
            try:
                await self.poll_once()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self._log.error(f"Cart sync poll failed: {e}", exc_info=True)
            await asyncio.sleep(self.poll_interval)
