# backend/bilahujan/persist_helper.py
from concurrent.futures import Future, ThreadPoolExecutor
from functools import partial
from typing import Callable, Optional

from .healthcheck import update_health
from .logging_setup import logger
from .schemas import FloodZone


class BackgroundWriter:
    """
    Fire-and-forget write-through for ZoneStore. A single worker keeps
    writes in commit order; failures are logged and never reach the caller.
    """

    def __init__(self, save: Callable[[FloodZone], bool]):
        self._save = save
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="zone-writer")

    def __call__(self, zone: FloodZone) -> Future:
        future = self._executor.submit(self._save, zone)
        future.add_done_callback(partial(self._log_result, zone.id))
        return future

    def _log_result(self, zone_id: str, future: Future):
        error = future.exception()
        if error is not None:
            logger.error(f"[persist_helper] write for {zone_id} raised: {error}")
        elif future.result() is False:
            logger.warning(f"[persist_helper] write for {zone_id} failed, in-memory copy kept")
        else:
            update_health("persist_run")

    def flush(self, timeout: Optional[float] = None):
        """Block until every write queued so far has finished."""
        self._executor.submit(lambda: None).result(timeout=timeout)

    def shutdown(self):
        self._executor.shutdown(wait=True)
