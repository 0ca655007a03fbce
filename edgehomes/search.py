import asyncio
import logging
from typing import Awaitable, Callable, Generic, List, Optional, TypeVar

from .constants import SEARCH_MIN_QUERY_LENGTH

logger = logging.getLogger("edgehomes.search")

T = TypeVar("T")


class DebouncedSearch(Generic[T]):
    """
    Runs `fetch(query)` only once the caller has stopped submitting for
    `delay` seconds.

    Each `submit` cancels whatever is pending: the sleep if it has not
    elapsed yet, or the in-flight fetch if it has. Queries shorter than
    SEARCH_MIN_QUERY_LENGTH clear the results without fetching.
    """

    def __init__(
            self,
            fetch: Callable[[str], Awaitable[List[T]]],
            delay: float = 1.0,
            on_results: Optional[Callable[[str, List[T]], Awaitable[None]]] = None,
    ):
        self.fetch = fetch
        self.delay = delay
        self.on_results = on_results
        self.results: List[T] = []
        self.last_query = ""
        self._task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def cancel(self) -> None:
        if self.pending:
            self._task.cancel()
        self._task = None

    def submit(self, query: str) -> Optional[asyncio.Task]:
        self.cancel()
        query = query.strip()
        self.last_query = query

        if len(query) < SEARCH_MIN_QUERY_LENGTH:
            self.results = []
            return None

        self._task = asyncio.create_task(self._run(query))
        return self._task

    async def _run(self, query: str) -> List[T]:
        await asyncio.sleep(self.delay)
        try:
            results = await self.fetch(query)
        except asyncio.CancelledError:
            logger.debug(f"Search for {query!r} superseded")
            raise
        self.results = results
        if self.on_results is not None:
            await self.on_results(query, results)
        return results

    async def wait(self) -> List[T]:
        """Waits for the pending search, if any, and returns the current results."""
        task = self._task
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass
        return self.results
