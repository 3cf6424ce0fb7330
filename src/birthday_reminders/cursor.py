from __future__ import annotations

from collections.abc import Callable, Iterator

from birthday_reminders.models import ProfileRecord

PageFetcher = Callable[[str | None, int], list[ProfileRecord]]


class BatchCursor:
    """Walk a store query one page at a time.

    ``fetch(after, limit)`` must return rows ordered by profile id starting
    strictly after ``after``. Keying on the last id seen keeps the walk stable
    while the scan itself moves rows out of the queried window, and visits
    each row at most once. Iteration stops on a short page.
    """

    def __init__(self, fetch: PageFetcher, batch_size: int = 100) -> None:
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        self._fetch = fetch
        self._batch_size = batch_size
        self.pages = 0

    def __iter__(self) -> Iterator[list[ProfileRecord]]:
        after: str | None = None
        while True:
            page = self._fetch(after, self._batch_size)
            if not page:
                return
            self.pages += 1
            yield page
            if len(page) < self._batch_size:
                return
            after = page[-1].profile_id
