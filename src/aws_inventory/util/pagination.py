from __future__ import annotations

from typing import Any, Callable, Generator, NamedTuple, Optional, Sequence, Set

from .errors import ListingError


class Page(NamedTuple):
    items: Sequence[Any]
    has_more: bool
    next_token: Optional[str] = None


def paginate(fetch: Callable[[Optional[str]], Page]) -> Generator[Any, None, None]:
    """
    Generic paginator yielding items from a fetch(token) function.
    The first call gets token None. Pagination continues while the returned page
    reports has_more, using its next_token for the following call.

    A page that reports more results without a token, or hands back a token that
    was already requested, raises ListingError instead of looping.
    """
    token: Optional[str] = None
    seen: Set[str] = set()
    while True:
        page = fetch(token)
        for it in page.items:
            yield it
        if not page.has_more:
            break
        if not page.next_token:
            raise ListingError("Listing reported more pages but returned no continuation token")
        if page.next_token in seen:
            raise ListingError(f"Listing returned a continuation token twice: {page.next_token}")
        seen.add(page.next_token)
        token = page.next_token
