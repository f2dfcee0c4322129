"""
Filtering and pagination over user records
"""

from typing import Iterable, List, Sequence, Tuple, TypeVar

from .models import TokenSearch, UserRecord, strip_all_space

T = TypeVar("T")


def matches(record: UserRecord, search: TokenSearch) -> bool:
    """
    Check a record against the substring filters

    Each filter is stripped of all whitespace; empty filters match everything.
    """
    for needle, haystack in (
        (search.user, record.user),
        (search.token, record.token),
        (search.comment, record.comment),
    ):
        needle = strip_all_space(needle)
        if needle and needle not in haystack:
            return False
    return True


def paginate(items: Sequence[T], page: int, limit: int) -> List[T]:
    """Return the 1-indexed page; limit <= 0 disables pagination"""
    if limit <= 0:
        return list(items)
    start = max((page - 1) * limit, 0)
    end = min(page * limit, len(items))
    if end <= start:
        return []
    return list(items[start:end])


def query_records(
    records: Iterable[UserRecord],
    search: TokenSearch
) -> Tuple[List[UserRecord], int]:
    """
    Filter and paginate records

    Returns:
        Tuple of (page of records sorted by user, total matches before paging)
    """
    ordered = sorted(records, key=lambda record: record.user)
    filtered = [record for record in ordered if matches(record, search)]
    return paginate(filtered, search.page, search.limit), len(filtered)
