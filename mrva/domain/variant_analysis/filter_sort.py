"""
Repository Filtering and Sorting

Pure functions that select and order scanned repositories for listings and
repo list export.
"""

from datetime import datetime, timezone
from functools import cmp_to_key
from typing import Iterable, List, Optional

from .entities import Repository, ScannedRepository
from .value_objects import FilterKey, FilterSortState, SortKey

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def matches_filter(scanned_repo: ScannedRepository, state: FilterSortState) -> bool:
    """
    Check if a repository passes the search and filter options.

    Search is a case-insensitive substring match on the full name.
    """
    if state.search_value:
        if state.search_value.lower() not in scanned_repo.repository.full_name.lower():
            return False

    if state.filter_key == FilterKey.WITH_RESULTS:
        return scanned_repo.has_results()
    return True


def _compare_names(left: Repository, right: Repository) -> int:
    left_name = left.full_name.lower()
    right_name = right.full_name.lower()
    return (left_name > right_name) - (left_name < right_name)


def _updated_at(repository: Repository) -> datetime:
    if repository.updated_at is None:
        return _EPOCH
    if repository.updated_at.tzinfo is None:
        return repository.updated_at.replace(tzinfo=timezone.utc)
    return repository.updated_at


def compare_repositories(
    left: ScannedRepository, right: ScannedRepository, sort_key: SortKey
) -> int:
    """
    Compare two repositories for the given sort key.

    Stars and result counts sort descending, last updated sorts most recent
    first; ties and the name key fall back to the case-insensitive full name.

    Returns:
        Negative if left sorts first, positive if right sorts first, 0 if equal
    """
    if sort_key == SortKey.STARS:
        diff = (right.repository.stargazers_count or 0) - (left.repository.stargazers_count or 0)
    elif sort_key == SortKey.RESULTS_COUNT:
        diff = (right.result_count or 0) - (left.result_count or 0)
    elif sort_key == SortKey.LAST_UPDATED:
        right_updated = _updated_at(right.repository)
        left_updated = _updated_at(left.repository)
        diff = (right_updated > left_updated) - (right_updated < left_updated)
    else:
        diff = 0

    if diff != 0:
        return diff
    return _compare_names(left.repository, right.repository)


def filter_and_sort_repositories(
    scanned_repos: Iterable[ScannedRepository],
    state: Optional[FilterSortState] = None,
) -> List[ScannedRepository]:
    """
    Apply filter/sort options to a collection of scanned repositories.

    Args:
        scanned_repos: Repositories to select from
        state: Filter/sort options, default options when None

    Returns:
        New list of matching repositories in display order
    """
    state = state or FilterSortState.default()
    selected = [repo for repo in scanned_repos if matches_filter(repo, state)]
    return sorted(
        selected,
        key=cmp_to_key(lambda left, right: compare_repositories(left, right, state.sort_key)),
    )
