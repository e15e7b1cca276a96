"""
Unit tests for variant analysis value objects
"""

import pytest

from mrva.domain.variant_analysis.value_objects import (
    FilterKey,
    FilterSortState,
    RepoAnalysisStatus,
    RepoDownloadStatus,
    SortKey,
    VariantAnalysisStatus,
)


class TestStatuses:
    """Test status helpers."""

    @pytest.mark.parametrize("status,expected", [
        (VariantAnalysisStatus.IN_PROGRESS, False),
        (VariantAnalysisStatus.CANCELLING, False),
        (VariantAnalysisStatus.SUCCEEDED, True),
        (VariantAnalysisStatus.FAILED, True),
        (VariantAnalysisStatus.CANCELLED, True),
    ])
    def test_variant_analysis_is_final(self, status, expected):
        assert status.is_final() is expected

    def test_repo_analysis_is_completed(self):
        assert not RepoAnalysisStatus.PENDING.is_completed()
        assert not RepoAnalysisStatus.IN_PROGRESS.is_completed()
        assert RepoAnalysisStatus.CANCELED.is_completed()
        assert RepoAnalysisStatus.TIMED_OUT.is_completed()

    def test_only_pending_and_failed_downloads_can_be_retried(self):
        assert RepoDownloadStatus.PENDING.can_retry()
        assert RepoDownloadStatus.FAILED.can_retry()
        assert not RepoDownloadStatus.IN_PROGRESS.can_retry()
        assert not RepoDownloadStatus.SUCCEEDED.can_retry()

    def test_download_status_wire_values(self):
        assert [status.value for status in RepoDownloadStatus] == [
            "pending", "inProgress", "succeeded", "failed"
        ]


class TestFilterSortState:
    """Test FilterSortState parsing."""

    def test_default_is_everything_by_name(self):
        state = FilterSortState.default()

        assert state.search_value == ""
        assert state.filter_key == FilterKey.ALL
        assert state.sort_key == SortKey.NAME

    def test_from_dict(self):
        state = FilterSortState.from_dict({
            "search_value": "octo",
            "filter_key": "withResults",
            "sort_key": "resultsCount",
        })

        assert state == FilterSortState("octo", FilterKey.WITH_RESULTS, SortKey.RESULTS_COUNT)
        assert FilterSortState.from_dict(state.to_dict()) == state

    def test_from_empty_dict_uses_defaults(self):
        assert FilterSortState.from_dict({}) == FilterSortState.default()

    @pytest.mark.parametrize("data", [
        {"filter_key": "someResults"},
        {"sort_key": "popularity"},
    ])
    def test_from_dict_rejects_unknown_keys(self, data):
        with pytest.raises(ValueError):
            FilterSortState.from_dict(data)

    def test_is_immutable(self):
        state = FilterSortState.default()

        with pytest.raises(AttributeError):
            state.search_value = "changed"
