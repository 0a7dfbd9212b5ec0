"""Tests for ProcessIdentity first/last worker checks."""

from __future__ import annotations

import pytest

from sibling_pool.environment import TOTAL_GROUPS_ENV, WORKER_INDEX_ENV, WorkerEnvironment
from sibling_pool.identity import ProcessIdentity


def _identity(index: str | None = None, total: str | None = None) -> ProcessIdentity:
    return ProcessIdentity(WorkerEnvironment(worker_index=index, total_groups=total))


@pytest.mark.small
class TestIsFirstWorker:
    """Tests for ProcessIdentity.is_first_worker."""

    @pytest.mark.parametrize('index', [None, '', '0', '1', 'abc'])
    def test_true_for_first_or_unset_index(self, index: str | None) -> None:
        """Unset, empty, unparseable, 0 and 1 all count as the first worker."""
        assert _identity(index, '3').is_first_worker() is True

    @pytest.mark.parametrize('index', ['2', '10'])
    def test_false_for_later_workers(self, index: str) -> None:
        assert _identity(index, '10').is_first_worker() is False


@pytest.mark.small
class TestIsLastWorker:
    """Tests for ProcessIdentity.is_last_worker."""

    def test_true_for_solo_run(self) -> None:
        """A run with neither variable set is its own last worker."""
        assert _identity().is_last_worker() is True

    def test_true_when_index_equals_total(self) -> None:
        assert _identity('3', '3').is_last_worker() is True

    def test_false_when_index_differs(self) -> None:
        assert _identity('2', '3').is_last_worker() is False

    def test_missing_index_reads_as_first_of_total(self) -> None:
        """An unset index is compared as '1'."""
        assert _identity(None, '1').is_last_worker() is True
        assert _identity(None, '2').is_last_worker() is False

    def test_missing_total_is_never_last(self) -> None:
        assert _identity('1', None).is_last_worker() is False

    def test_comparison_is_by_string(self) -> None:
        """Non-canonical numbers do not match: '01' is not '1'."""
        assert _identity('01', '1').is_last_worker() is False


@pytest.mark.small
class TestProcessIdentityCurrent:
    """Tests for reading the identity from the environment."""

    def test_reads_given_mapping(self) -> None:
        identity = ProcessIdentity.current({WORKER_INDEX_ENV: '4', TOTAL_GROUPS_ENV: '4'})
        assert identity.is_parallel
        assert identity.worker_number == 4
        assert identity.is_last_worker()
        assert not identity.is_first_worker()

    def test_reads_process_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(WORKER_INDEX_ENV, '2')
        monkeypatch.setenv(TOTAL_GROUPS_ENV, '5')
        identity = ProcessIdentity.current()
        assert identity.environment == WorkerEnvironment(worker_index='2', total_groups='5')

    def test_solo_run_is_not_parallel(self) -> None:
        identity = ProcessIdentity.current({})
        assert not identity.is_parallel
        assert identity.worker_number == 0
