from unittest.mock import MagicMock

import pytest
from django.db import DatabaseError, IntegrityError, OperationalError, transaction

from modules.core import concurrency
from modules.core.concurrency import in_atomic_block, run_with_retry
from modules.core.exceptions import ConflictError, DomainValidationError, StoreFailure

pytestmark = pytest.mark.unit


@pytest.fixture()
def outside_transaction(monkeypatch):
    monkeypatch.setattr("modules.core.concurrency.in_atomic_block", lambda: False)


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    sleeps = []
    monkeypatch.setattr("modules.core.concurrency.time.sleep", sleeps.append)
    return sleeps


class TestRunWithRetry:
    def test_returns_result_on_first_success(self, outside_transaction):
        func = MagicMock(return_value=42)
        assert run_with_retry(func, attempts=3) == 42
        func.assert_called_once_with()

    def test_retries_operational_errors_with_backoff(self, outside_transaction, no_sleep):
        func = MagicMock(side_effect=[OperationalError("locked"), OperationalError("locked"), "ok"])

        assert run_with_retry(func, attempts=3, backoff_base=0.1) == "ok"
        assert func.call_count == 3
        assert no_sleep == pytest.approx([0.1, 0.2])

    def test_raises_conflict_after_last_attempt(self, outside_transaction):
        func = MagicMock(side_effect=OperationalError("deadlock detected"))

        with pytest.raises(ConflictError) as exc_info:
            run_with_retry(func, attempts=2, backoff_base=0, operation="bulk_transition")

        assert func.call_count == 2
        assert "bulk_transition" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, OperationalError)

    def test_other_database_errors_become_store_failure(self, outside_transaction):
        func = MagicMock(side_effect=IntegrityError("constraint failed"))

        with pytest.raises(StoreFailure):
            run_with_retry(func, attempts=3)

        func.assert_called_once()

    def test_domain_errors_propagate_untouched(self, outside_transaction):
        func = MagicMock(side_effect=DomainValidationError("nope"))

        with pytest.raises(DomainValidationError):
            run_with_retry(func, attempts=3)

        func.assert_called_once()

    def test_single_attempt_inside_outer_transaction(self):
        # The test itself runs inside a transaction.
        func = MagicMock(side_effect=OperationalError("locked"))

        with pytest.raises(ConflictError):
            run_with_retry(func, attempts=5, backoff_base=0)

        func.assert_called_once()

    def test_defaults_come_from_settings(self, outside_transaction, settings, no_sleep):
        settings.WORKFLOW_RETRY_ATTEMPTS = 4
        settings.WORKFLOW_RETRY_BACKOFF = 0.5
        func = MagicMock(side_effect=OperationalError("locked"))

        with pytest.raises(ConflictError):
            run_with_retry(func)

        assert func.call_count == 4
        assert no_sleep == pytest.approx([0.5, 1.0, 2.0])


def test_store_failure_is_a_retryable_domain_error():
    assert not issubclass(StoreFailure, DatabaseError)
    assert StoreFailure.retryable is True


class TestInAtomicBlock:
    def test_true_inside_the_test_transaction(self):
        assert in_atomic_block() is True

    def test_patching_it_leaves_the_connection_alone(self, outside_transaction):
        assert concurrency.in_atomic_block() is False
        assert transaction.get_connection().in_atomic_block is True
