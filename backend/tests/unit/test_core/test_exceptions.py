"""
Unit tests for the application exception hierarchy and result helpers.
"""

from __future__ import annotations

from waterwatch.core.exceptions import (
    AppException,
    InvalidTransitionException,
    NotFoundException,
    StoreUnavailableException,
)
from waterwatch.models.results import BulkUpdateResult, OperationResult


class TestExceptions:
    def test_not_found_message(self):
        exc = NotFoundException(resource="Alert", identifier="a-1")

        assert exc.status_code == 404
        assert exc.message == "Alert 'a-1' not found"
        assert exc.to_dict() == {"error": "NOT_FOUND", "message": "Alert 'a-1' not found"}

    def test_store_unavailable(self):
        exc = StoreUnavailableException("alert insert", "No servers found")

        assert exc.status_code == 503
        assert exc.error_code == "STORE_UNAVAILABLE"
        assert exc.message == "Alert store failed during alert insert: No servers found"

    def test_invalid_transition_detail(self):
        exc = InvalidTransitionException("resolved", "active")

        assert exc.status_code == 409
        assert exc.to_dict()["detail"] == {
            "current_status": "resolved",
            "target_status": "active",
        }

    def test_all_are_app_exceptions(self):
        assert isinstance(StoreUnavailableException("x"), AppException)


class TestResults:
    def test_ok(self):
        result = BulkUpdateResult.ok("3 alerts resolved successfully", updated_count=3)

        assert result.success is True
        assert result.error_code is None
        assert result.updated_count == 3

    def test_failed_uses_exception_message_by_default(self):
        result = OperationResult.failed(NotFoundException(resource="Alert", identifier="a-1"))

        assert result.success is False
        assert result.message == "Alert 'a-1' not found"
        assert result.error_code == "NOT_FOUND"

    def test_failed_with_override_message(self):
        result = OperationResult.failed(StoreUnavailableException("alert insert"), "Failed to create alert")

        assert result.message == "Failed to create alert"
        assert result.error_code == "STORE_UNAVAILABLE"
