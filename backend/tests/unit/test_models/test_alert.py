"""
Unit tests for the Alert model and related types.

Validates model construction, enum coercion, defaults, the severity ladder
and the lifecycle transition table.
"""

from __future__ import annotations

from datetime import datetime

import pytest
from pydantic import ValidationError

from waterwatch.models.alert import (
    ALLOWED_TRANSITIONS,
    Alert,
    AlertCreate,
    AlertFilters,
    AlertSeverity,
    AlertStatus,
    AlertType,
)


class TestAlertCreationWithDefaults:
    """Test creating an Alert with only required fields."""

    def test_alert_creation_with_defaults(self):
        alert = Alert(type="device_offline", severity="medium", title="Sensor WQ-17 offline")

        assert alert.status == "active"
        assert alert.triggered_by == "automatic"
        assert alert.escalation_level == 0
        assert alert.metadata == {}
        assert alert.location is None
        assert alert.auto_resolve_at is None
        assert alert.next_escalation_at is None
        assert alert.actions_pending is False

        # alert_id should be auto-generated UUID
        assert len(alert.alert_id) == 36
        assert alert.created_at.tzinfo is not None

    def test_enum_values_are_stored_as_strings(self):
        alert = Alert(
            type=AlertType.WATER_QUALITY,
            severity=AlertSeverity.HIGH,
            title="pH out of range",
        )
        document = alert.to_document()

        assert document["severity"] == "high"
        assert document["status"] == "active"
        assert isinstance(document["created_at"], datetime)


class TestAlertValidation:
    """Test field validation on alerts."""

    def test_unknown_severity_rejected(self):
        with pytest.raises(ValidationError):
            AlertCreate(type="water_quality", severity="catastrophic", title="x")

    def test_negative_escalation_level_rejected(self):
        with pytest.raises(ValidationError):
            Alert(type="system", severity="low", title="x", escalation_level=-1)

    def test_location_bounds_validated(self):
        with pytest.raises(ValidationError):
            AlertCreate(
                type="water_quality",
                severity="low",
                title="x",
                location={"latitude": 120.0, "longitude": 91.0},
            )

    def test_empty_title_rejected(self):
        with pytest.raises(ValidationError):
            AlertCreate(type="water_quality", severity="low", title="")

    def test_create_defaults_are_coerced(self):
        data = AlertCreate(type="disease_risk", severity="critical", title="Cholera risk")

        assert data.status == "active"
        assert data.triggered_by == "automatic"


class TestSeverityLadder:
    """Test AlertSeverity.raised()."""

    @pytest.mark.parametrize(
        "current, expected",
        [
            (AlertSeverity.LOW, AlertSeverity.MEDIUM),
            (AlertSeverity.MEDIUM, AlertSeverity.HIGH),
            (AlertSeverity.HIGH, AlertSeverity.CRITICAL),
            (AlertSeverity.CRITICAL, AlertSeverity.CRITICAL),
        ],
    )
    def test_raised(self, current, expected):
        assert current.raised() is expected


class TestAllowedTransitions:
    """Test the lifecycle transition table."""

    def test_terminal_statuses_have_no_exits(self):
        assert ALLOWED_TRANSITIONS[AlertStatus.RESOLVED.value] == frozenset()
        assert ALLOWED_TRANSITIONS[AlertStatus.DISMISSED.value] == frozenset()

    def test_acknowledged_cannot_return_to_active(self):
        assert "active" not in ALLOWED_TRANSITIONS["acknowledged"]
        assert "resolved" in ALLOWED_TRANSITIONS["acknowledged"]

    def test_every_status_has_an_entry(self):
        assert set(ALLOWED_TRANSITIONS) == {status.value for status in AlertStatus}


class TestAlertFilters:
    """Test dashboard listing filters."""

    def test_defaults(self):
        filters = AlertFilters()

        assert filters.status == []
        assert filters.skip == 0
        assert filters.limit == 50

    def test_limit_upper_bound(self):
        with pytest.raises(ValidationError):
            AlertFilters(limit=500)

    def test_enum_lists_coerced(self):
        filters = AlertFilters(status=["active", "acknowledged"], severity=["critical"])

        assert filters.status == ["active", "acknowledged"]
        assert filters.severity == ["critical"]
