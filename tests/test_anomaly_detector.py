"""Tests for the anomaly rule table."""

from __future__ import annotations

from datetime import timedelta

from features.anomalies.models.anomaly_types import AnomalyType, Severity
from features.anomalies.services.anomaly_detector import RULES, detect_anomalies, evaluate
from features.common.models.reading_types import Provenance, Reading
from tests.conftest import APRIL_NOON


def _reading(**fields) -> Reading:
    return Reading(timestamp=APRIL_NOON, source=Provenance.BUOY, **fields)


def test_high_temperature_is_one_high_anomaly() -> None:
    anomalies = evaluate(_reading(temperature=26.0))

    assert len(anomalies) == 1
    assert anomalies[0].type == AnomalyType.TEMPERATURE
    assert anomalies[0].severity == Severity.HIGH
    assert anomalies[0].timestamp == APRIL_NOON


def test_normal_temperature_is_quiet() -> None:
    assert evaluate(_reading(temperature=20.0)) == []


def test_low_temperature_is_medium() -> None:
    anomalies = evaluate(_reading(temperature=11.5))
    assert [(a.type, a.severity) for a in anomalies] == [(AnomalyType.TEMPERATURE, Severity.MEDIUM)]


def test_thresholds_are_exclusive() -> None:
    assert evaluate(_reading(temperature=25.0, current_speed=4.5, wave_height=3.5)) == []
    assert evaluate(_reading(temperature=12.0)) == []


def test_strong_current_adds_to_temperature_anomaly() -> None:
    anomalies = evaluate(_reading(temperature=26.0, current_speed=5.0))

    kinds = {(a.type, a.severity) for a in anomalies}
    assert kinds == {
        (AnomalyType.TEMPERATURE, Severity.HIGH),
        (AnomalyType.CURRENT, Severity.HIGH),
    }


def test_high_waves_are_medium() -> None:
    anomalies = evaluate(_reading(wave_height=4.0))
    assert [(a.type, a.severity) for a in anomalies] == [(AnomalyType.WAVE, Severity.MEDIUM)]


def test_absent_fields_never_match() -> None:
    assert evaluate(_reading(pressure=1013.0)) == []


def test_every_rule_can_fire_at_once() -> None:
    anomalies = evaluate(_reading(temperature=30.0, current_speed=6.0, wave_height=5.0))
    assert len(anomalies) == 3


def test_station_id_is_carried() -> None:
    anomalies = evaluate(_reading(wave_height=4.0), station_id="46050")
    assert anomalies[0].station_id == "46050"


def test_detect_uses_latest_reading_only() -> None:
    older = Reading(timestamp=APRIL_NOON - timedelta(hours=1), source=Provenance.BUOY, temperature=30.0)
    newer = _reading(temperature=18.0)

    assert detect_anomalies([newer, older]) == []
    assert len(detect_anomalies([older])) == 1


def test_empty_input_yields_no_anomalies() -> None:
    assert detect_anomalies([]) == []


def test_rule_table_matches_documented_thresholds() -> None:
    table = {(r.field, r.comparison.value, r.threshold) for r in RULES}
    assert table == {
        ("temperature", "above", 25.0),
        ("temperature", "below", 12.0),
        ("current_speed", "above", 4.5),
        ("wave_height", "above", 3.5),
    }
