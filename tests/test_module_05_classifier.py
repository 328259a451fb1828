"""
Tests for Module 05 — Health Classifier.
"""
from types import SimpleNamespace

from conftest import make_reading
from pipeline.classification.classifier import (
    HEALTHY, UNHEALTHY, UNKNOWN, classify_health, status_label,
)


class TestClassifyHealth:
    def test_healthy_reading(self):
        result = classify_health(make_reading(co2=400, no2=25, pm25=6, pm10=10))
        assert result.healthy is True
        assert result.status == HEALTHY
        assert result.breaches == []

    def test_high_co2_unhealthy(self):
        result = classify_health(make_reading(co2=500, no2=25, pm25=6, pm10=10))
        assert result.healthy is False
        assert result.status == UNHEALTHY
        assert [b.pollutant for b in result.breaches] == ["co2"]

    def test_low_co2_unhealthy(self):
        assert classify_health(make_reading(co2=300)).healthy is False

    def test_multiple_breaches(self):
        result = classify_health(make_reading(co2=400, no2=80, pm25=40, pm10=10))
        assert {b.pollutant for b in result.breaches} == {"no2", "pm25"}

    def test_boundary_values_healthy(self):
        assert classify_health(make_reading(co2=450, no2=50, pm25=12, pm10=20)).healthy is True
        assert classify_health(make_reading(co2=350, no2=0, pm25=0, pm10=0)).healthy is True

    def test_no_reading_is_unknown(self):
        result = classify_health(None)
        assert result.healthy is None
        assert result.status == UNKNOWN

    def test_missing_field_is_unknown_not_coerced(self):
        result = classify_health(make_reading(pm25=None))
        assert result.healthy is None
        assert result.missing_fields == ["pm25"]

    def test_object_without_attribute_is_unknown(self):
        partial = SimpleNamespace(co2=400, no2=25, pm10=10)
        assert classify_health(partial).healthy is None


class TestStatusLabel:
    def test_labels(self):
        assert status_label(True) == HEALTHY
        assert status_label(False) == UNHEALTHY
        assert status_label(None) == UNKNOWN
