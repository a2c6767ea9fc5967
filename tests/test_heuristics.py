"""Tests for src.detector.heuristics — one class per heuristic."""

from __future__ import annotations

import pytest

from src.contracts.detection import DetectionContext, MaintenanceWindow
from src.detector.heuristics import (
    evaluate_duration,
    evaluate_frequency_pattern,
    evaluate_magnitude,
    evaluate_physics_consistency,
    evaluate_system_state,
    evaluate_temporal_correlation,
    evaluate_waveform_quality,
)
from src.detector.patterns import EVENT_PATTERNS, get_pattern
from tests.conftest import make_event, ts_offset, waveform

ALL_HEURISTICS = [
    evaluate_duration,
    evaluate_magnitude,
    evaluate_frequency_pattern,
    evaluate_waveform_quality,
    evaluate_temporal_correlation,
    evaluate_system_state,
    evaluate_physics_consistency,
]


@pytest.mark.parametrize("heuristic", ALL_HEURISTICS)
def test_unremarkable_dip_scores_zero(heuristic, empty_context):
    result = heuristic(make_event(), empty_context)
    assert result.score == 0.0
    assert result.reasons == []


class TestPatterns:
    def test_six_types_known(self):
        assert set(EVENT_PATTERNS) == {
            "voltage_dip", "voltage_swell", "interruption", "harmonic", "transient", "flicker",
        }

    def test_unknown_type(self):
        assert get_pattern("brownout") is None

    def test_dip_envelope(self):
        dip = get_pattern("voltage_dip")
        assert (dip.typical_duration.min, dip.typical_duration.max) == (100, 5000)
        assert (dip.typical_magnitude.min, dip.typical_magnitude.max) == (10, 50)


class TestDuration:
    def test_extremely_short(self, empty_context):
        result = evaluate_duration(make_event(duration_ms=5), empty_context)
        assert result.score == 0.9
        assert "extremely short" in result.reasons[0]

    def test_unusually_short(self, empty_context):
        result = evaluate_duration(make_event(duration_ms=40), empty_context)
        assert result.score == 0.6

    def test_ratio_exactly_two_not_flagged(self, empty_context):
        assert evaluate_duration(make_event(duration_ms=50), empty_context).score == 0.0

    def test_unrealistically_long(self, empty_context):
        result = evaluate_duration(make_event(duration_ms=50001), empty_context)
        assert result.score == 0.7

    def test_missing_duration(self, empty_context):
        assert evaluate_duration(make_event(duration_ms=None), empty_context).score == 0.0

    def test_unknown_type(self, empty_context):
        ev = make_event(event_type="brownout", duration_ms=1)
        assert evaluate_duration(ev, empty_context).score == 0.0


class TestMagnitude:
    @pytest.mark.parametrize("magnitude", [1, 3, 4.9])
    def test_dip_below_five_overrides(self, empty_context, magnitude):
        result = evaluate_magnitude(make_event(magnitude=magnitude), empty_context)
        assert result.score == 0.9
        assert len(result.reasons) == 2
        assert "too small to affect equipment" in result.reasons[-1]

    def test_dip_at_five(self, empty_context):
        assert evaluate_magnitude(make_event(magnitude=5), empty_context).score == 0.0

    def test_below_typical(self, empty_context):
        ev = make_event(event_type="voltage_swell", magnitude=2)
        result = evaluate_magnitude(ev, empty_context)
        assert result.score == 0.5

    def test_insignificant(self, empty_context):
        ev = make_event(event_type="interruption", magnitude=10)
        assert evaluate_magnitude(ev, empty_context).score == 0.8

    def test_harmonic_override(self, empty_context):
        ev = make_event(event_type="harmonic", magnitude=0.5)
        result = evaluate_magnitude(ev, empty_context)
        assert result.score == 0.7
        assert "IEEE 519" in result.reasons[-1]

    def test_zero_magnitude(self, empty_context):
        ev = make_event(event_type="voltage_swell", magnitude=0)
        assert evaluate_magnitude(ev, empty_context).score == 0.8


class TestFrequencyPattern:
    def _burst(self, n, **kwargs):
        return [
            make_event(id=f"N{i}", timestamp=ts_offset(seconds=i), **kwargs) for i in range(n)
        ]

    def test_excessive(self):
        ctx = DetectionContext(
            recent_events=self._burst(51, event_type="transient", magnitude=500)
        )
        result = evaluate_frequency_pattern(make_event(), ctx)
        assert result.score == 0.9

    def test_high(self):
        ctx = DetectionContext(
            recent_events=self._burst(21, event_type="transient", magnitude=500)
        )
        assert evaluate_frequency_pattern(make_event(), ctx).score == 0.6

    def test_twenty_is_not_high(self):
        ctx = DetectionContext(
            recent_events=self._burst(20, event_type="transient", magnitude=500)
        )
        assert evaluate_frequency_pattern(make_event(), ctx).score == 0.0

    def test_identical_repeats(self):
        ctx = DetectionContext(recent_events=self._burst(6))
        result = evaluate_frequency_pattern(make_event(), ctx)
        assert result.score == 0.8
        assert "meter malfunction" in result.reasons[0]

    def test_event_itself_not_counted(self):
        ev = make_event(id="SELF")
        ctx = DetectionContext(recent_events=self._burst(5) + [ev])
        assert evaluate_frequency_pattern(ev, ctx).score == 0.0

    def test_events_outside_hour_ignored(self):
        far = [
            make_event(id=f"F{i}", timestamp=ts_offset(seconds=3601 + i)) for i in range(30)
        ]
        ctx = DetectionContext(recent_events=far)
        assert evaluate_frequency_pattern(make_event(), ctx).score == 0.0


class TestWaveformQuality:
    def test_unrealistic_values(self, empty_context):
        ev = make_event(waveform_data=waveform([230.0, 450.0, 229.0]))
        assert evaluate_waveform_quality(ev, empty_context).score == 0.8

    def test_noise(self, empty_context):
        ev = make_event(waveform_data=waveform([100.0, 300.0] * 5))
        result = evaluate_waveform_quality(ev, empty_context)
        assert result.score == 0.6
        assert "noise" in result.reasons[0]

    def test_frozen(self, empty_context):
        ev = make_event(waveform_data=waveform([230.0] * 51))
        assert evaluate_waveform_quality(ev, empty_context).score == 0.7

    def test_fifty_constant_samples_not_frozen(self, empty_context):
        ev = make_event(waveform_data=waveform([230.0] * 50))
        assert evaluate_waveform_quality(ev, empty_context).score == 0.0

    def test_combines_by_maximum(self, empty_context):
        ev = make_event(waveform_data=waveform([500.0] * 51))
        result = evaluate_waveform_quality(ev, empty_context)
        assert result.score == 0.8
        assert len(result.reasons) == 2


class TestTemporalCorrelation:
    def test_inside_maintenance_window(self):
        ctx = DetectionContext(
            maintenance_windows=[
                MaintenanceWindow(start=ts_offset(seconds=-60), end=ts_offset(seconds=0))
            ]
        )
        assert evaluate_temporal_correlation(make_event(), ctx).score == 0.6

    def test_outside_maintenance_window(self):
        ctx = DetectionContext(
            maintenance_windows=[
                MaintenanceWindow(start=ts_offset(seconds=1), end=ts_offset(seconds=60))
            ]
        )
        assert evaluate_temporal_correlation(make_event(), ctx).score == 0.0

    def test_isolated_interruption(self, empty_context):
        ev = make_event(event_type="interruption", magnitude=100, duration_ms=5000)
        result = evaluate_temporal_correlation(ev, empty_context)
        assert result.score == 0.5
        assert "lacks expected related events" in result.reasons[0]

    def test_interruption_with_neighbour(self):
        ev = make_event(id="I", event_type="interruption")
        neighbour = make_event(id="N", timestamp=ts_offset(seconds=-300))
        ctx = DetectionContext(recent_events=[ev, neighbour])
        assert evaluate_temporal_correlation(ev, ctx).score == 0.0

    def test_neighbour_at_other_substation_does_not_count(self):
        ev = make_event(id="I", event_type="interruption")
        neighbour = make_event(id="N", substation_id="SUB-99")
        ctx = DetectionContext(recent_events=[neighbour])
        assert evaluate_temporal_correlation(ev, ctx).score == 0.5

    def test_isolated_interruption_overrides_maintenance(self):
        ev = make_event(event_type="interruption")
        ctx = DetectionContext(
            maintenance_windows=[
                MaintenanceWindow(start=ts_offset(seconds=-60), end=ts_offset(seconds=60))
            ]
        )
        result = evaluate_temporal_correlation(ev, ctx)
        assert result.score == 0.5
        assert len(result.reasons) == 2
        assert "maintenance window" in result.reasons[0]


class TestSystemState:
    def test_maintenance_status(self):
        ctx = DetectionContext(system_status="maintenance")
        assert evaluate_system_state(make_event(), ctx).score == 0.4

    def test_weekend_dip(self, empty_context):
        ev = make_event(timestamp="2026-02-28T10:00:00Z")  # Saturday
        assert evaluate_system_state(ev, empty_context).score == 0.3

    def test_weekend_swell_not_flagged(self, empty_context):
        ev = make_event(event_type="voltage_swell", timestamp="2026-03-01T10:00:00Z")
        assert evaluate_system_state(ev, empty_context).score == 0.0

    def test_maintenance_on_weekend(self):
        ev = make_event(event_type="harmonic", timestamp="2026-02-28T10:00:00Z")
        ctx = DetectionContext(system_status="maintenance")
        result = evaluate_system_state(ev, ctx)
        assert result.score == 0.4
        assert len(result.reasons) == 2


class TestPhysicsConsistency:
    def test_dip_above_hundred(self, empty_context):
        ev = make_event(magnitude=120, remaining_voltage=None)
        assert evaluate_physics_consistency(ev, empty_context).score == 0.9

    def test_weak_interruption(self, empty_context):
        ev = make_event(event_type="interruption", magnitude=30)
        assert evaluate_physics_consistency(ev, empty_context).score == 0.7

    def test_remaining_voltage_mismatch(self, empty_context):
        ev = make_event(magnitude=30, remaining_voltage=50)
        result = evaluate_physics_consistency(ev, empty_context)
        assert result.score == 0.5
        assert "inconsistent" in result.reasons[0]

    def test_remaining_voltage_within_tolerance(self, empty_context):
        ev = make_event(magnitude=30, remaining_voltage=80)
        assert evaluate_physics_consistency(ev, empty_context).score == 0.0

    def test_missing_magnitude(self, empty_context):
        ev = make_event(event_type="interruption", magnitude=None)
        assert evaluate_physics_consistency(ev, empty_context).score == 0.0
