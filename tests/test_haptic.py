import pytest

from heartglow.haptic import HapticECGEmulator


def test_default_bpm():
    assert HapticECGEmulator().bpm == 60


@pytest.mark.parametrize("bpm", [1, 30, 60, 75, 150, 299, 300])
def test_timing_invariants(bpm):
    haptic = HapticECGEmulator()
    assert haptic.set_bpm(bpm) is True
    assert haptic.bpm == bpm
    assert haptic.beat_duration * bpm <= 60000 < (haptic.beat_duration + 1) * bpm
    assert haptic.pulse_duration >= HapticECGEmulator.MIN_PULSE_DURATION_MS
    assert haptic.pulse_duration >= haptic.beat_duration // 3
    assert haptic.pulse_interval >= haptic.pulse_duration


def test_fast_rate_uses_minimum_pulse():
    haptic = HapticECGEmulator()
    haptic.set_bpm(300)
    assert haptic.pulse_duration == HapticECGEmulator.MIN_PULSE_DURATION_MS
    assert haptic.pulse_interval == haptic.pulse_duration


@pytest.mark.parametrize("bpm", [0, -5, 301])
def test_out_of_range_rate_ignored(bpm):
    haptic = HapticECGEmulator()
    haptic.set_bpm(120)
    before = (haptic.pulse_duration, haptic.pulse_interval)
    assert haptic.set_bpm(bpm) is False
    assert haptic.bpm == 120
    assert (haptic.pulse_duration, haptic.pulse_interval) == before


def test_pulse_cycle():
    haptic = HapticECGEmulator()
    haptic.begin()
    start = haptic.pulse_interval
    assert haptic.update(start - 1) == 0
    assert haptic.update(start) == HapticECGEmulator.MAX_INTENSITY
    assert haptic.vibrating is True
    assert haptic.update(start + haptic.pulse_duration - 1) == HapticECGEmulator.MAX_INTENSITY
    assert haptic.update(start + haptic.pulse_duration) == 0
    assert haptic.vibrating is False


def test_begin_recomputes_timings():
    haptic = HapticECGEmulator()
    haptic.begin()
    assert haptic.beat_duration * 60 == 60000
    assert haptic.pulse_interval >= haptic.pulse_duration >= HapticECGEmulator.MIN_PULSE_DURATION_MS