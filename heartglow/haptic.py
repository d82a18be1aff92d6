"""Heartbeat rendered as pulses of a vibration motor."""

from __future__ import annotations

_UINT32 = 0xFFFFFFFF


class HapticECGEmulator:
    """Switches a vibration motor on and off in step with a heart rate."""

    MAX_INTENSITY = 255
    MIN_PULSE_DURATION_MS = 100
    PULSE_INTERVAL_PERCENT = 30
    MAX_BPM = 300

    def __init__(self) -> None:
        self.intensity = 0
        self.vibrating = False
        self.beat_duration = 1000
        self.pulse_duration = self.MIN_PULSE_DURATION_MS
        self.pulse_interval = 300
        self._bpm = 60
        self._last_update = 0

    @property
    def bpm(self) -> int:
        return self._bpm

    def begin(self) -> None:
        """Turn the motor off and derive the timings from the current rate."""
        self.intensity = 0
        self._update_timings()

    def update(self, current_millis: int) -> int:
        """Toggle the motor when its phase has run out; returns the drive level."""
        elapsed = (current_millis - self._last_update) & _UINT32
        if self.vibrating and elapsed >= self.pulse_duration:
            self.intensity = 0
            self.vibrating = False
            self._last_update = current_millis
        elif not self.vibrating and elapsed >= self.pulse_interval:
            self.intensity = self.MAX_INTENSITY
            self.vibrating = True
            self._last_update = current_millis
        return self.intensity

    def set_bpm(self, bpm: int) -> bool:
        """Use a new heart rate; rates outside 1..300 are ignored. Returns whether it was taken."""
        if not 0 < bpm <= self.MAX_BPM:
            return False
        self._bpm = bpm
        self._update_timings()
        return True

    def _update_timings(self) -> None:
        self.beat_duration = 60000 // self._bpm
        self.pulse_duration = max(self.MIN_PULSE_DURATION_MS, self.beat_duration // 3)
        interval = self.beat_duration * self.PULSE_INTERVAL_PERCENT // 100
        self.pulse_interval = max(interval, self.pulse_duration)