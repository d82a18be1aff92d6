"""Dimmed heartbeat for an RGBW jewel, meant as an ambient light."""

from __future__ import annotations

from collections.abc import Callable

from heartglow.emulator import arduino_map
from heartglow.improved import (
    ImprovedECGEmulator,
    _PR_END,
    _P_END,
    _Q_END,
    _R_END,
    _S_END,
    _ST_END,
    _f32,
)


class JewelECGEmulator(ImprovedECGEmulator):
    """A softer heartbeat that stays dark between beats and tints faint levels white."""

    BASELINE_BRIGHTNESS = 0
    P_WAVE_BRIGHTNESS = 8
    QRS_PEAK_BRIGHTNESS = 25
    T_WAVE_BRIGHTNESS = 12
    WINDOW_SIZE = 10
    BASE_AFTERGLOW_DURATION = 30
    AFTERGLOW_SCALE_FACTOR = 1.5
    CHANGE_THRESHOLD = _f32(0.08)
    INTENSITY_MODULATION_BEATS = 2
    INTENSITY_MODULATION_FACTOR = _f32(0.03)
    BRIGHTNESS_SCALE = _f32(0.8)
    HEART_RATE_UPDATE_INTERVAL = 2000
    SIGNIFICANT_CHANGE_THRESHOLD = _f32(0.08)
    MAX_AFTERGLOW_DURATION_FACTOR = 2.0
    STRIP_BRIGHTNESS = 200
    _AFTERGLOW_MS_PER_UNIT = 1000

    def __init__(self, num_pixels: int, clock: Callable[[], int] | None = None) -> None:
        super().__init__(num_pixels, clock)
        self.pixels.fill((0, 0, 0, 0))

    def begin(self) -> None:
        """Prepare the strip at the jewel's overall brightness and show it."""
        super().begin()

    def update(self, current_millis: int, heart_rate: int) -> None:
        """Advance the waveform one step when its time has come."""
        super().update(current_millis, heart_rate)

    def cycle_duration(self, heart_rate: int) -> int:
        """Length of one heartbeat in milliseconds at ``heart_rate`` beats per minute."""
        return super().cycle_duration(heart_rate)

    def ecg_brightness(self, step: int, total_steps: int) -> int:
        """Brightness of the waveform at ``step`` of a cycle of ``total_steps``."""
        base = self.BASELINE_BRIGHTNESS
        progress = _f32(step / total_steps)

        def at(fraction: float) -> int:
            return int(total_steps * fraction)

        if progress < _P_END:
            value = arduino_map(step, 0, at(0.10), base, self.P_WAVE_BRIGHTNESS)
        elif progress < _PR_END:
            value = arduino_map(step, at(0.10), at(0.16), self.P_WAVE_BRIGHTNESS, base)
        elif progress < _Q_END:
            value = arduino_map(step, at(0.16), at(0.20), base, base)
        elif progress < _R_END:
            value = arduino_map(step, at(0.20), at(0.24), base, self.QRS_PEAK_BRIGHTNESS)
            value = self._hold_afterglow(step, total_steps, value)
        elif progress < _S_END:
            value = arduino_map(step, at(0.24), at(0.28), self.QRS_PEAK_BRIGHTNESS, base)
        elif progress < _ST_END:
            value = base
        elif progress < _f32(0.52):
            value = self._t_wave(progress)
        else:
            value = base
        return int(_f32(value * self.BRIGHTNESS_SCALE))

    def set_all_leds(self, brightness: int) -> None:
        """Set every pixel to red, adding a trace of white at the faintest levels."""
        white = 1 if 0 < brightness < 10 else 0
        self.pixels.fill((brightness, 0, 0, white))

    def show(self) -> None:
        """Push the current pixel colours to the strip."""
        super().show()

    def clear(self) -> None:
        """Turn every pixel off at once."""
        self.pixels.fill((0, 0, 0, 0))
        self.pixels.show()

    def _window_average(self) -> float:
        valid = [rate for rate in self._recent_rates if rate > 0]
        if not valid:
            return 0.0
        return _f32(float(sum(valid)) / len(valid))