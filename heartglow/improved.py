"""ECG waveform on an LED strip that reacts to changes in a live heart rate."""

from __future__ import annotations

import math
import struct
import time
from collections.abc import Callable

from heartglow.emulator import PixelStrip, arduino_map

_UINT32 = 0xFFFFFFFF
_UINT16 = 0xFFFF
_UINT8 = 0xFF


def _f32(value: float) -> float:
    return struct.unpack("f", struct.pack("f", value))[0]


def _monotonic_ms() -> int:
    return int(time.monotonic() * 1000) & _UINT32


_P_END = _f32(0.10)
_PR_END = _f32(0.16)
_Q_END = _f32(0.20)
_R_END = _f32(0.24)
_S_END = _f32(0.28)
_ST_END = _f32(0.36)
_T_SPAN = _f32(0.20)


class ImprovedECGEmulator:
    """Heartbeat waveform paced by a heart rate, with an afterglow on the R wave
    and a brief brightness change whenever the rate moves noticeably.

    ``clock`` returns the current time in milliseconds; it times the afterglow.
    The sensitivity attributes ``heart_rate_update_interval``,
    ``significant_change_threshold`` and ``max_afterglow_duration_factor`` may
    be changed at any time.
    """

    BASELINE_BRIGHTNESS = 5
    P_WAVE_BRIGHTNESS = 20
    QRS_PEAK_BRIGHTNESS = 65
    T_WAVE_BRIGHTNESS = 30
    WINDOW_SIZE = 10
    BASE_AFTERGLOW_DURATION = 50
    AFTERGLOW_SCALE_FACTOR = 2.0
    CHANGE_THRESHOLD = _f32(0.05)
    INTENSITY_MODULATION_BEATS = 3
    INTENSITY_MODULATION_FACTOR = _f32(0.05)
    BRIGHTNESS_SCALE = _f32(0.925)
    HEART_RATE_UPDATE_INTERVAL = 1500
    SIGNIFICANT_CHANGE_THRESHOLD = _f32(0.05)
    MAX_AFTERGLOW_DURATION_FACTOR = 3.0
    TOTAL_STEPS = 95
    STRIP_BRIGHTNESS = 10
    _AFTERGLOW_MS_PER_UNIT = 1500

    def __init__(self, num_pixels: int, clock: Callable[[], int] | None = None) -> None:
        self._clock = clock if clock is not None else _monotonic_ms
        self.pixels = PixelStrip(num_pixels)
        self.step = 0
        self.last_update = 0

        self.heart_rate_update_interval = self.HEART_RATE_UPDATE_INTERVAL
        self.significant_change_threshold = self.SIGNIFICANT_CHANGE_THRESHOLD
        self.max_afterglow_duration_factor = self.MAX_AFTERGLOW_DURATION_FACTOR

        self.moving_average = 0.0
        self.last_heart_rate = 0
        self.afterglow_active = False
        self.afterglow_duration = 0
        self.modulation_active = False
        self.modulation_beats_remaining = 0
        self.modulation_factor = 1.0

        self._recent_rates = [0] * self.WINDOW_SIZE
        self._rate_index = 0
        self._last_rate_update = 0
        self._afterglow_start = 0

    def begin(self) -> None:
        """Set the strip brightness and show the initial frame."""
        self.pixels.brightness = self.STRIP_BRIGHTNESS
        self.pixels.show()

    def cycle_duration(self, heart_rate: int) -> int:
        """Length of one heartbeat in milliseconds."""
        if heart_rate <= 0:
            raise ValueError(f"heart rate must be positive, got {heart_rate}")
        return (60000 // heart_rate) & _UINT16

    def update(self, current_millis: int, heart_rate: int) -> int | None:
        """Sample the heart rate and advance one step if its time has come.

        Returns the brightness shown, or None when no step was taken.
        """
        step_duration = self.cycle_duration(heart_rate) // self.TOTAL_STEPS
        self._update_heart_rate(heart_rate, current_millis)

        if ((current_millis - self.last_update) & _UINT32) < step_duration:
            return None

        brightness = self._apply_modulation(self.ecg_brightness(self.step, self.TOTAL_STEPS))
        self.set_all_leds(brightness)
        self.pixels.show()

        self.step = (self.step + 1) % self.TOTAL_STEPS
        if self.step == 0 and self.modulation_active:
            self.modulation_beats_remaining = (self.modulation_beats_remaining - 1) & _UINT8
            if self.modulation_beats_remaining == 0:
                self.modulation_active = False
                self.modulation_factor = 1.0
        self.last_update = current_millis
        return brightness

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
            value = arduino_map(step, at(0.16), at(0.20), base, base - 5)
        elif progress < _R_END:
            value = arduino_map(step, at(0.20), at(0.24), base - 5, self.QRS_PEAK_BRIGHTNESS)
            value = self._hold_afterglow(step, total_steps, value)
        elif progress < _S_END:
            value = arduino_map(step, at(0.24), at(0.28), self.QRS_PEAK_BRIGHTNESS, base - 10)
        elif progress < _ST_END:
            value = arduino_map(step, at(0.28), at(0.32), base - 10, base)
        elif progress < _f32(0.52):
            value = self._t_wave(progress)
        else:
            value = base
        return int(_f32(value * self.BRIGHTNESS_SCALE))

    def set_all_leds(self, brightness: int) -> None:
        """Set every pixel to a red of the given brightness."""
        self.pixels.fill((brightness, 0, 0))

    def show(self) -> None:
        """Latch the current colours onto the strip."""
        self.pixels.show()

    def _t_wave(self, progress: float) -> int:
        base = self.BASELINE_BRIGHTNESS
        t = _f32(_f32(progress - _ST_END) / _T_SPAN)
        return int(base + (self.T_WAVE_BRIGHTNESS - base) * math.sin(t * math.pi))

    def _hold_afterglow(self, step: int, total_steps: int, brightness: int) -> int:
        if self.afterglow_active and self._is_r_wave_portion(step, total_steps):
            elapsed = (self._clock() - self._afterglow_start) & _UINT32
            if elapsed < (self.afterglow_duration & _UINT32):
                return self.QRS_PEAK_BRIGHTNESS
            self.afterglow_active = False
        return brightness

    @staticmethod
    def _is_r_wave_portion(step: int, total_steps: int) -> bool:
        progress = _f32(step / total_steps)
        return _Q_END <= progress < _R_END

    def _update_heart_rate(self, heart_rate: int, current_millis: int) -> None:
        elapsed = (current_millis - self._last_rate_update) & _UINT32
        if elapsed <= self.heart_rate_update_interval:
            return
        self._record_rate(heart_rate)

        if self._is_significant_change(heart_rate):
            change = self._relative_change(heart_rate)
            capped = min(change, self.max_afterglow_duration_factor - 1.0)
            self.afterglow_duration = self.BASE_AFTERGLOW_DURATION + int(
                capped * self.AFTERGLOW_SCALE_FACTOR * self._AFTERGLOW_MS_PER_UNIT
            )
            self.afterglow_active = True
            self._afterglow_start = current_millis

            self.modulation_active = True
            self.modulation_beats_remaining = self.INTENSITY_MODULATION_BEATS
            if heart_rate > self.last_heart_rate:
                self.modulation_factor = _f32(1.0 + self.INTENSITY_MODULATION_FACTOR)
            else:
                self.modulation_factor = _f32(1.0 - self.INTENSITY_MODULATION_FACTOR)

        self.last_heart_rate = heart_rate
        self._last_rate_update = current_millis

    def _record_rate(self, heart_rate: int) -> None:
        self._recent_rates[self._rate_index] = heart_rate
        self._rate_index = (self._rate_index + 1) % self.WINDOW_SIZE
        self.moving_average = self._window_average()

    def _window_average(self) -> float:
        return _f32(float(sum(self._recent_rates)) / self.WINDOW_SIZE)

    def _relative_change(self, heart_rate: int) -> float:
        return _f32(abs(_f32(heart_rate - self.moving_average)) / self.moving_average)

    def _is_significant_change(self, heart_rate: int) -> bool:
        if self.moving_average == 0:
            return False
        return self._relative_change(heart_rate) > self.significant_change_threshold

    def _apply_modulation(self, brightness: int) -> int:
        if self.modulation_active:
            brightness = int(_f32(brightness * self.modulation_factor))
        return min(255, brightness)