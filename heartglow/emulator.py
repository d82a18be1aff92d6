"""A fixed-rate ECG waveform shown as the brightness of an LED strip."""

from __future__ import annotations

import math
import struct

_UINT32 = 0xFFFFFFFF


def _f32(value: float) -> float:
    return struct.unpack("f", struct.pack("f", value))[0]


_P_END = _f32(0.10)
_PR_END = _f32(0.16)
_Q_END = _f32(0.20)
_R_END = _f32(0.24)
_S_END = _f32(0.28)
_ST_END = _f32(0.36)
_T_SPAN = _f32(0.20)
_T_END = _f32(0.56)
_U_SPAN = _f32(0.08)
_U_END = _f32(0.64)


def arduino_map(x: int, in_min: int, in_max: int, out_min: int, out_max: int) -> int:
    """Linearly rescale an integer, truncating the quotient toward zero."""
    numerator = (x - in_min) * (out_max - out_min)
    denominator = in_max - in_min
    if denominator == 0:
        raise ZeroDivisionError("input range is empty")
    quotient = abs(numerator) // abs(denominator)
    if (numerator < 0) != (denominator < 0):
        quotient = -quotient
    return quotient + out_min


class PixelStrip:
    """In-memory model of an addressable LED strip."""

    def __init__(self, count: int) -> None:
        if count < 0:
            raise ValueError("pixel count cannot be negative")
        self.pixels: list[tuple[int, ...]] = [(0, 0, 0)] * count
        self.brightness = 255
        self.shown: list[tuple[int, ...]] = list(self.pixels)
        self.show_count = 0

    def __len__(self) -> int:
        return len(self.pixels)

    def fill(self, color: tuple[int, ...]) -> None:
        """Set every pixel to ``color``; each channel is kept to eight bits."""
        channels = tuple(c & 0xFF for c in color)
        self.pixels = [channels] * len(self.pixels)

    def show(self) -> None:
        """Latch the current pixel colours onto the strip."""
        self.shown = list(self.pixels)
        self.show_count += 1


class ECGEmulator:
    """Steps through one heartbeat every 800 ms, about 75 beats per minute."""

    BASELINE_BRIGHTNESS = 5
    P_WAVE_BRIGHTNESS = 20
    QRS_PEAK_BRIGHTNESS = 65
    T_WAVE_BRIGHTNESS = 30
    U_WAVE_BRIGHTNESS = 10
    CYCLE_DURATION = 800
    TOTAL_STEPS = 100
    STEP_DURATION = CYCLE_DURATION // TOTAL_STEPS

    def __init__(self, num_pixels: int) -> None:
        self.pixels = PixelStrip(num_pixels)
        self.last_update = 0
        self.step = 0

    def begin(self) -> None:
        """Set the strip brightness and show the initial frame."""
        self.pixels.brightness = 15
        self.pixels.show()

    def update(self, current_millis: int) -> int | None:
        """Advance one step if its time has come; returns the brightness shown."""
        if ((current_millis - self.last_update) & _UINT32) < self.STEP_DURATION:
            return None
        brightness = self.ecg_brightness(self.step, self.TOTAL_STEPS)
        self.pixels.fill((brightness, 0, 0))
        self.pixels.show()
        self.step = (self.step + 1) % self.TOTAL_STEPS
        self.last_update = current_millis
        return brightness

    def ecg_brightness(self, step: int, total_steps: int) -> int:
        """Brightness of the waveform at ``step`` of a cycle of ``total_steps``."""
        base = self.BASELINE_BRIGHTNESS
        progress = _f32(step / total_steps)

        def at(fraction: float) -> int:
            return int(total_steps * fraction)

        if progress < _P_END:
            return arduino_map(step, 0, at(0.10), base, self.P_WAVE_BRIGHTNESS)
        if progress < _PR_END:
            return arduino_map(step, at(0.10), at(0.16), self.P_WAVE_BRIGHTNESS, base)
        if progress < _Q_END:
            return arduino_map(step, at(0.16), at(0.20), base, base - 5)
        if progress < _R_END:
            return arduino_map(step, at(0.20), at(0.24), base - 5, self.QRS_PEAK_BRIGHTNESS)
        if progress < _S_END:
            return arduino_map(step, at(0.24), at(0.28), self.QRS_PEAK_BRIGHTNESS, base - 10)
        if progress < _ST_END:
            return arduino_map(step, at(0.28), at(0.36), base - 10, base)
        if progress < _T_END:
            t = _f32(_f32(progress - _ST_END) / _T_SPAN)
            return int(base + (self.T_WAVE_BRIGHTNESS - base) * math.sin(t * math.pi))
        if progress < _U_END:
            u = _f32(_f32(progress - _T_END) / _U_SPAN)
            return int(base + (self.U_WAVE_BRIGHTNESS - base) * math.sin(u * math.pi))
        return base