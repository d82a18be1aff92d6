"""Decoding of the uECG radio packet stream into ECG samples and vital signs."""

from __future__ import annotations

import logging
import struct
import time
from collections.abc import Callable
from enum import IntEnum

log = logging.getLogger(__name__)

RADIO_CHANNEL = 21
DATA_RATE_KBPS = 250
ADDRESS_WIDTH = 4
PAYLOAD_SIZE = 32

DEWHITE_TABLE = bytes(
    (
        2, 77, 61, 195, 248, 236, 82, 250, 161, 111, 57, 89, 131, 107, 163, 34,
        4, 154, 123, 135, 241, 216, 165, 245, 66, 222, 114, 179, 6, 215, 70,
    )
)

_PIPE_ADDRESS = (0x0E, 0xE6, 0x0D, 0xA7)
_HF_LENGTH = 16
_LF_LENGTH = 8
_HRV_BIN_COUNT = 16
_MAX_DATA_POINTS = 10
_MAX_SAMPLE_JUMP = 10000
_WHITENING_WARMUP = 500
_UINT32 = 0xFFFFFFFF


class _Param(IntEnum):
    BATT_BPM = 0
    SDNN = 1
    SKIN_RES = 2
    LAST_RR = 3
    IMU_ACC = 4
    IMU_STEPS = 5
    PNN_BINS = 6


def _f32(value: float) -> float:
    return struct.unpack("f", struct.pack("f", value))[0]


def _monotonic_ms() -> int:
    return int(time.monotonic() * 1000) & _UINT32


def swap_bits(value: int) -> int:
    """Reverse the bit order of one byte."""
    return int(f"{value & 0xFF:08b}"[::-1], 2)


def decode_acc(raw: int) -> float:
    """Decode one packed acceleration byte into m/s^2.

    The encoding is finer near zero: 0.04 steps within +-2, 0.2 steps
    within +-12 and 0.5 steps beyond.
    """
    offset = raw - 128.0
    magnitude = abs(int(offset))
    if magnitude > 100:
        result = 12.0 + (magnitude - 100) / 2.0
    elif magnitude > 50:
        result = 2.0 + (magnitude - 50) / 5.0
    else:
        result = magnitude / 25.0
    return -result if offset < 0 else result


def dewhiten(payload: bytes) -> bytes:
    """XOR the payload with the whitening table; applying it twice restores the input."""
    head = bytes(b ^ t for b, t in zip(payload, DEWHITE_TABLE))
    return head + bytes(payload[len(DEWHITE_TABLE):])


def pipe_address() -> bytes:
    """The receive pipe address in the radio's bit order."""
    return bytes(swap_bits(b) for b in _PIPE_ADDRESS)


class UECGReceiver:
    """Stateful decoder for the packets a uECG device broadcasts.

    ``clock`` returns the current time in milliseconds; it paces the
    low-frequency ECG buffer.
    """

    def __init__(self, clock: Callable[[], int] | None = None) -> None:
        self._clock = clock if clock is not None else _monotonic_ms
        self.protocol: int | None = None
        self.dewhiten_needed: bool | None = None
        self._avg_b0 = 20.0
        self._avg_b1 = 20.0
        self._avg_diff = 1.0
        self._whitening_samples = 0

        self.device_id = 0
        self.battery_mv = 0
        self.bpm = 0
        self.gsr = 0
        self.steps = 0
        self.last_rr = 0
        self.last_rr_id = 0
        self.temperature = 0.0
        self.accel = (0.0, 0.0, 0.0)
        self.data_count = 0

        self._hrv_bins = [0] * _HRV_BIN_COUNT
        self._hf_ecg = [0] * _HF_LENGTH
        self._lf_ecg = [0] * _LF_LENGTH
        self._lf_value = 0.0
        self._prev_update_ms = self._clock() & _UINT32

    def process(self, packet: bytes) -> bool:
        """Feed one 32-byte radio payload.

        Returns True when the packet was decoded, False when it was used for
        stream detection or discarded as malformed.
        """
        if len(packet) < PAYLOAD_SIZE:
            raise ValueError(f"packet must hold {PAYLOAD_SIZE} bytes, got {len(packet)}")
        body = bytes(packet[1:PAYLOAD_SIZE])
        if self.dewhiten_needed:
            body = dewhiten(body)

        if self.dewhiten_needed is None:
            self._detect_whitening(body[0])

        if self.protocol is None and self.dewhiten_needed is not None:
            self._detect_protocol(body[0], body[1])
            return False

        length = body[0] if self.protocol == 1 else body[1]
        if length >= PAYLOAD_SIZE or length < 2:
            return False
        if not self._checksum_ok(body, length):
            return False

        data_points = body[6]
        if self.protocol == 3:
            data_points = 9
        if data_points > _MAX_DATA_POINTS:
            return False
        self.device_id = int.from_bytes(body[2:6], "big")

        param_id, pb1, pb2, pb3 = body[7:11]
        self._apply_param(param_id, pb1, pb2, pb3)

        self._hf_ecg = self._hf_ecg[data_points:] + self._hf_ecg[_HF_LENGTH - data_points:]
        samples = [
            int.from_bytes(body[11 + 2 * i:13 + 2 * i], "big", signed=True)
            for i in range(data_points)
        ]
        max_jump = max((abs(b - a) for a, b in zip(samples, samples[1:])), default=0)
        if max_jump > _MAX_SAMPLE_JUMP:
            return False

        if samples:
            self._hf_ecg[_HF_LENGTH - data_points:] = samples
        for value in samples:
            self._lf_value = self._lf_value * 0.8 + 0.2 * value

        now = self._clock() & _UINT32
        lf_points = min(((now - self._prev_update_ms) & _UINT32) >> 3, 4)
        if lf_points < 1:
            return True
        self._prev_update_ms = now
        self._lf_ecg = self._lf_ecg[lf_points:] + [int(self._lf_value)] * lf_points
        self.data_count = (self.data_count + lf_points) & _UINT32
        return True

    def ecg(self, max_count: int = _LF_LENGTH) -> list[int]:
        """The most recent low-frequency ECG values, oldest first, at most eight."""
        count = max(0, min(max_count, _LF_LENGTH))
        return self._lf_ecg[_LF_LENGTH - count:]

    def hrv_score(self) -> int:
        """Share of long RR differences among the first HRV bins, scaled to 0..1000."""
        short = float(sum(self._hrv_bins[0:2]))
        long_ = float(sum(self._hrv_bins[2:6]))
        score = _f32(long_ / (short + long_ + 1))
        return int(_f32(1000 * score))

    def hrv_bins(self, max_count: int = _HRV_BIN_COUNT) -> list[int]:
        """The pNN histogram bins, at most sixteen."""
        return self._hrv_bins[: max(0, min(max_count, _HRV_BIN_COUNT))]

    def _detect_whitening(self, first_byte: int) -> None:
        self._avg_diff = self._avg_diff * 0.98 + 0.02 * first_byte
        self._whitening_samples += 1
        if self._whitening_samples > _WHITENING_WARMUP:
            self.dewhiten_needed = self._avg_diff >= 5

    def _detect_protocol(self, b0: int, b1: int) -> None:
        self._avg_b0 = self._avg_b0 * 0.98 + 0.02 * b0
        self._avg_b1 = self._avg_b1 * 0.98 + 0.02 * b1
        if self._avg_b0 < 40 and 50 < self._avg_b1 < 80:
            self.protocol = 1
        if self._avg_b1 < 40 and 50 < self._avg_b0 < 80:
            self.protocol = 2

    def _checksum_ok(self, body: bytes, length: int) -> bool:
        expected = body[length - 1]
        total = sum(body[: length - 1]) & 0xFF
        if total == expected:
            return True
        total = (total - body[length - 2]) & 0xFF
        paired = sum(body[0 : length - 2 : 2]) & 0xFF
        if total == body[length - 2] and paired == expected:
            self.protocol = 3
            return True
        log.warning(
            "%s check err: %d %d",
            " ".join(str(b) for b in body[: length + 1]),
            expected,
            total,
        )
        return False

    def _apply_param(self, param_id: int, pb1: int, pb2: int, pb3: int) -> None:
        if param_id == _Param.BATT_BPM:
            self.battery_mv = 2000 + pb1 * 10
            self.bpm = pb3
        elif param_id == _Param.SKIN_RES:
            self.gsr = (pb1 << 8) | pb2
            if pb3 < 50:
                self.temperature = float(-20 + pb3)
            elif pb3 > 220:
                self.temperature = float(47 + (pb3 - 220))
            else:
                self.temperature = _f32(30 + 0.1 * (pb3 - 50))
        elif param_id == _Param.LAST_RR:
            self.last_rr_id = pb1
            self.last_rr = (pb2 << 8) | pb3
        elif param_id == _Param.PNN_BINS:
            if pb1 < _HRV_BIN_COUNT - 1:
                self._hrv_bins[pb1] = pb2
                self._hrv_bins[pb1 + 1] = pb3
        elif param_id == _Param.IMU_STEPS:
            self.steps = (pb1 << 8) | pb2
        elif param_id == _Param.IMU_ACC:
            self.accel = (decode_acc(pb1), decode_acc(pb2), decode_acc(pb3))