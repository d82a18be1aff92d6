import logging

import pytest

from heartglow.uecg import (
    DEWHITE_TABLE,
    UECGReceiver,
    decode_acc,
    dewhiten,
    pipe_address,
    swap_bits,
)

UNIT = (0x12, 0x34, 0x56, 0x78)
PACK_ID = 64
LENGTH = 31


class FakeClock:
    def __init__(self):
        self.now = 0

    def __call__(self):
        return self.now


def make_body(param_id=0, params=(100, 0, 72), samples=(100,) * 9, protocol=1, alt_checksum=False):
    body = [0] * 31
    if protocol == 1:
        body[0], body[1] = LENGTH, PACK_ID
    else:
        body[0], body[1] = PACK_ID, LENGTH
    body[2:6] = UNIT
    body[6] = len(samples)
    body[7] = param_id
    body[8:11] = params
    for i, sample in enumerate(samples):
        value = sample & 0xFFFF
        body[11 + 2 * i] = value >> 8
        body[12 + 2 * i] = value & 0xFF
    if alt_checksum:
        body[LENGTH - 2] = sum(body[: LENGTH - 2]) & 0xFF
        body[LENGTH - 1] = sum(body[0 : LENGTH - 2 : 2]) & 0xFF
    else:
        body[LENGTH - 1] = sum(body[: LENGTH - 1]) & 0xFF
    return bytes(body)


def packet(body):
    return bytes([0]) + body


def warmed(protocol=1, clock=None):
    rx = UECGReceiver(clock or FakeClock())
    for _ in range(501):
        rx.process(bytes(32))
    for _ in range(300):
        if rx.protocol is not None:
            break
        rx.process(packet(make_body(protocol=protocol)))
    return rx


def test_swap_bits_reverses_order():
    assert swap_bits(0x01) == 0x80
    assert swap_bits(0x80) == 0x01
    assert swap_bits(0xF0) == 0x0F


def test_swap_bits_is_involution():
    assert all(swap_bits(swap_bits(v)) == v for v in range(256))


def test_pipe_address_round_trip():
    address = pipe_address()
    assert len(address) == 4
    assert bytes(swap_bits(b) for b in address) == bytes([0x0E, 0xE6, 0x0D, 0xA7])


def test_decode_acc_zero_and_bands():
    assert decode_acc(128) == 0.0
    assert decode_acc(153) == pytest.approx(1.0)
    assert decode_acc(228) == pytest.approx(12.0)


@pytest.mark.parametrize("k", [1, 25, 50, 51, 100, 101, 127])
def test_decode_acc_symmetric(k):
    assert decode_acc(128 + k) == pytest.approx(-decode_acc(128 - k))


def test_decode_acc_monotonic():
    values = [decode_acc(v) for v in range(256)]
    assert values == sorted(values)


def test_dewhiten_table_and_round_trip():
    assert dewhiten(bytes(31)) == DEWHITE_TABLE
    assert DEWHITE_TABLE[:3] == bytes([2, 77, 61])
    data = bytes(range(40))
    assert dewhiten(dewhiten(data)) == data


def test_short_packet_rejected():
    with pytest.raises(ValueError):
        UECGReceiver(FakeClock()).process(bytes(10))


def test_detects_protocol_one_without_whitening():
    rx = warmed(protocol=1)
    assert rx.dewhiten_needed is False
    assert rx.protocol == 1


def test_detects_protocol_two():
    rx = warmed(protocol=2)
    assert rx.protocol == 2


def test_battery_bpm_and_id():
    clock = FakeClock()
    rx = warmed(clock=clock)
    clock.now = 32
    assert rx.process(packet(make_body(0, (100, 0, 72)))) is True
    assert rx.battery_mv == 3000
    assert rx.bpm == 72
    assert rx.device_id == 0x12345678
    assert rx.data_count == 4


def test_ecg_buffer_fills_newest_last():
    clock = FakeClock()
    rx = warmed(clock=clock)
    clock.now = 32
    rx.process(packet(make_body()))
    values = rx.ecg(8)
    assert values[:4] == [0, 0, 0, 0]
    assert len(set(values[4:])) == 1
    assert 0 < values[-1] <= 100


def test_ecg_count_limits():
    rx = warmed()
    assert len(rx.ecg(3)) == 3
    assert len(rx.ecg(50)) == 8
    assert rx.ecg(0) == []


def test_lf_points_follow_clock():
    clock = FakeClock()
    rx = warmed(clock=clock)
    clock.now = 4
    assert rx.process(packet(make_body())) is True
    assert rx.data_count == 0
    clock.now = 16
    rx.process(packet(make_body()))
    assert rx.data_count == 2


def test_negative_samples():
    clock = FakeClock()
    rx = warmed(clock=clock)
    clock.now = 32
    rx.process(packet(make_body(samples=(-50,) * 9)))
    assert rx.ecg(1)[0] < 0


@pytest.mark.parametrize("raw, expected", [(0, -20.0), (50, 30.0)])
def test_temperature(raw, expected):
    rx = warmed()
    rx.process(packet(make_body(2, (1, 2, raw))))
    assert rx.temperature == pytest.approx(expected)
    assert rx.gsr == 0x0102


def test_temperature_monotonic():
    rx = warmed()
    temps = []
    for raw in range(256):
        rx.process(packet(make_body(2, (0, 0, raw))))
        temps.append(rx.temperature)
    assert temps == sorted(temps)


def test_steps_and_rr():
    rx = warmed()
    rx.process(packet(make_body(5, (1, 2, 0))))
    rx.process(packet(make_body(3, (7, 3, 32))))
    assert rx.steps == 0x0102
    assert rx.last_rr_id == 7
    assert rx.last_rr == 0x0320


def test_accel():
    rx = warmed()
    rx.process(packet(make_body(4, (128, 153, 103))))
    assert rx.accel == (decode_acc(128), decode_acc(153), decode_acc(103))


def test_hrv_bins_and_score():
    rx = warmed()
    assert rx.hrv_score() == 0
    rx.process(packet(make_body(6, (2, 5, 9))))
    assert rx.hrv_bins(16)[2:4] == [5, 9]
    assert len(rx.hrv_bins(4)) == 4
    assert 0 < rx.hrv_score() < 1000


def test_hrv_bin_out_of_range_ignored():
    rx = warmed()
    rx.process(packet(make_body(6, (15, 5, 9))))
    assert rx.hrv_bins() == [0] * 16


def test_checksum_error_is_logged(caplog):
    rx = warmed()
    body = bytearray(make_body(0, (100, 0, 72)))
    body[LENGTH - 1] = (body[LENGTH - 1] + 1) & 0xFF
    with caplog.at_level(logging.WARNING):
        assert rx.process(packet(bytes(body))) is False
    assert rx.bpm == 0
    assert "check err" in caplog.text


def test_alternate_checksum_switches_protocol():
    rx = warmed()
    assert rx.process(packet(make_body(alt_checksum=True))) is True
    assert rx.protocol == 3
    assert rx.bpm == 72


def test_sample_jump_discards_ecg():
    clock = FakeClock()
    rx = warmed(clock=clock)
    clock.now = 32
    samples = (0, 20000, 0, 0, 0, 0, 0, 0, 0)
    assert rx.process(packet(make_body(0, (100, 0, 72), samples))) is False
    assert rx.data_count == 0
    assert rx.bpm == 72


def test_whitened_stream():
    rx = UECGReceiver(FakeClock())
    for _ in range(501):
        rx.process(packet(dewhiten(make_body(protocol=2))))
    assert rx.dewhiten_needed is True
    for _ in range(300):
        if rx.protocol is not None:
            break
        rx.process(packet(dewhiten(make_body(protocol=2))))
    assert rx.protocol == 2
    rx.process(packet(dewhiten(make_body(0, (100, 0, 90), protocol=2))))
    assert rx.bpm == 90