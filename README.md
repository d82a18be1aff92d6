# heartglow

Tools for turning heart data into light and touch. The package has no
dependencies outside the standard library.

- `heartglow.uecg` decodes radio packets from a uECG wearable. `UECGReceiver`
  tracks the ECG trace, BPM, battery voltage, skin resistance, temperature,
  acceleration, step count, RR intervals and HRV histogram bins.
- `heartglow.emulator` provides `ECGEmulator`. It shows a fixed heartbeat
  (one cycle every 800 ms, about 75 BPM) as LED brightness, with P, QRS, T and
  U waves. The module also has `PixelStrip`, an in-memory LED strip, and
  `arduino_map`, an integer linear rescale.
- `heartglow.improved` provides `ImprovedECGEmulator`. Its heartbeat follows a
  live heart rate. When the rate changes sharply it holds the R-wave peak for
  a while (the afterglow) and briefly raises or lowers the intensity.
- `heartglow.jewel` provides `JewelECGEmulator`, a dimmer variant for RGBW
  jewel rings. It stays dark between beats and adds a trace of white at faint
  levels.
- `heartglow.haptic` provides `HapticECGEmulator`, which times vibration
  pulses from a BPM value.

## Install

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Decoding uECG packets

Feed raw 32-byte radio payloads to `UECGReceiver.process`. The receiver takes
an optional clock that returns milliseconds. It uses the clock to pace the
low-frequency ECG buffer and falls back to a monotonic clock if none is given.

```python
import time
from heartglow.uecg import UECGReceiver, pipe_address

def clock():
    return int(time.monotonic() * 1000)

receiver = UECGReceiver(clock)
address = pipe_address()  # listening address, already in the radio's bit order

for packet in packets:  # each a bytes object of at least 32 bytes
    receiver.process(packet)

print(receiver.device_id, receiver.bpm, receiver.battery_mv)
print(receiver.ecg(8))        # latest low-frequency ECG values, oldest first
print(receiver.hrv_score())   # 0..1000
print(receiver.hrv_bins(16))
```

`process` returns `True` when it decoded a packet. It returns `False` in two
cases: the packet was used only for stream detection, or it was rejected
(bad length, failed checksum, too many data points, or an implausible jump
between samples). A packet shorter than 32 bytes raises `ValueError`. Checksum
failures are logged as warnings.

The receiver works out from the traffic it sees whether the stream is
whitened (after about 500 packets) and which packet layout is in use. It
records the results in `dewhiten_needed` and `protocol`, and decodes no
values until both are known.

Decoded values are plain attributes:

- `device_id`
- `battery_mv`
- `bpm`
- `gsr`
- `temperature`
- `accel` (an `(x, y, z)` tuple in m/s²)
- `steps`
- `last_rr`
- `last_rr_id`
- `data_count`

The module also exposes these helpers:

- `swap_bits`
- `decode_acc`
- `dewhiten`
- `DEWHITE_TABLE`
- the radio settings `RADIO_CHANNEL`, `DATA_RATE_KBPS`, `ADDRESS_WIDTH` and
  `PAYLOAD_SIZE`

## Driving a heartbeat light

Call `update` repeatedly with the current time in milliseconds. When a step is
due, it sets every pixel of `emulator.pixels`, a `PixelStrip`, and latches the
frame.

```python
from heartglow.improved import ImprovedECGEmulator

emulator = ImprovedECGEmulator(num_pixels=16, clock=clock)
emulator.begin()
for _ in range(1000):
    brightness = emulator.update(clock(), heart_rate=72)
    if brightness is not None:
        print(brightness, emulator.pixels.shown[0])
```

`ImprovedECGEmulator.update` returns the brightness it showed, or `None` if no
step was due. A heart rate of zero or below raises `ValueError`. You can
change the sensitivity at any time through these attributes:

- `heart_rate_update_interval`
- `significant_change_threshold`
- `max_afterglow_duration_factor`

`ECGEmulator(num_pixels)` from `heartglow.emulator` works the same way but
takes only the current time: `update(current_millis)`.

`JewelECGEmulator(num_pixels, clock)` from `heartglow.jewel` takes the same
arguments as `ImprovedECGEmulator`. Its `update` returns nothing. It also adds
`clear()`, which turns every pixel off and shows the result.

## Haptic pulses

```python
from heartglow.haptic import HapticECGEmulator

motor = HapticECGEmulator()
motor.begin()
motor.set_bpm(90)
level = motor.update(clock())  # 255 while vibrating, 0 otherwise
```

`set_bpm` accepts values from 1 to 300 and returns whether the value was taken.
Values outside that range are ignored. The current rate is available as
`motor.bpm`.

## What this package does not do

It does not talk to hardware. It has no radio driver: you obtain the uECG
payloads yourself and pass them to `process`. It has no LED or motor driver
either. `PixelStrip` only holds colours in memory, and `HapticECGEmulator`
only reports a drive level. Sending these to real devices is up to your code.
There is no command-line program.