"""uECG packet decoding and heartbeat emulators for LED strips and vibration motors."""

__version__ = "0.1.0"
__all__ = ["emulator", "haptic", "improved", "jewel", "uecg"]