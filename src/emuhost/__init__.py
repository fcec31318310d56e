"""emuhost: run an emulator under interactive control and stream its output as typed events."""

__version__ = "0.1.0"
