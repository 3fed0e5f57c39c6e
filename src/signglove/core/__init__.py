"""Core capture logic: session state, sensor frames, and their data types.

This package sits between the BLE layer and any display by owning the capture
state machine and the live sensor frame. It has no knowledge of a concrete
BLE stack; letters and connection changes arrive as Qt signals from
:class:`signglove.ble.ConnectionCoordinator`.
"""

from .models import (
    CaptureSnapshot,
    ConnectionState,
    DeviceHandle,
    ErrorKind,
    GloveError,
    SensorFrame,
    is_capture_symbol,
)
from .frames import frame_from_payload
from .synth import jitter, synthesize
from .capture_session import CaptureSession

__all__ = [
    "CaptureSnapshot",
    "ConnectionState",
    "DeviceHandle",
    "ErrorKind",
    "GloveError",
    "SensorFrame",
    "is_capture_symbol",
    "frame_from_payload",
    "jitter",
    "synthesize",
    "CaptureSession",
]
