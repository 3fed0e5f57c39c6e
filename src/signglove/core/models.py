"""Shared dataclasses and enums for glove connections and capture runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Literal, Optional

from ..config import protocol

FrameSource = Literal["idle", "synthetic", "device"]
Vector3 = tuple[float, float, float]


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    SCANNING = "scanning"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    FAILED = "failed"

    @property
    def is_link_down(self) -> bool:
        return self in (ConnectionState.DISCONNECTED, ConnectionState.FAILED)


class ErrorKind(str, Enum):
    ADAPTER_UNAVAILABLE = "adapter_unavailable"
    SCAN_TIMEOUT = "scan_timeout"
    CONNECTION_FAILED = "connection_failed"
    SERVICE_NOT_FOUND = "service_not_found"
    CHARACTERISTIC_NOT_FOUND = "characteristic_not_found"
    DESCRIPTOR_WRITE_FAILED = "descriptor_write_failed"
    DECODE_IGNORED = "decode_ignored"


@dataclass(frozen=True)
class GloveError:
    kind: ErrorKind
    message: str = ""

    def __str__(self) -> str:
        if self.message:
            return f"{self.kind.value}: {self.message}"
        return self.kind.value


@dataclass(frozen=True)
class DeviceHandle:
    """A discovered peripheral as reported by a :class:`BleAdapter`."""

    address: str
    name: Optional[str] = None
    service_uuids: tuple[str, ...] = ()
    rssi: Optional[int] = None
    # Backend object (e.g. bleak's BLEDevice); opaque to the coordinator.
    native: object = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class SensorFrame:
    """Latest flex/accelerometer/gyroscope snapshot.

    Frames are immutable and replaced as a whole so readers never see a mix of
    old and new vectors.
    """

    flex: tuple[float, ...] = (0.5,) * protocol.FLEX_CHANNELS
    accel: Vector3 = (0.0, 0.0, 0.0)
    gyro: Vector3 = (0.0, 0.0, 0.0)
    source: FrameSource = "idle"

    def __post_init__(self) -> None:
        if len(self.flex) != protocol.FLEX_CHANNELS:
            raise ValueError(
                f"flex must have {protocol.FLEX_CHANNELS} channels, got {len(self.flex)}"
            )
        if len(self.accel) != 3 or len(self.gyro) != 3:
            raise ValueError("accel and gyro must have exactly 3 components")


@dataclass(frozen=True)
class CaptureSnapshot:
    """Read-only view of a capture run handed to display collaborators."""

    is_active: bool = False
    target: str = ""
    cursor: int = 0
    accumulated_text: str = ""
    current_char: Optional[str] = None

    @property
    def remaining(self) -> int:
        return max(0, len(self.target) - self.cursor)

    @property
    def is_complete(self) -> bool:
        return bool(self.target) and self.cursor >= len(self.target)


def is_capture_symbol(letter: str | None) -> bool:
    """Return True for symbols a capture run accepts (letters, space, apostrophe)."""
    if not letter or len(letter) != 1:
        return False
    return letter.isalpha() or letter in {" ", "'"}
