"""In-process stand-in for the glove, used for demos and tests.

The adapter answers every request synchronously on the caller's thread and,
once notifications are enabled, can play a phrase back one JSON notification
per interval with per-letter finger shapes.
"""

from __future__ import annotations

import json
import logging
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from PySide6.QtCore import QObject, QTimer, Slot

from ..config import protocol
from ..config.runtime import GloveConfig
from ..core.models import DeviceHandle
from .adapter import BleAdapter, normalize_table

logger = logging.getLogger(__name__)

# Normalized finger bend (thumb..pinky) for the letters the demo phrases use.
LETTER_FLEX: Dict[str, Tuple[float, ...]] = {
    "A": (0.1, 0.8, 0.8, 0.8, 0.8),
    "C": (0.5, 0.5, 0.5, 0.5, 0.1),
    "E": (0.8, 0.8, 0.8, 0.8, 0.1),
    "G": (0.8, 0.1, 0.1, 0.1, 0.8),
    "H": (0.1, 0.1, 0.8, 0.8, 0.1),
    "I": (0.9, 0.9, 0.9, 0.9, 0.2),
    "M": (0.8, 0.8, 0.8, 0.1, 0.1),
    "N": (0.1, 0.1, 0.1, 0.8, 0.8),
    "P": (0.1, 0.1, 0.8, 0.8, 0.8),
    "R": (0.1, 0.8, 0.1, 0.8, 0.8),
    "S": (0.1, 0.8, 0.8, 0.8, 0.1),
    "T": (0.8, 0.1, 0.1, 0.1, 0.8),
    "U": (0.1, 0.1, 0.8, 0.1, 0.1),
    "Y": (0.1, 0.8, 0.8, 0.8, 0.1),
}
NEUTRAL_FLEX: Tuple[float, ...] = (0.5,) * protocol.FLEX_CHANNELS


def glove_gatt_table(config: GloveConfig | None = None) -> Dict[str, Dict[str, Tuple[str, ...]]]:
    """Return the GATT layout the real glove exposes."""
    cfg = (config or GloveConfig()).sanitized()
    return {
        cfg.service_uuid: {
            cfg.characteristic_uuid: (cfg.descriptor_uuid,),
            # RX characteristic (host -> glove), unused by the host app
            "6e400002-b5a3-f393-e0a9-e50e24dcca9e": (),
        }
    }


def encode_letter(
    letter: str,
    *,
    with_sensors: bool = True,
    full_scale: int = protocol.FLEX_FULL_SCALE,
    index: int = 0,
) -> bytes:
    """Encode ``letter`` the way the glove firmware does."""
    if not with_sensors:
        return letter.encode("utf-8")
    flex = LETTER_FLEX.get(letter.upper(), NEUTRAL_FLEX)
    payload = {
        "letter": letter,
        "flex": [int(round(v * full_scale)) for v in flex],
        "accel": [0.2, 0.1 + 0.01 * (index % 5), 9.8],
        "gyro": [0.5 * ((index % 3) - 1), 0.0, 0.1],
    }
    return json.dumps(payload, separators=(",", ":")).encode("utf-8")


class SimulatedGloveAdapter(BleAdapter):
    """A :class:`BleAdapter` with a scripted peripheral behind it."""

    def __init__(
        self,
        config: GloveConfig | None = None,
        *,
        enabled: bool = True,
        advertising: bool = True,
        gatt: Optional[Mapping[str, Mapping[str, Iterable[str]]]] = None,
        descriptor_ok: bool = True,
        connect_ok: bool = True,
        phrase: str | None = None,
        with_sensors: bool = True,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._config = (config or GloveConfig()).sanitized()
        self.enabled = enabled
        self.advertising = advertising
        self.gatt = normalize_table(gatt if gatt is not None else glove_gatt_table(self._config))
        self.descriptor_ok = descriptor_ok
        self.connect_ok = connect_ok
        self.with_sensors = with_sensors
        self.device = DeviceHandle(
            address="C0:FF:EE:00:00:01",
            name=self._config.device_name,
            service_uuids=(self._config.service_uuid,),
            rssi=-48,
        )
        # Devices advertised before the glove; they must not match the filters.
        self.bystanders: List[DeviceHandle] = []

        self.scanning = False
        self.link_up = False
        self.notifying = False
        self.connect_attempts = 0
        self.descriptor_writes: List[Tuple[str, str, bytes]] = []

        self._phrase = phrase or ""
        self._play_index = 0
        self._play_timer = QTimer(self)
        self._play_timer.setInterval(int(round(self._config.sim_letter_interval_s * 1000.0)))
        self._play_timer.timeout.connect(self.play_next)

    # ------------------------------------------------------------------ BleAdapter
    def is_enabled(self) -> bool:
        return self.enabled

    def start_scan(self, service_uuids: Iterable[str], names: Iterable[str]) -> None:
        if not self.enabled:
            self.scan_failed.emit("adapter disabled")
            return
        self.scanning = True
        logger.debug("Simulated scan for services=%s names=%s", list(service_uuids), list(names))
        for device in [*self.bystanders, self.device] if self.advertising else self.bystanders:
            if not self.scanning:
                break
            self.device_found.emit(device)

    def stop_scan(self) -> None:
        self.scanning = False

    def connect_device(self, device: DeviceHandle) -> None:
        self.connect_attempts += 1
        if not self.connect_ok or device.address != self.device.address:
            self.connection_failed.emit(f"GATT error connecting to {device.address}")
            return
        self.link_up = True
        self.connected.emit(device)

    def discover_services(self) -> None:
        if not self.link_up:
            return
        self.services_discovered.emit(dict(self.gatt))

    def enable_notifications(self, service_uuid: str, char_uuid: str, descriptor_uuid: str) -> None:
        descriptors = self.gatt.get(service_uuid, {}).get(char_uuid, ())
        self.descriptor_writes.append((char_uuid, descriptor_uuid, protocol.ENABLE_NOTIFICATION_VALUE))
        if not self.descriptor_ok or descriptor_uuid not in descriptors:
            self.descriptor_written.emit(char_uuid, False, "descriptor write rejected")
            return
        self.notifying = True
        self.descriptor_written.emit(char_uuid, True, "")
        if self._phrase:
            self.start_playback()

    def disconnect_device(self) -> None:
        self._play_timer.stop()
        self.scanning = False
        self.link_up = False
        self.notifying = False

    # ------------------------------------------------------------------ scripted events
    def set_phrase(self, phrase: str) -> None:
        self._phrase = phrase
        self._play_index = 0

    def start_playback(self) -> None:
        self._play_index = 0
        self._play_timer.start()

    def stop_playback(self) -> None:
        self._play_timer.stop()

    @Slot()
    def play_next(self) -> bool:
        """Send the next phrase letter; return False once the phrase is exhausted."""
        if not self.notifying or self._play_index >= len(self._phrase):
            self._play_timer.stop()
            return False
        letter = self._phrase[self._play_index]
        payload = encode_letter(
            letter,
            with_sensors=self.with_sensors,
            full_scale=self._config.flex_full_scale,
            index=self._play_index,
        )
        self._play_index += 1
        self.push_notification(payload)
        return True

    def push_notification(self, payload: bytes, char_uuid: str | None = None) -> None:
        if not self.notifying:
            return
        self.notification_received.emit(char_uuid or self._config.characteristic_uuid, bytes(payload))

    def push_letters(self, letters: Sequence[str]) -> None:
        for letter in letters:
            self.push_notification(letter.encode("utf-8"))

    def drop_link(self, *, failed: bool = False) -> None:
        """Simulate the glove going out of range (or a GATT error when ``failed``)."""
        was_up = self.link_up
        self.disconnect_device()
        if not was_up:
            return
        if failed:
            self.connection_failed.emit("link lost (GATT error)")
        else:
            self.disconnected.emit()
