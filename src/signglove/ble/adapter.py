"""Port between the connection coordinator and a concrete BLE stack.

Adapters report everything through Qt signals. They may emit from any
thread; receivers living on the Qt main thread get the calls queued onto the
main event loop, which is where all coordinator state is mutated.
"""

from __future__ import annotations

from typing import Dict, Iterable, Mapping, Tuple

from PySide6.QtCore import QObject, Signal

from ..config import protocol
from ..core.models import DeviceHandle

# service uuid -> characteristic uuid -> descriptor uuids
ServiceTable = Mapping[str, Mapping[str, Tuple[str, ...]]]


def normalize_table(table: Mapping[str, Mapping[str, Iterable[str]]]) -> Dict[str, Dict[str, Tuple[str, ...]]]:
    """Return ``table`` with all UUIDs lowercased."""
    out: Dict[str, Dict[str, Tuple[str, ...]]] = {}
    for service, chars in table.items():
        out[protocol.normalize_uuid(service)] = {
            protocol.normalize_uuid(char): tuple(protocol.normalize_uuid(d) for d in descriptors)
            for char, descriptors in chars.items()
        }
    return out


class BleAdapter(QObject):
    """Base class for BLE backends driven by :class:`ConnectionCoordinator`."""

    device_found = Signal(object)  # DeviceHandle
    scan_failed = Signal(str)
    connected = Signal(object)  # DeviceHandle
    disconnected = Signal()
    connection_failed = Signal(str)
    services_discovered = Signal(object)  # ServiceTable
    descriptor_written = Signal(str, bool, str)  # characteristic, ok, message
    notification_received = Signal(str, object)  # characteristic, bytes

    def is_enabled(self) -> bool:
        """Return False when the radio is known to be off or missing."""
        raise NotImplementedError

    def start_scan(self, service_uuids: Iterable[str], names: Iterable[str]) -> None:
        """Begin discovery; report every advertisement through ``device_found``."""
        raise NotImplementedError

    def stop_scan(self) -> None:
        raise NotImplementedError

    def connect_device(self, device: DeviceHandle) -> None:
        """Open a link; answer with ``connected`` or ``connection_failed``."""
        raise NotImplementedError

    def discover_services(self) -> None:
        """Answer with ``services_discovered`` for the connected peripheral."""
        raise NotImplementedError

    def enable_notifications(self, service_uuid: str, char_uuid: str, descriptor_uuid: str) -> None:
        """Write the client configuration descriptor; answer with ``descriptor_written``."""
        raise NotImplementedError

    def disconnect_device(self) -> None:
        """Tear down the link and release native handles. Must be idempotent."""
        raise NotImplementedError

    def shutdown(self) -> None:
        """Release backend resources at application exit."""
        self.disconnect_device()
