"""Non-visual controller that owns the BLE lifecycle for one glove."""

from __future__ import annotations

import logging
from typing import Optional

from PySide6.QtCore import QObject, QTimer, Signal, Slot

from ..config import protocol
from ..config.runtime import GloveConfig
from ..core.models import ConnectionState, DeviceHandle, ErrorKind, GloveError
from .adapter import BleAdapter, ServiceTable, normalize_table
from .decoding import decode_notification

logger = logging.getLogger(__name__)


class ConnectionCoordinator(QObject):
    """
    Drive scan -> connect -> discover -> subscribe for the configured glove.

    All slots run on the thread that owns this object (the Qt main thread);
    adapter signals emitted from worker threads are queued there by Qt.
    Failures never raise: they are logged, reported through
    ``error_reported`` and turned into a state transition.
    """

    state_changed = Signal(object)  # ConnectionState
    subscribed_changed = Signal(bool)
    letter_received = Signal(str, object)  # letter, sensor payload or None
    error_reported = Signal(object)  # GloveError

    def __init__(
        self,
        adapter: BleAdapter,
        config: GloveConfig | None = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._config = (config or GloveConfig()).sanitized()
        self._adapter = adapter
        self._state = ConnectionState.DISCONNECTED
        self._device: Optional[DeviceHandle] = None
        self._subscribed = False

        self._scan_timer = QTimer(self)
        self._scan_timer.setSingleShot(True)
        self._scan_timer.setInterval(self._config.scan_timeout_ms)
        self._scan_timer.timeout.connect(self._on_scan_timeout)

        adapter.device_found.connect(self._on_device_found)
        adapter.scan_failed.connect(self._on_scan_failed)
        adapter.connected.connect(self._on_connected)
        adapter.disconnected.connect(self._on_disconnected)
        adapter.connection_failed.connect(self._on_connection_failed)
        adapter.services_discovered.connect(self._on_services_discovered)
        adapter.descriptor_written.connect(self._on_descriptor_written)
        adapter.notification_received.connect(self._on_notification)

    # --------------------------------------------------------------- queries
    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def config(self) -> GloveConfig:
        return self._config

    @property
    def device(self) -> Optional[DeviceHandle]:
        return self._device

    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    def is_subscribed(self) -> bool:
        return self._subscribed

    def is_scanning(self) -> bool:
        return self._state is ConnectionState.SCANNING

    # --------------------------------------------------------------- commands
    def start_scan(self) -> None:
        if self._state is ConnectionState.SCANNING:
            return
        if self._state in (ConnectionState.CONNECTING, ConnectionState.CONNECTED):
            logger.debug("start_scan ignored while %s", self._state.value)
            return
        if not self._adapter.is_enabled():
            self._report(ErrorKind.ADAPTER_UNAVAILABLE, "Bluetooth adapter is disabled")
            return

        self._set_state(ConnectionState.SCANNING)
        self._scan_timer.start()
        logger.info(
            "Scanning for %r / service %s (timeout %.1fs)",
            self._config.device_name,
            self._config.service_uuid,
            self._config.scan_timeout_s,
        )
        try:
            self._adapter.start_scan([self._config.service_uuid], [self._config.device_name])
        except Exception as exc:
            self._scan_timer.stop()
            self._set_state(ConnectionState.DISCONNECTED)
            self._report(ErrorKind.ADAPTER_UNAVAILABLE, f"Scan could not start: {exc}")

    def stop_scan(self) -> None:
        self._scan_timer.stop()
        if self._state is not ConnectionState.SCANNING:
            return
        self._stop_adapter_scan()
        logger.info("Stopped BLE scan")

    def connect_device(self, device: DeviceHandle) -> None:
        self._device = device
        self._set_state(ConnectionState.CONNECTING)
        logger.info("Connecting to %s (%s)", device.name or "<unnamed>", device.address)
        try:
            self._adapter.connect_device(device)
        except Exception as exc:
            self._on_connection_failed(str(exc))

    def disconnect_device(self) -> None:
        """Tear down the link; safe to call in any state, including twice."""
        self._scan_timer.stop()
        if self._state is ConnectionState.SCANNING:
            self._stop_adapter_scan()
        try:
            self._adapter.disconnect_device()
        except Exception:
            logger.exception("Adapter failed while disconnecting")
        self._device = None
        self._set_subscribed(False)
        self._set_state(ConnectionState.DISCONNECTED)

    def toggle(self) -> None:
        """Connect when idle, disconnect otherwise."""
        if self._state in (
            ConnectionState.SCANNING,
            ConnectionState.CONNECTING,
            ConnectionState.CONNECTED,
        ):
            self.disconnect_device()
        else:
            self.start_scan()

    # --------------------------------------------------------------- helpers
    def _set_state(self, state: ConnectionState) -> None:
        if state is self._state:
            return
        logger.debug("Connection state %s -> %s", self._state.value, state.value)
        self._state = state
        self.state_changed.emit(state)

    def _set_subscribed(self, subscribed: bool) -> None:
        if subscribed == self._subscribed:
            return
        self._subscribed = subscribed
        self.subscribed_changed.emit(subscribed)

    def _report(self, kind: ErrorKind, message: str) -> None:
        err = GloveError(kind, message)
        if kind is ErrorKind.DECODE_IGNORED:
            logger.debug("Glove: %s", err)
        else:
            logger.warning("Glove: %s", err)
        self.error_reported.emit(err)

    def _stop_adapter_scan(self) -> None:
        try:
            self._adapter.stop_scan()
        except Exception:
            logger.exception("Adapter failed to stop scanning")
        if self._state is ConnectionState.SCANNING:
            self._set_state(ConnectionState.DISCONNECTED)

    def _matches(self, device: DeviceHandle) -> bool:
        if device.name and device.name == self._config.device_name:
            return True
        services = {protocol.normalize_uuid(u) for u in device.service_uuids}
        return self._config.service_uuid in services

    # --------------------------------------------------------------- adapter callbacks
    @Slot(object)
    def _on_device_found(self, device: DeviceHandle) -> None:
        if self._state is not ConnectionState.SCANNING:
            return
        logger.debug("Found device: %s, address: %s", device.name, device.address)
        if not self._matches(device):
            return
        self._scan_timer.stop()
        try:
            self._adapter.stop_scan()
        except Exception:
            logger.exception("Adapter failed to stop scanning")
        self.connect_device(device)

    @Slot(str)
    def _on_scan_failed(self, message: str) -> None:
        if self._state is not ConnectionState.SCANNING:
            return
        self._scan_timer.stop()
        self._set_state(ConnectionState.DISCONNECTED)
        self._report(ErrorKind.ADAPTER_UNAVAILABLE, f"Scan failed: {message}")

    @Slot()
    def _on_scan_timeout(self) -> None:
        if self._state is not ConnectionState.SCANNING:
            return
        self._stop_adapter_scan()
        self._report(
            ErrorKind.SCAN_TIMEOUT,
            f"No {self._config.device_name!r} found within {self._config.scan_timeout_s:.1f}s",
        )

    @Slot(object)
    def _on_connected(self, device: DeviceHandle) -> None:
        if self._state is not ConnectionState.CONNECTING:
            logger.debug("Ignoring connect callback while %s", self._state.value)
            return
        if device is not None:
            self._device = device
        logger.info("Connected to GATT server")
        self._set_state(ConnectionState.CONNECTED)
        try:
            self._adapter.discover_services()
        except Exception as exc:
            self._report(ErrorKind.SERVICE_NOT_FOUND, f"Service discovery failed: {exc}")

    @Slot()
    def _on_disconnected(self) -> None:
        if self._state.is_link_down:
            return
        logger.info("Disconnected from GATT server")
        self._scan_timer.stop()
        self._device = None
        self._set_subscribed(False)
        self._set_state(ConnectionState.DISCONNECTED)

    @Slot(str)
    def _on_connection_failed(self, message: str) -> None:
        if self._state.is_link_down:
            return
        self._scan_timer.stop()
        self._device = None
        self._set_subscribed(False)
        self._set_state(ConnectionState.FAILED)
        self._report(ErrorKind.CONNECTION_FAILED, message or "connection attempt failed")

    @Slot(object)
    def _on_services_discovered(self, table: ServiceTable) -> None:
        if self._state is not ConnectionState.CONNECTED:
            return
        services = normalize_table(table or {})
        chars = services.get(self._config.service_uuid)
        if chars is None:
            self._report(ErrorKind.SERVICE_NOT_FOUND, f"Service {self._config.service_uuid} not found")
            return
        if self._config.characteristic_uuid not in chars:
            self._report(
                ErrorKind.CHARACTERISTIC_NOT_FOUND,
                f"Characteristic {self._config.characteristic_uuid} not found",
            )
            return

        logger.info("Services discovered; enabling notifications")
        try:
            self._adapter.enable_notifications(
                self._config.service_uuid,
                self._config.characteristic_uuid,
                self._config.descriptor_uuid,
            )
        except Exception as exc:
            self._report(ErrorKind.DESCRIPTOR_WRITE_FAILED, str(exc))

    @Slot(str, bool, str)
    def _on_descriptor_written(self, char_uuid: str, ok: bool, message: str) -> None:
        if self._state is not ConnectionState.CONNECTED:
            return
        if protocol.normalize_uuid(char_uuid) != self._config.characteristic_uuid:
            return
        if not ok:
            self._report(ErrorKind.DESCRIPTOR_WRITE_FAILED, message or "descriptor write rejected")
            return
        logger.info("Notifications enabled for letter characteristic")
        self._set_subscribed(True)

    @Slot(str, object)
    def _on_notification(self, char_uuid: str, payload: object) -> None:
        if self._state is not ConnectionState.CONNECTED:
            return
        if protocol.normalize_uuid(char_uuid) != self._config.characteristic_uuid:
            return
        raw = bytes(payload) if payload is not None else b""
        decoded = decode_notification(raw)
        if decoded is None:
            self._report(ErrorKind.DECODE_IGNORED, f"Dropped notification {raw!r}")
            return
        logger.debug("Received notification: %r", decoded.letter)
        self.letter_received.emit(decoded.letter, decoded.sensor_payload)
