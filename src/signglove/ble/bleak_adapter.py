"""BLE backend built on bleak, running its asyncio loop on a worker thread.

bleak is coroutine based while the coordinator lives on the Qt main thread.
Each public method schedules a coroutine onto a private event loop; results
come back as Qt signals, which Qt queues onto the receivers' thread.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from concurrent.futures import Future
from typing import Any, Coroutine, Dict, Iterable, Optional, Tuple

from bleak import BleakClient, BleakScanner
from bleak.backends.device import BLEDevice
from bleak.backends.scanner import AdvertisementData
from bleak.exc import BleakError
from PySide6.QtCore import QObject

from ..config import protocol
from ..core.models import DeviceHandle
from .adapter import BleAdapter

logger = logging.getLogger(__name__)


class BleakAdapter(BleAdapter):
    """:class:`BleAdapter` backed by the host's Bluetooth radio."""

    def __init__(self, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(
            target=self._run_loop, name="signglove-bleak", daemon=True
        )
        self._thread.start()

        self._scanner: Optional[BleakScanner] = None
        self._client: Optional[BleakClient] = None

    # ------------------------------------------------------------------ loop plumbing
    def _run_loop(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._loop.run_forever()

    def _submit(self, coro: Coroutine[Any, Any, None]) -> Future:
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        future.add_done_callback(self._log_failure)
        return future

    @staticmethod
    def _log_failure(future: Future) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.error("BLE task failed: %s", exc, exc_info=exc)

    # ------------------------------------------------------------------ BleAdapter
    def is_enabled(self) -> bool:
        # bleak has no synchronous radio query; a dead radio surfaces as scan_failed.
        return True

    def start_scan(self, service_uuids: Iterable[str], names: Iterable[str]) -> None:
        # Filtering happens in the coordinator: name OR service must match, which
        # backend-level service filters cannot express.
        self._submit(self._start_scan())

    def stop_scan(self) -> None:
        self._submit(self._stop_scan())

    def connect_device(self, device: DeviceHandle) -> None:
        self._submit(self._connect(device))

    def discover_services(self) -> None:
        self._submit(self._discover())

    def enable_notifications(self, service_uuid: str, char_uuid: str, descriptor_uuid: str) -> None:
        self._submit(self._enable_notifications(char_uuid))

    def disconnect_device(self) -> None:
        self._submit(self._disconnect())

    def shutdown(self) -> None:
        try:
            self._submit(self._disconnect()).result(timeout=5.0)
        except Exception:
            logger.exception("BLE shutdown did not complete cleanly")
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join(timeout=2.0)

    # ------------------------------------------------------------------ coroutines
    def _on_advertisement(self, device: BLEDevice, adv: AdvertisementData) -> None:
        handle = DeviceHandle(
            address=device.address,
            name=adv.local_name or device.name,
            service_uuids=tuple(protocol.normalize_uuid(u) for u in (adv.service_uuids or [])),
            rssi=adv.rssi,
            native=device,
        )
        self.device_found.emit(handle)

    async def _start_scan(self) -> None:
        if self._scanner is not None:
            return
        scanner = BleakScanner(detection_callback=self._on_advertisement)
        try:
            await scanner.start()
        except (BleakError, OSError) as exc:
            logger.error("Bluetooth is not available: %s", exc)
            self.scan_failed.emit(str(exc))
            return
        self._scanner = scanner

    async def _stop_scan(self) -> None:
        scanner = self._scanner
        self._scanner = None
        if scanner is None:
            return
        try:
            await scanner.stop()
        except BleakError as exc:
            logger.warning("Failed to stop scanner: %s", exc)

    def _on_link_lost(self, client: BleakClient) -> None:
        if self._client is not client:
            return
        self._client = None
        self.disconnected.emit()

    async def _connect(self, device: DeviceHandle) -> None:
        await self._stop_scan()
        target = device.native if device.native is not None else device.address
        client = BleakClient(target, disconnected_callback=self._on_link_lost)
        self._client = client
        try:
            await client.connect()
        except (BleakError, asyncio.TimeoutError, OSError) as exc:
            if self._client is client:
                self._client = None
                self.connection_failed.emit(str(exc) or type(exc).__name__)
            return
        if self._client is not client:
            # disconnect_device() ran while the link was still coming up
            logger.info("Dropping late connection to %s", device.address)
            try:
                await client.disconnect()
            except BleakError as exc:
                logger.warning("Error while disconnecting: %s", exc)
            return
        self.connected.emit(device)

    async def _discover(self) -> None:
        client = self._client
        if client is None or not client.is_connected:
            return
        table: Dict[str, Dict[str, Tuple[str, ...]]] = {}
        # bleak resolves the GATT table while connecting
        for service in client.services:
            chars: Dict[str, Tuple[str, ...]] = {}
            for char in service.characteristics:
                chars[protocol.normalize_uuid(char.uuid)] = tuple(
                    protocol.normalize_uuid(d.uuid) for d in char.descriptors
                )
            table[protocol.normalize_uuid(service.uuid)] = chars
        self.services_discovered.emit(table)

    async def _enable_notifications(self, char_uuid: str) -> None:
        client = self._client
        if client is None or not client.is_connected:
            self.descriptor_written.emit(char_uuid, False, "not connected")
            return

        def _forward(_sender: Any, data: bytearray) -> None:
            self.notification_received.emit(char_uuid, bytes(data))

        try:
            # start_notify writes ENABLE_NOTIFICATION_VALUE to the CCCD
            await client.start_notify(char_uuid, _forward)
        except (BleakError, OSError, ValueError) as exc:
            self.descriptor_written.emit(char_uuid, False, str(exc))
            return
        self.descriptor_written.emit(char_uuid, True, "")

    async def _disconnect(self) -> None:
        await self._stop_scan()
        client = self._client
        self._client = None
        if client is None:
            return
        try:
            await client.disconnect()
        except BleakError as exc:
            logger.warning("Error while disconnecting: %s", exc)
