"""Letter-by-letter capture run bound to a fixed target phrase."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Mapping, Optional

from PySide6.QtCore import QObject, QTimer, Signal, Slot

from ..config.runtime import GloveConfig
from .frames import frame_from_payload
from .models import CaptureSnapshot, ConnectionState, SensorFrame, is_capture_symbol
from .synth import jitter, synthesize

if TYPE_CHECKING:  # pragma: no cover
    from ..ble.coordinator import ConnectionCoordinator

logger = logging.getLogger(__name__)


class CaptureSession(QObject):
    """
    Owns the capture state machine and the live :class:`SensorFrame`.

    Letters come from :class:`~signglove.ble.coordinator.ConnectionCoordinator`
    through ``letter_received``. While a run is active a refresh timer keeps the
    frame moving with synthetic values until the device supplies a real frame
    for the current letter; a device frame is never overwritten by a
    synthetic one for the same letter.

    Nothing here raises: calls whose preconditions are not met are no-ops.
    """

    session_changed = Signal(object)  # CaptureSnapshot
    frame_changed = Signal(object)  # SensorFrame
    pulse_changed = Signal(bool)
    capture_completed = Signal(str)

    def __init__(
        self,
        coordinator: ConnectionCoordinator,
        config: GloveConfig | None = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._config = (config or coordinator.config).sanitized()
        self._coordinator = coordinator
        self._target = self._config.target_phrase

        self._active = False
        self._cursor = 0
        self._text = ""
        self._current_char: Optional[str] = None
        self._frame = SensorFrame()
        self._device_frame_for_letter = False
        self._pulse = False
        self._started_at = 0.0
        self._tick = 0

        self._refresh_timer = QTimer(self)
        self._refresh_timer.setInterval(self._config.refresh_interval_ms)
        self._refresh_timer.timeout.connect(self._on_refresh_timeout)

        self._pulse_timer = QTimer(self)
        self._pulse_timer.setSingleShot(True)
        self._pulse_timer.setInterval(self._config.pulse_ms)
        self._pulse_timer.timeout.connect(self._on_pulse_timeout)

        coordinator.state_changed.connect(self._on_connection_state)
        coordinator.letter_received.connect(self.on_letter_received)

    # --------------------------------------------------------------- read-only views
    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def target(self) -> str:
        return self._target

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def accumulated_text(self) -> str:
        return self._text

    @property
    def current_char(self) -> Optional[str]:
        return self._current_char

    @property
    def frame(self) -> SensorFrame:
        return self._frame

    @property
    def pulse(self) -> bool:
        return self._pulse

    def snapshot(self) -> CaptureSnapshot:
        return CaptureSnapshot(
            is_active=self._active,
            target=self._target,
            cursor=self._cursor,
            accumulated_text=self._text,
            current_char=self._current_char,
        )

    # --------------------------------------------------------------- start/stop
    def start(self) -> None:
        if self._coordinator.state is not ConnectionState.CONNECTED:
            logger.debug("start() ignored: device is %s", self._coordinator.state.value)
            return

        self._refresh_timer.stop()
        self._text = ""
        self._cursor = 0
        self._current_char = None
        self._device_frame_for_letter = False
        self._tick = 0
        self._started_at = time.monotonic()
        self._active = True
        logger.info("Capture started (target %r)", self._target)
        self._refresh_timer.start()
        self._publish_session()

    def stop(self) -> None:
        """Cancel the refresh loop and end the run. Safe to call repeatedly."""
        self._refresh_timer.stop()
        self._pulse_timer.stop()
        self._set_pulse(False)
        if not self._active:
            return
        self._active = False
        logger.info("Capture stopped after %d/%d letters", self._cursor, len(self._target))
        self._publish_session()

    def toggle(self) -> None:
        if self._active:
            self.stop()
        else:
            self.start()

    # --------------------------------------------------------------- letters
    @Slot(str, object)
    def on_letter_received(self, letter: str, sensor_payload: Optional[Mapping] = None) -> None:
        if not self._active:
            logger.debug("Letter %r ignored: no active capture", letter)
            return
        if not is_capture_symbol(letter):
            logger.debug("Letter %r ignored: not a capture symbol", letter)
            return

        self._text += letter
        self._cursor = min(len(self._target), self._cursor + 1)
        self._current_char = letter
        self._device_frame_for_letter = False

        if sensor_payload:
            frame = frame_from_payload(
                sensor_payload,
                self._frame,
                full_scale=self._config.flex_full_scale,
            )
            if frame is None:
                logger.debug("No usable sensor vectors for %r: %r", letter, sensor_payload)
            else:
                self._set_frame(frame)
                self._device_frame_for_letter = True

        if self._cursor >= len(self._target):
            text = self._text
            logger.info("Capture complete: %r", text)
            self.stop()
            self.capture_completed.emit(text)
            return

        self._set_pulse(True)
        self._pulse_timer.start()
        self._publish_session()

    # --------------------------------------------------------------- refresh loop
    def refresh(self, elapsed_s: float) -> None:
        """Run one refresh tick at ``elapsed_s`` seconds into the run."""
        if not self._active:
            return
        if self._device_frame_for_letter:
            return
        self._tick += 1
        if self._current_char is None:
            frame = synthesize(elapsed_s, self._tick)
        else:
            frame = jitter(self._frame, self._tick)
        self._set_frame(frame)

    @Slot()
    def _on_refresh_timeout(self) -> None:
        self.refresh(time.monotonic() - self._started_at)

    @Slot()
    def _on_pulse_timeout(self) -> None:
        self._set_pulse(False)

    @Slot(object)
    def _on_connection_state(self, state: ConnectionState) -> None:
        if state.is_link_down and self._active:
            logger.info("Device %s; stopping capture", state.value)
            self.stop()

    # --------------------------------------------------------------- publishing
    def _set_frame(self, frame: SensorFrame) -> None:
        self._frame = frame
        self.frame_changed.emit(frame)

    def _set_pulse(self, pulse: bool) -> None:
        if pulse == self._pulse:
            return
        self._pulse = pulse
        self.pulse_changed.emit(pulse)

    def _publish_session(self) -> None:
        self.session_changed.emit(self.snapshot())
