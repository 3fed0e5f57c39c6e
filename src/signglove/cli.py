"""Console entry point: connect to the glove and run one capture session.

Both the ``signglove`` script and ``python -m signglove`` run ``main()`` here.
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from typing import Optional

from PySide6.QtCore import QCoreApplication, QObject, QTimer, Slot

from .ble.adapter import BleAdapter
from .ble.coordinator import ConnectionCoordinator
from .ble.simulated import SimulatedGloveAdapter
from .config.runtime import GloveConfig, load_config
from .core.capture_session import CaptureSession
from .core.models import CaptureSnapshot, ConnectionState, ErrorKind, GloveError, SensorFrame

logger = logging.getLogger(__name__)

FATAL_ERRORS = {
    ErrorKind.ADAPTER_UNAVAILABLE,
    ErrorKind.SCAN_TIMEOUT,
    ErrorKind.CONNECTION_FAILED,
}


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="SignGlove capture runner")
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="YAML file overriding device/capture settings",
    )
    parser.add_argument(
        "--simulate",
        action="store_true",
        help="Use an in-process simulated glove instead of the Bluetooth radio",
    )
    parser.add_argument(
        "--phrase",
        type=str,
        default=None,
        help="Target phrase to capture (default: from config)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=120.0,
        help="Give up after this many seconds (default: 120)",
    )
    parser.add_argument(
        "--show-frames",
        action="store_true",
        help="Print sensor frames as they update",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Logging level (default: INFO)",
    )
    return parser


def _format_frame(frame: SensorFrame) -> str:
    flex = " ".join(f"{v:.2f}" for v in frame.flex)
    accel = ", ".join(f"{v:+.2f}" for v in frame.accel)
    gyro = ", ".join(f"{v:+.2f}" for v in frame.gyro)
    return f"[{frame.source:9s}] flex {flex} | accel ({accel}) | gyro ({gyro})"


class CaptureRunner(QObject):
    """Drive one scan -> connect -> capture cycle and quit the event loop."""

    def __init__(
        self,
        app: QCoreApplication,
        coordinator: ConnectionCoordinator,
        session: CaptureSession,
        *,
        show_frames: bool = False,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._app = app
        self._coordinator = coordinator
        self._session = session
        self._was_connected = False
        self.exit_code: Optional[int] = None

        coordinator.state_changed.connect(self._on_state)
        coordinator.subscribed_changed.connect(self._on_subscribed)
        coordinator.error_reported.connect(self._on_error)
        session.session_changed.connect(self._on_session)
        session.capture_completed.connect(self._on_completed)
        if show_frames:
            session.frame_changed.connect(self._on_frame)

    def start(self) -> None:
        self._coordinator.start_scan()

    def finish(self, code: int) -> None:
        if self.exit_code is not None:
            return
        self.exit_code = code
        self._session.stop()
        self._coordinator.disconnect_device()
        self._app.exit(code)

    @Slot(object)
    def _on_state(self, state: ConnectionState) -> None:
        print(f"device: {state.value}", flush=True)
        if state is ConnectionState.CONNECTED:
            self._was_connected = True
        elif state.is_link_down and self._was_connected:
            self.finish(1)

    @Slot(bool)
    def _on_subscribed(self, subscribed: bool) -> None:
        if subscribed:
            print(f"capturing {self._session.target!r}", flush=True)
            self._session.start()

    @Slot(object)
    def _on_error(self, error: GloveError) -> None:
        if error.kind is ErrorKind.DECODE_IGNORED:
            return
        print(f"error: {error}", file=sys.stderr, flush=True)
        if error.kind in FATAL_ERRORS:
            self.finish(1)

    @Slot(object)
    def _on_session(self, snapshot: CaptureSnapshot) -> None:
        if snapshot.current_char is None:
            return
        print(
            f"{snapshot.accumulated_text!r} ({snapshot.cursor}/{len(snapshot.target)})",
            flush=True,
        )

    @Slot(object)
    def _on_frame(self, frame: SensorFrame) -> None:
        print(_format_frame(frame), flush=True)

    @Slot(str)
    def _on_completed(self, text: str) -> None:
        print(f"captured: {text}", flush=True)
        self.finish(0)


def create_adapter(config: GloveConfig, *, simulate: bool) -> BleAdapter:
    if simulate:
        return SimulatedGloveAdapter(config, phrase=config.target_phrase)
    # Deferred so --simulate works on hosts without a usable bleak backend.
    from .ble.bleak_adapter import BleakAdapter

    return BleakAdapter()


def main(argv: list[str] | None = None) -> None:
    raw_argv = argv if argv is not None else sys.argv
    args = _build_arg_parser().parse_args(raw_argv[1:])
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_config(args.config)
    except (OSError, ValueError) as exc:
        print(f"error: could not load config: {exc}", file=sys.stderr)
        raise SystemExit(2)
    if args.phrase:
        config = dataclasses.replace(config, target_phrase=args.phrase).sanitized()

    app = QCoreApplication.instance() or QCoreApplication(raw_argv[:1])
    adapter = create_adapter(config, simulate=args.simulate)
    coordinator = ConnectionCoordinator(adapter, config)
    session = CaptureSession(coordinator, config)
    runner = CaptureRunner(app, coordinator, session, show_frames=args.show_frames)

    QTimer.singleShot(int(max(1.0, args.timeout) * 1000), lambda: runner.finish(1))
    QTimer.singleShot(0, runner.start)
    code = app.exec()
    adapter.shutdown()
    raise SystemExit(code)


if __name__ == "__main__":
    main()
