from __future__ import annotations

from PySide6.QtCore import QCoreApplication

from signglove.ble.coordinator import ConnectionCoordinator
from signglove.ble.simulated import SimulatedGloveAdapter
from signglove.cli import CaptureRunner, _build_arg_parser, _format_frame, create_adapter
from signglove.config.runtime import GloveConfig
from signglove.core.capture_session import CaptureSession
from signglove.core.models import SensorFrame


def _runner(config: GloveConfig, **adapter_kwargs):
    adapter = SimulatedGloveAdapter(config, phrase=config.target_phrase, **adapter_kwargs)
    coordinator = ConnectionCoordinator(adapter, config)
    session = CaptureSession(coordinator, config)
    runner = CaptureRunner(QCoreApplication.instance(), coordinator, session)
    return adapter, coordinator, session, runner


def test_arg_parser_defaults() -> None:
    args = _build_arg_parser().parse_args([])
    assert args.simulate is False
    assert args.config is None
    assert args.timeout == 120.0
    assert args.log_level == "INFO"


def test_format_frame_mentions_source() -> None:
    text = _format_frame(SensorFrame())
    assert text.startswith("[idle")
    assert "flex 0.50 0.50 0.50 0.50 0.50" in text


def test_create_adapter_simulated() -> None:
    adapter = create_adapter(GloveConfig(), simulate=True)
    assert isinstance(adapter, SimulatedGloveAdapter)


def test_runner_captures_simulated_phrase(capsys) -> None:
    config = GloveConfig(target_phrase="HI").sanitized()
    adapter, coordinator, session, runner = _runner(config)

    runner.start()
    assert session.is_active

    while adapter.play_next():
        pass

    assert runner.exit_code == 0
    assert session.accumulated_text == "HI"
    assert not coordinator.is_connected()
    out = capsys.readouterr().out
    assert "captured: HI" in out


def test_runner_fails_when_adapter_disabled(capsys) -> None:
    config = GloveConfig().sanitized()
    _, _, session, runner = _runner(config, enabled=False)

    runner.start()

    assert runner.exit_code == 1
    assert not session.is_active
    assert "adapter_unavailable" in capsys.readouterr().err
