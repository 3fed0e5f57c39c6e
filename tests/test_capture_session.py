from __future__ import annotations

from typing import List

import pytest

from signglove.ble.coordinator import ConnectionCoordinator
from signglove.ble.simulated import LETTER_FLEX, SimulatedGloveAdapter, encode_letter
from signglove.config.runtime import GloveConfig
from signglove.core.capture_session import CaptureSession
from signglove.core.models import CaptureSnapshot, ConnectionState, SensorFrame


class SessionProbe:
    def __init__(self, session: CaptureSession) -> None:
        self.snapshots: List[CaptureSnapshot] = []
        self.frames: List[SensorFrame] = []
        self.pulses: List[bool] = []
        self.completed: List[str] = []
        session.session_changed.connect(self.snapshots.append)
        session.frame_changed.connect(self.frames.append)
        session.pulse_changed.connect(self.pulses.append)
        session.capture_completed.connect(self.completed.append)


def _build(phrase: str = "HI", *, connect: bool = True, **adapter_kwargs):
    config = GloveConfig(target_phrase=phrase)
    adapter = SimulatedGloveAdapter(config, **adapter_kwargs)
    coordinator = ConnectionCoordinator(adapter, config)
    session = CaptureSession(coordinator)
    probe = SessionProbe(session)
    if connect:
        coordinator.start_scan()
        assert coordinator.is_subscribed()
    return adapter, coordinator, session, probe


def test_new_session_is_inactive() -> None:
    _, _, session, probe = _build()
    assert not session.is_active
    assert session.accumulated_text == ""
    assert session.cursor == 0
    assert session.current_char is None
    assert session.frame.source == "idle"
    assert probe.snapshots == []


def test_start_while_disconnected_is_noop() -> None:
    _, coordinator, session, probe = _build(connect=False)
    assert coordinator.state is ConnectionState.DISCONNECTED

    session.start()

    assert not session.is_active
    assert session.accumulated_text == ""
    assert not session._refresh_timer.isActive()
    assert probe.snapshots == []


def test_start_while_scanning_is_noop() -> None:
    _, coordinator, session, _ = _build(connect=False, advertising=False)
    coordinator.start_scan()

    session.start()

    assert not session.is_active


def test_start_resets_state_and_starts_refresh_loop() -> None:
    _, _, session, probe = _build()

    session.start()

    assert session.is_active
    assert session._refresh_timer.isActive()
    assert session._refresh_timer.interval() == 50
    assert probe.snapshots[-1] == CaptureSnapshot(is_active=True, target="HI", cursor=0, accumulated_text="")


def test_hi_scenario_completes_after_two_letters() -> None:
    adapter, _, session, probe = _build("HI")
    session.start()

    adapter.push_letters("H")
    assert session.is_active
    assert session.accumulated_text == "H"
    assert session.current_char == "H"
    assert session.cursor == 1

    adapter.push_letters("I")

    assert session.accumulated_text == "HI"
    assert not session.is_active
    assert session.cursor == len(session.target)
    assert not session._refresh_timer.isActive()
    assert probe.completed == ["HI"]
    assert probe.snapshots[-1].is_complete


def test_n_letters_complete_a_target_of_length_n() -> None:
    phrase = "CHESTPAIN"
    adapter, _, session, probe = _build(phrase)
    session.start()
    received = "chestpa'n"

    for i, letter in enumerate(received):
        assert session.is_active
        adapter.push_notification(encode_letter(letter, index=i))

    assert not session.is_active
    assert session.accumulated_text == received
    assert len(session.accumulated_text) == len(phrase)
    assert probe.completed == [received]


def test_letters_after_completion_are_ignored() -> None:
    adapter, _, session, _ = _build("HI")
    session.start()
    adapter.push_letters("HIX")

    assert session.accumulated_text == "HI"
    assert session.cursor == 2


def test_non_letter_bytes_leave_text_unchanged() -> None:
    adapter, _, session, _ = _build("HELLO")
    session.start()
    adapter.push_letters("H")

    adapter.push_notification(b"3")
    adapter.push_notification(b"\xff")
    adapter.push_notification(b"")
    session.on_letter_received("?", None)
    session.on_letter_received("AB", None)

    assert session.accumulated_text == "H"
    assert session.cursor == 1


def test_space_and_apostrophe_are_captured() -> None:
    adapter, _, session, _ = _build("I'M OK")
    session.start()

    adapter.push_letters("I' ")

    assert session.accumulated_text == "I' "
    assert session.current_char == " "


def test_letters_before_start_are_ignored() -> None:
    adapter, _, session, _ = _build("HI")

    adapter.push_letters("H")

    assert session.accumulated_text == ""
    assert session.current_char is None


def test_restart_resets_text() -> None:
    adapter, _, session, _ = _build("HELLO")
    session.start()
    adapter.push_letters("HE")
    session.stop()

    session.start()

    assert session.is_active
    assert session.accumulated_text == ""
    assert session.cursor == 0
    assert session.current_char is None


def test_stop_is_idempotent() -> None:
    _, _, session, probe = _build()
    session.start()

    session.stop()
    session.stop()

    assert not session.is_active
    assert not session._refresh_timer.isActive()
    assert [s.is_active for s in probe.snapshots] == [True, False]


def test_toggle_starts_and_stops() -> None:
    _, _, session, _ = _build()
    session.toggle()
    assert session.is_active
    session.toggle()
    assert not session.is_active


@pytest.mark.parametrize("failed", [False, True])
def test_link_down_cascades_stop_and_silences_frames(failed: bool) -> None:
    adapter, _, session, probe = _build("HELLO")
    session.start()
    session.refresh(0.1)
    assert probe.frames

    adapter.drop_link(failed=failed)

    assert not session.is_active
    assert not session._refresh_timer.isActive()
    frames_before = len(probe.frames)
    session.refresh(0.2)
    session._on_refresh_timeout()
    assert len(probe.frames) == frames_before


def test_explicit_disconnect_cascades_stop() -> None:
    _, coordinator, session, _ = _build("HELLO")
    session.start()

    coordinator.disconnect_device()

    assert not session.is_active


def test_refresh_synthesizes_until_a_letter_arrives() -> None:
    _, _, session, probe = _build("HELLO")
    session.start()

    session.refresh(0.05)
    session.refresh(0.10)

    assert len(probe.frames) == 2
    assert all(f.source == "synthetic" for f in probe.frames)
    assert probe.frames[0] != probe.frames[1]


def test_refresh_is_noop_when_inactive() -> None:
    _, _, session, probe = _build()
    session.refresh(1.0)
    assert probe.frames == []


def test_device_frame_is_not_overwritten_by_synthetic_data() -> None:
    adapter, _, session, probe = _build("HELLO")
    session.start()
    session.refresh(0.05)

    adapter.push_notification(encode_letter("H"))
    device_frame = session.frame
    assert device_frame.source == "device"
    assert device_frame.flex == pytest.approx(LETTER_FLEX["H"], abs=1e-3)
    assert device_frame.accel[2] == pytest.approx(9.8)

    frames_before = len(probe.frames)
    for step in range(20):
        session.refresh(0.1 + step * 0.05)

    assert session.frame is device_frame
    assert len(probe.frames) == frames_before


def test_plain_letter_after_device_frame_resumes_jitter() -> None:
    adapter, _, session, _ = _build("HELLO")
    session.start()
    adapter.push_notification(encode_letter("H"))
    device_frame = session.frame

    adapter.push_letters("E")
    session.refresh(0.5)

    frame = session.frame
    assert frame.source == "synthetic"
    assert frame.accel == device_frame.accel
    for before, after in zip(device_frame.flex, frame.flex):
        assert abs(after - before) <= 0.01 + 1e-9


def test_pulse_rises_on_letter_and_falls_on_timeout() -> None:
    adapter, _, session, probe = _build("HELLO")
    session.start()

    adapter.push_letters("H")

    assert session.pulse
    assert session._pulse_timer.isActive()
    assert session._pulse_timer.interval() == 300

    session._on_pulse_timeout()

    assert not session.pulse
    assert probe.pulses == [True, False]


def test_stop_clears_pulse() -> None:
    adapter, _, session, _ = _build("HELLO")
    session.start()
    adapter.push_letters("H")

    session.stop()

    assert not session.pulse
    assert not session._pulse_timer.isActive()


def test_unusable_sensor_payload_keeps_synthetic_frame_moving() -> None:
    adapter, _, session, _ = _build("HELLO")
    session.start()
    session.refresh(0.05)
    synthetic = session.frame

    adapter.push_notification(b'{"letter": "H", "flex": "garbage"}')

    assert session.accumulated_text == "H"
    assert session.frame is synthetic

    session.refresh(0.1)

    assert session.frame.source == "synthetic"
    assert session.frame is not synthetic


def test_completing_letter_does_not_raise_the_pulse() -> None:
    adapter, _, session, probe = _build("HI")
    session.start()

    adapter.push_letters("H")
    session._on_pulse_timeout()
    adapter.push_letters("I")

    assert probe.completed == ["HI"]
    assert probe.pulses == [True, False]
    assert not session.pulse
    assert not session._pulse_timer.isActive()
