"""Conversion of device sensor payloads into :class:`SensorFrame` objects."""

from __future__ import annotations

import math
from typing import Any, Mapping, Sequence

from ..config import protocol
from .models import SensorFrame


def _as_vector3(values: Any) -> tuple[float, float, float] | None:
    if not isinstance(values, Sequence) or isinstance(values, (str, bytes)):
        return None
    if len(values) < 3:
        return None
    try:
        vec = (float(values[0]), float(values[1]), float(values[2]))
    except (TypeError, ValueError):
        return None
    if not all(math.isfinite(v) for v in vec):
        return None
    return vec


def _as_flex(values: Any, full_scale: int) -> tuple[float, ...] | None:
    if not isinstance(values, Sequence) or isinstance(values, (str, bytes)):
        return None
    if len(values) < protocol.FLEX_CHANNELS:
        return None
    try:
        raw = [float(v) for v in values[: protocol.FLEX_CHANNELS]]
    except (TypeError, ValueError):
        return None
    scale = float(max(1, full_scale))
    return tuple(min(1.0, max(0.0, v / scale)) for v in raw)


def frame_from_payload(
    payload: Mapping[str, Any],
    previous: SensorFrame,
    *,
    full_scale: int = protocol.FLEX_FULL_SCALE,
) -> SensorFrame | None:
    """
    Build a device-sourced frame from ``payload``.

    Raw flex readings are rescaled from ``0..full_scale`` to ``[0, 1]``;
    accel/gyro are passed through. Any vector that is missing or malformed
    keeps its value from ``previous``. Returns ``None`` when no vector in
    ``payload`` is usable.
    """
    flex = _as_flex(payload.get("flex"), full_scale)
    accel = _as_vector3(payload.get("accel"))
    gyro = _as_vector3(payload.get("gyro"))
    if flex is None and accel is None and gyro is None:
        return None
    return SensorFrame(
        flex=flex if flex is not None else previous.flex,
        accel=accel if accel is not None else previous.accel,
        gyro=gyro if gyro is not None else previous.gyro,
        source="device",
    )
