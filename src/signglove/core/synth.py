"""Synthetic sensor frames that keep the display alive before real data arrives.

Both helpers are pure: callers pass the elapsed time and an explicit seed, so
the same inputs always give the same frame.
"""

from __future__ import annotations

import numpy as np

from ..config import protocol
from .models import SensorFrame

FLEX_MIN = 0.1
FLEX_MAX = 0.9


def _unit_noise(rng: np.random.Generator, size: int) -> np.ndarray:
    # Uniform in [-0.5, 0.5)
    return rng.random(size) - 0.5


def synthesize(elapsed_s: float, seed: int) -> SensorFrame:
    """Return a smoothly oscillating frame with a little pseudo-random jitter."""
    t = float(elapsed_s)
    rng = np.random.default_rng(seed)

    idx = np.arange(protocol.FLEX_CHANNELS, dtype=np.float64)
    flex = 0.5 + 0.4 * np.sin((t + idx * 0.5) * 0.8)
    flex = np.clip(flex + _unit_noise(rng, protocol.FLEX_CHANNELS) * 0.05, FLEX_MIN, FLEX_MAX)

    gyro = np.array(
        [
            4.0 * np.sin(t * 0.3),
            3.0 * np.sin(t * 0.2 + 1.0),
            2.0 * np.sin(t * 0.1 + 2.0),
        ]
    ) + _unit_noise(rng, 3) * 1.0

    accel = np.array(
        [
            0.2 + np.sin(t * 0.5) * 0.3,
            0.1 + np.sin(t * 0.4) * 0.2,
            9.8 + np.sin(t * 0.3) * 0.1,
        ]
    ) + _unit_noise(rng, 3) * np.array([0.2, 0.2, 0.1])

    return SensorFrame(
        flex=tuple(float(v) for v in flex),
        accel=tuple(float(v) for v in accel),
        gyro=tuple(float(v) for v in gyro),
        source="synthetic",
    )


def jitter(frame: SensorFrame, seed: int, *, amplitude: float = 0.02) -> SensorFrame:
    """Return ``frame`` with small flex noise added; accel/gyro are unchanged."""
    rng = np.random.default_rng(seed)
    flex = np.asarray(frame.flex, dtype=np.float64)
    flex = np.clip(flex + _unit_noise(rng, flex.size) * amplitude, FLEX_MIN, FLEX_MAX)
    return SensorFrame(
        flex=tuple(float(v) for v in flex),
        accel=frame.accel,
        gyro=frame.gyro,
        source="synthetic",
    )
