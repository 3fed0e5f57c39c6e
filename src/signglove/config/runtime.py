"""Runtime configuration for the glove connection and capture session."""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping, MutableMapping

import yaml

from . import protocol


@dataclass(slots=True)
class GloveConfig:
    """
    Tuning knobs for discovery, capture, and the simulated glove.

    The defaults match the shipped glove firmware and a ~20 Hz display refresh.
    """

    device_name: str = protocol.DEVICE_NAME
    service_uuid: str = protocol.SERVICE_UUID
    characteristic_uuid: str = protocol.LETTER_CHAR_UUID
    descriptor_uuid: str = protocol.CCCD_UUID
    scan_timeout_s: float = protocol.SCAN_TIMEOUT_S

    target_phrase: str = protocol.TARGET_PHRASE
    refresh_hz: float = 20.0
    pulse_ms: int = 300
    flex_full_scale: int = protocol.FLEX_FULL_SCALE

    # Playback pace of SimulatedGloveAdapter
    sim_letter_interval_s: float = 0.8

    def sanitized(self) -> GloveConfig:
        """Return a copy with derived limits applied."""
        phrase = str(self.target_phrase or "").strip().upper() or protocol.TARGET_PHRASE
        return GloveConfig(
            device_name=str(self.device_name).strip() or protocol.DEVICE_NAME,
            service_uuid=protocol.normalize_uuid(self.service_uuid),
            characteristic_uuid=protocol.normalize_uuid(self.characteristic_uuid),
            descriptor_uuid=protocol.normalize_uuid(self.descriptor_uuid),
            scan_timeout_s=max(0.5, float(self.scan_timeout_s)),
            target_phrase=phrase,
            refresh_hz=max(20.0, min(50.0, float(self.refresh_hz))),
            pulse_ms=max(1, int(self.pulse_ms)),
            flex_full_scale=max(1, int(self.flex_full_scale)),
            sim_letter_interval_s=max(0.01, float(self.sim_letter_interval_s)),
        )

    @property
    def refresh_interval_ms(self) -> int:
        return max(1, int(round(1000.0 / self.refresh_hz)))

    @property
    def scan_timeout_ms(self) -> int:
        return int(round(self.scan_timeout_s * 1000.0))


def _recognized_fields() -> set[str]:
    """Return the dataclass field names accepted by :class:`GloveConfig`."""
    return {f.name for f in fields(GloveConfig)}


def _normalize_mapping(data: Mapping[str, Any]) -> MutableMapping[str, Any]:
    """Flatten a top-level ``glove`` block into the root mapping."""
    if "glove" in data and isinstance(data["glove"], Mapping):
        merged: MutableMapping[str, Any] = {}
        for key, value in data.items():
            if key == "glove":
                merged.update(value)
            else:
                merged[key] = value
        return merged
    return dict(data)


def config_from_mapping(data: Mapping[str, Any] | None) -> GloveConfig:
    """Build :class:`GloveConfig` from ``data`` (ignoring unknown keys)."""
    if not data:
        return GloveConfig().sanitized()
    normalized = _normalize_mapping(data)
    known = _recognized_fields()
    payload = {key: normalized[key] for key in normalized.keys() & known}
    return GloveConfig(**payload).sanitized()


def load_config(path: str | Path | None) -> GloveConfig:
    """
    Load configuration from ``path``.

    Missing files fall back to default :class:`GloveConfig`.
    """
    if path is None:
        return GloveConfig().sanitized()
    cfg_path = Path(path).expanduser()
    if not cfg_path.exists():
        return GloveConfig().sanitized()
    with cfg_path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh) or {}
    if not isinstance(raw, Mapping):
        raise ValueError(f"Expected mapping in {cfg_path}, got {type(raw).__name__}")
    return config_from_mapping(raw)


__all__ = ["GloveConfig", "config_from_mapping", "load_config"]
