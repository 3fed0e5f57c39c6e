"""
Decoding of letter notifications from the glove.

Each notification is a complete, self-contained unit in one of two forms:

  - plain text  : the first character is the detected letter (``b"H"``)
  - JSON object : ``{"letter": "H", "flex": [..5 raw ints..],
                   "accel": [ax, ay, az], "gyro": [gx, gy, gz]}``

Only alphabetic characters, space and apostrophe are accepted as letters.
Anything else decodes to ``None`` so callers can drop it without raising.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from ..core.models import is_capture_symbol
from ..tools.debug import time_block

logger = logging.getLogger(__name__)

SensorPayload = Mapping[str, Any]


@dataclass(frozen=True)
class LetterNotification:
    letter: str
    sensor_payload: Optional[SensorPayload] = None


def _parse_json_payload(text: str) -> LetterNotification | None:
    try:
        obj = json.loads(text)
    except json.JSONDecodeError as exc:
        logger.debug("Bad JSON notification %r (%s)", text, exc)
        return None
    if not isinstance(obj, dict):
        logger.debug("JSON notification is not an object: %r", obj)
        return None

    letter = obj.get("letter")
    if not isinstance(letter, str) or not letter:
        logger.debug("Missing field %s in notification: %r", "letter", obj)
        return None
    if len(letter) > 1:
        logger.debug("Multi-character letter %r truncated to %r", letter, letter[0])
    letter = letter[0]
    if not is_capture_symbol(letter):
        return None

    sensors = {key: obj[key] for key in ("flex", "accel", "gyro") if key in obj}
    return LetterNotification(letter=letter, sensor_payload=sensors or None)


def decode_notification(payload: bytes | bytearray | None) -> LetterNotification | None:
    """
    Decode one raw notification into a :class:`LetterNotification`.

    Empty payloads, malformed JSON and non-letter symbols return ``None``.
    """
    if not payload:
        return None

    with time_block("decode_notification", logger):
        text = bytes(payload).decode("utf-8", errors="replace")
        stripped = text.strip()
        if stripped.startswith("{"):
            return _parse_json_payload(stripped)

        # Plain form: a bare space is a legitimate symbol, so don't strip it away.
        letter = text[0] if text else ""
        if not is_capture_symbol(letter):
            return None
        return LetterNotification(letter=letter)
