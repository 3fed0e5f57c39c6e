"""Fixed GATT identifiers and limits shared with the glove firmware."""

from __future__ import annotations

# Nordic UART style service exposed by the glove
SERVICE_UUID = "6e400001-b5a3-f393-e0a9-e50e24dcca9e"
# Notify characteristic carrying one letter per notification
LETTER_CHAR_UUID = "6e400003-b5a3-f393-e0a9-e50e24dcca9e"
# Client Characteristic Configuration Descriptor
CCCD_UUID = "00002902-0000-1000-8000-00805f9b34fb"
ENABLE_NOTIFICATION_VALUE = b"\x01\x00"

DEVICE_NAME = "FakeGloveBLE"

SCAN_TIMEOUT_S = 10.0
FLEX_FULL_SCALE = 4095
FLEX_CHANNELS = 5
TARGET_PHRASE = "CHESTPAIN"


def normalize_uuid(value: str) -> str:
    """Return ``value`` in the lowercase dashed form used for comparisons."""
    return str(value).strip().lower()
