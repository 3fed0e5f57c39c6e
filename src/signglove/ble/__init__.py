"""BLE connection layer for the glove.

:class:`ConnectionCoordinator` runs the scan/connect/discover/subscribe
pipeline against a :class:`BleAdapter`. :class:`SimulatedGloveAdapter` is an
in-process peripheral; the bleak backend lives in :mod:`bleak_adapter` and is
imported lazily so the rest of the package works without a radio stack.
"""

from .adapter import BleAdapter, ServiceTable
from .coordinator import ConnectionCoordinator
from .decoding import LetterNotification, decode_notification
from .simulated import SimulatedGloveAdapter, encode_letter, glove_gatt_table

__all__ = [
    "BleAdapter",
    "ServiceTable",
    "ConnectionCoordinator",
    "LetterNotification",
    "decode_notification",
    "SimulatedGloveAdapter",
    "encode_letter",
    "glove_gatt_table",
]
