"""Host-side companion for the SignGlove sign-language glove.

The :mod:`signglove.ble` package discovers the glove and turns its
notifications into letters, :mod:`signglove.core` runs capture sessions on top
of them, and :mod:`signglove.cli` wires both into a console runner.
"""

__version__ = "0.1.0"
