"""Configuration objects and protocol constants for the glove host.

:mod:`protocol` pins the GATT identifiers and limits baked into the glove
firmware, while :mod:`runtime` loads the optional YAML overrides into a typed
:class:`GloveConfig` that the coordinator, capture session and CLI share.
"""

from .runtime import GloveConfig, config_from_mapping, load_config

__all__ = ["GloveConfig", "config_from_mapping", "load_config"]
