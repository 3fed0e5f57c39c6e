"""Developer tooling: opt-in timing toggled by ``SIGNGLOVE_DEBUG``."""

from .debug import flag_from_env, time_block

__all__ = ["flag_from_env", "time_block"]
