"""Configuration objects and helpers for hrvsense.

A single YAML file (optionally split into ``session``, ``hrv``,
``reconnect`` and ``logging`` blocks) is loaded into the typed
:class:`HrvSenseConfig` dataclass, which the coordinator, sensor sessions
and the simulator CLI all read their limits from.
"""

from .runtime import HrvSenseConfig, config_from_mapping, dump_config, load_config

__all__ = ["HrvSenseConfig", "config_from_mapping", "dump_config", "load_config"]
