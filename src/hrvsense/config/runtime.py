"""Runtime configuration for the session engine."""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import TYPE_CHECKING, Any, Mapping, MutableMapping

import yaml

if TYPE_CHECKING:
    from ..core.models import HRVWindow

_NESTED_BLOCKS = ("session", "hrv", "reconnect", "logging")


@dataclass(slots=True)
class HrvSenseConfig:
    """
    Tuning knobs for buffering, HRV and reconnection.

    The defaults assume ~1 Hz heart-rate notifications, so a history of 300
    samples covers roughly five minutes per channel.
    """

    history_capacity: int = 300
    hrv_min_samples: int = 5
    default_hrv_window: str = "5min"

    max_reconnect_attempts: int = 5
    reconnect_base_delay_s: float = 2.0
    stream_restart_delay_s: float = 1.0
    health_check_interval_s: float = 10.0

    message_display_s: float = 3.0
    log_level: str = "INFO"

    @property
    def hrv_window(self) -> "HRVWindow":
        from ..core.models import HRVWindow

        try:
            return HRVWindow.parse(self.default_hrv_window)
        except ValueError:
            return HRVWindow.FIVE_MINUTES

    def sanitized(self) -> HrvSenseConfig:
        """Return a copy with derived limits applied."""
        return HrvSenseConfig(
            history_capacity=max(1, int(self.history_capacity)),
            hrv_min_samples=max(1, int(self.hrv_min_samples)),
            default_hrv_window=self.hrv_window.label,
            max_reconnect_attempts=max(0, int(self.max_reconnect_attempts)),
            reconnect_base_delay_s=max(0.0, float(self.reconnect_base_delay_s)),
            stream_restart_delay_s=max(0.0, float(self.stream_restart_delay_s)),
            health_check_interval_s=max(0.1, float(self.health_check_interval_s)),
            message_display_s=max(0.0, float(self.message_display_s)),
            log_level=str(self.log_level or "INFO").upper(),
        )


def _recognized_fields() -> set[str]:
    """Return the dataclass field names accepted by :class:`HrvSenseConfig`."""
    return {f.name for f in fields(HrvSenseConfig)}


def _normalize_mapping(data: Mapping[str, Any]) -> MutableMapping[str, Any]:
    """Flatten the optional ``session:``/``hrv:``/``reconnect:``/``logging:`` blocks."""
    merged: MutableMapping[str, Any] = {}
    for key, value in data.items():
        if key in _NESTED_BLOCKS and isinstance(value, Mapping):
            merged.update(value)
        else:
            merged[key] = value
    return merged


def config_from_mapping(data: Mapping[str, Any] | None) -> HrvSenseConfig:
    """Build :class:`HrvSenseConfig` from ``data`` (ignoring unknown keys)."""
    if not data:
        return HrvSenseConfig()
    normalized = _normalize_mapping(data)
    known = _recognized_fields()
    payload = {key: normalized[key] for key in normalized.keys() & known}
    return HrvSenseConfig(**payload).sanitized()


def load_config(path: str | Path | None) -> HrvSenseConfig:
    """
    Load configuration from a YAML file at ``path``.

    Missing files fall back to default :class:`HrvSenseConfig`.
    """
    if path is None:
        return HrvSenseConfig()
    cfg_path = Path(path)
    if not cfg_path.exists():
        return HrvSenseConfig()
    with cfg_path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh) or {}
    if not isinstance(raw, Mapping):
        raise ValueError(f"Expected mapping in {cfg_path}, got {type(raw).__name__}")
    return config_from_mapping(raw)


def dump_config(cfg: HrvSenseConfig, path: str | Path) -> None:
    """Write ``cfg`` as nested YAML blocks."""
    data = {
        "session": {"history_capacity": cfg.history_capacity},
        "hrv": {
            "hrv_min_samples": cfg.hrv_min_samples,
            "default_hrv_window": cfg.default_hrv_window,
        },
        "reconnect": {
            "max_reconnect_attempts": cfg.max_reconnect_attempts,
            "reconnect_base_delay_s": cfg.reconnect_base_delay_s,
            "stream_restart_delay_s": cfg.stream_restart_delay_s,
            "health_check_interval_s": cfg.health_check_interval_s,
        },
        "message_display_s": cfg.message_display_s,
        "logging": {"log_level": cfg.log_level},
    }
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with out.open("w", encoding="utf-8") as fh:
        yaml.safe_dump(data, fh, default_flow_style=False, sort_keys=False)


__all__ = ["HrvSenseConfig", "config_from_mapping", "load_config", "dump_config"]
