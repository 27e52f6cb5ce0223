"""Monitor configuration loaded from YAML."""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from pathlib import Path

import yaml

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "monitor.yaml"


@dataclass
class MonitorConfig:
    store_path: str = "~/.config/easypanel-monitor/store.yaml"
    request_timeout: float = 10.0
    store_watch_interval: float = 2.0
    host: str = "127.0.0.1"
    port: int = 9860
    log_level: str = "INFO"

    @property
    def store_file(self) -> Path:
        return Path(self.store_path).expanduser()


def load_config(path: Path | None) -> MonitorConfig:
    """Parse monitor.yaml; a missing file yields the defaults."""
    if path is None or not Path(path).exists():
        return MonitorConfig()
    with open(path) as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"{path}: expected a mapping at the top level")

    known = {f.name for f in fields(MonitorConfig)}
    unknown = set(raw) - known
    if unknown:
        print(f"Warning: ignoring unknown config keys {sorted(unknown)} in {path}")
    return MonitorConfig(**{k: v for k, v in raw.items() if k in known})


def configure_logging(level: str = "INFO", filename: str | None = None) -> None:
    logging.basicConfig(
        filename=filename,
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
