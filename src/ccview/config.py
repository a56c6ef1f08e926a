"""Configuration loader — reads optional YAML config and merges with defaults."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml

CONFIG_PATH = Path("~/.config/ccview/config.yaml")

DEFAULTS = {
    "claude_dir": "~/.claude",
    "port": 9090,
    "default_days": "7",
    "log_level": "WARNING",
}


@dataclass
class CcviewConfig:
    claude_dir: Path
    port: int
    default_days: str
    log_level: str

    @property
    def projects_dir(self) -> Path:
        return self.claude_dir / "projects"


def load_config(config_path: Path | None = None) -> CcviewConfig:
    """Load config from ~/.config/ccview/config.yaml, merged with defaults.

    Expand ~ in paths. If no config file exists, return defaults (don't error).
    """
    if config_path is None:
        config_path = CONFIG_PATH

    config_path = config_path.expanduser()

    merged = dict(DEFAULTS)

    if config_path.is_file():
        with open(config_path) as f:
            user_config = yaml.safe_load(f)
        if isinstance(user_config, dict):
            for key in DEFAULTS:
                if key in user_config:
                    merged[key] = user_config[key]

    return CcviewConfig(
        claude_dir=Path(merged["claude_dir"]).expanduser(),
        port=int(merged["port"]),
        default_days=str(merged["default_days"]),
        log_level=str(merged["log_level"]).upper(),
    )
