"""Client sync preferences stored as JSON next to the local database."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, fields
from pathlib import Path

logger = logging.getLogger(__name__)

CONFIG_FILE = ".lifecast-sync.json"
MIN_SYNC_INTERVAL_MINUTES = 1


@dataclass
class SyncPreferences:
    server_url: str | None = None
    client_token: str | None = None
    server_password: str | None = None
    auto_sync_enabled: bool = False
    sync_on_wifi_only: bool = True
    sync_interval_minutes: int = 30

    @property
    def is_configured(self) -> bool:
        """True once server URL and both credentials are present."""
        return bool(self.server_url and self.client_token and self.server_password)

    @property
    def sync_interval_seconds(self) -> float:
        return float(max(self.sync_interval_minutes, MIN_SYNC_INTERVAL_MINUTES) * 60)


def load_preferences(dir_path: Path) -> SyncPreferences:
    """Load preferences; a missing file yields the defaults, unknown keys are ignored."""
    config_path = dir_path / CONFIG_FILE
    if not config_path.exists():
        return SyncPreferences()
    data = json.loads(config_path.read_text(encoding="utf-8"))
    known = {f.name for f in fields(SyncPreferences)}
    ignored = sorted(set(data) - known)
    if ignored:
        logger.warning("Ignoring unknown preference keys in %s: %s", config_path, ignored)
    return SyncPreferences(**{k: v for k, v in data.items() if k in known})


def save_preferences(dir_path: Path, preferences: SyncPreferences) -> Path:
    config_path = dir_path / CONFIG_FILE
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(json.dumps(asdict(preferences), indent=2), encoding="utf-8")
    return config_path
