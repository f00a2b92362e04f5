"""
Workbench configuration

Settings live in a JSON file (default: ~/.filequery_config). Unknown keys
are ignored and a malformed file falls back to defaults with a warning,
so a bad config never stops the workbench from starting.
"""

import json
import warnings
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Optional, Union

from filequery.core.engine import DEFAULT_BATCH_SIZE
from filequery.core.results import DEFAULT_CHUNK_SIZE, DEFAULT_PREVIEW_LIMIT

DEFAULT_CONFIG_FILE = Path.home() / ".filequery_config"


@dataclass
class WorkbenchConfig:
    preview_limit: int = DEFAULT_PREVIEW_LIMIT
    csv_chunk_size: int = DEFAULT_CHUNK_SIZE
    csv_header: bool = True
    batch_size: int = DEFAULT_BATCH_SIZE
    confirm_exit: bool = False
    max_history: int = 100
    editor_theme: str = "dracula"
    results_zebra: bool = True

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "WorkbenchConfig":
        config = cls()
        for f in fields(cls):
            if f.name not in data:
                continue
            default = getattr(config, f.name)
            value = data[f.name]
            # bool first: bool is a subclass of int
            if isinstance(default, bool):
                value = bool(value)
            elif isinstance(default, int):
                value = int(value)
            else:
                value = str(value)
            setattr(config, f.name, value)
        return config


def load_config(path: Optional[Union[str, Path]] = None) -> WorkbenchConfig:
    """Load settings, falling back to defaults when missing or unreadable"""
    config_path = Path(path) if path else DEFAULT_CONFIG_FILE
    if not config_path.exists():
        return WorkbenchConfig()
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError("config root must be an object")
        return WorkbenchConfig.from_dict(data)
    except (ValueError, TypeError) as e:
        warnings.warn(f"Ignoring invalid config {config_path}: {e}", UserWarning)
        return WorkbenchConfig()


def save_config(config: WorkbenchConfig, path: Optional[Union[str, Path]] = None) -> Path:
    config_path = Path(path) if path else DEFAULT_CONFIG_FILE
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(json.dumps(config.to_dict(), indent=2), encoding="utf-8")
    return config_path
