"""Configuration handling."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional
import yaml


@dataclass
class DisplayConfig:
    annotation_window_s: float = 0.1
    select_inserted_turn: bool = True


@dataclass
class Config:
    data_dir: str = "data"
    annotations_dir: str = "annotations"
    export_path: Optional[str] = None
    intents_path: Optional[str] = None
    slot_keys_path: Optional[str] = None
    log_dir: str = "logs"
    debug: bool = False
    display: DisplayConfig = field(default_factory=DisplayConfig)


def load_config(path: str) -> Config:
    with open(path, "r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    display = DisplayConfig(**data.get("display", {}))
    defaults = Config()

    return Config(
        data_dir=data.get("data_dir", defaults.data_dir),
        annotations_dir=data.get("annotations_dir", defaults.annotations_dir),
        export_path=data.get("export_path") or None,
        intents_path=data.get("intents_path"),
        slot_keys_path=data.get("slot_keys_path"),
        log_dir=data.get("log_dir", defaults.log_dir),
        debug=bool(data.get("debug", False)),
        display=display,
    )


def save_config(path: str, config: Config) -> None:
    data = {
        "data_dir": config.data_dir,
        "annotations_dir": config.annotations_dir,
        "export_path": config.export_path,
        "intents_path": config.intents_path,
        "slot_keys_path": config.slot_keys_path,
        "log_dir": config.log_dir,
        "debug": config.debug,
        "display": {
            "annotation_window_s": config.display.annotation_window_s,
            "select_inserted_turn": config.display.select_inserted_turn,
        },
    }
    with open(path, "w", encoding="utf-8") as handle:
        yaml.safe_dump(data, handle, sort_keys=False)
