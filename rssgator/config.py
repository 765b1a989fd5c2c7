"""Reading and writing the user's gator configuration file."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path

FILENAME = ".gatorconfig.json"


@dataclass
class Config:
    """Database location and the name of the logged-in user."""

    db_url: str = ""
    current_user_name: str = ""
    file_path: Path | None = field(default=None, repr=False, compare=False)

    def set_user(self, user_name: str) -> None:
        """Set the current user and write the configuration back to its file."""
        self.current_user_name = user_name
        if self.file_path is None:
            raise ValueError("configuration has no file to write to")
        payload = json.dumps(
            {"db_url": self.db_url, "current_user_name": self.current_user_name},
            indent="\t",
            ensure_ascii=False,
        )
        Path(self.file_path).write_text(payload, encoding="utf-8")


def _string_field(data: dict, key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"config field {key!r} must be a string")
    return value


def read(config_path: str | Path) -> Config:
    """Load a configuration from a JSON file."""
    path = Path(config_path)
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError("config file must hold a JSON object")
    return Config(
        db_url=_string_field(data, "db_url"),
        current_user_name=_string_field(data, "current_user_name"),
        file_path=path,
    )


def read_default_config() -> Config:
    """Load the configuration stored in the user's home directory."""
    return read(Path.home() / FILENAME)