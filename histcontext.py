"""
histcontext.py - Where histctl keeps its state and how it is configured.

The profile directory defaults to `~/.config/histctl` and can be moved with
`--profile` or the `HISTCTL_HOME` environment variable. It holds
`settings.json` and the history bank files.

Settings are read from `settings.json`; any key can be overridden with an
environment variable, e.g. `history.save` with `HISTCTL_HISTORY_SAVE=0`.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

from histstore import Bank, FileHistoryStore

VERSION = "0.1.0"

SETTINGS_FILE = "settings.json"
MASTER_FILE = "history"

FALSY = {"", "0", "false", "no", "off"}
DUPE_MODES = ("add", "erase_prev")


def default_home() -> Path:
    raw = os.environ.get("HISTCTL_HOME")
    if raw:
        return Path(raw).expanduser()
    return Path.home() / ".config" / "histctl"


@dataclass(frozen=True)
class AppContext:
    state_dir: Path
    session_id: int

    @classmethod
    def from_env(cls, profile: str | None = None, session: int | None = None) -> AppContext:
        state_dir = Path(profile.strip()).expanduser() if profile else default_home()
        if session is None:
            raw = os.environ.get("HISTCTL_SESSION", "").strip()
            session = int(raw) if raw.isdigit() else os.getppid()
        return cls(state_dir=state_dir, session_id=session)

    @property
    def settings_path(self) -> Path:
        return self.state_dir / SETTINGS_FILE

    def bank_path(self, bank: Bank) -> Path:
        if bank == Bank.MASTER:
            return self.state_dir / MASTER_FILE
        return self.state_dir / f"{MASTER_FILE}_{self.session_id}"


# ============================================================================
# SETTINGS
# ============================================================================


@dataclass(frozen=True)
class Settings:
    save_history: bool = True
    max_lines: int = 0
    dupe_mode: str = "add"


def _load_json(path: Path) -> dict:
    if not path.exists():
        return {}
    try:
        payload = json.loads(path.read_text())
    except (json.JSONDecodeError, UnicodeDecodeError):
        return {}
    if isinstance(payload, dict):
        return payload
    return {}


def _setting(payload: dict, key: str) -> object | None:
    # Environment variables override settings.json.
    env_key = "HISTCTL_" + key.replace(".", "_").upper()
    env_val = os.environ.get(env_key)
    if env_val is not None and env_val.strip() != "":
        return env_val
    return payload.get(key)


def _as_bool(raw: object, default: bool) -> bool:
    if raw is None:
        return default
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, int):
        return raw != 0
    if isinstance(raw, str):
        return raw.strip().lower() not in FALSY
    return default


def _as_int(raw: object, default: int) -> int:
    if isinstance(raw, bool):
        return default
    if isinstance(raw, int):
        return max(0, raw)
    if isinstance(raw, str) and raw.strip().isdigit():
        return int(raw.strip())
    return default


def load_settings(path: Path) -> Settings:
    """→ Loads settings from `path`, falling back to defaults for anything missing or invalid"""
    payload = _load_json(path)
    defaults = Settings()

    dupe_mode = _setting(payload, "history.dupe_mode")
    if not isinstance(dupe_mode, str) or dupe_mode.strip().lower() not in DUPE_MODES:
        dupe_mode = defaults.dupe_mode

    return Settings(
        save_history=_as_bool(_setting(payload, "history.save"), defaults.save_history),
        max_lines=_as_int(_setting(payload, "history.max_lines"), defaults.max_lines),
        dupe_mode=dupe_mode.strip().lower(),
    )


def open_file_store(context: AppContext, settings: Settings) -> FileHistoryStore:
    master = context.bank_path(Bank.MASTER) if settings.save_history else None
    return FileHistoryStore(
        master_path=master,
        session_path=context.bank_path(Bank.SESSION),
        max_lines=settings.max_lines,
        erase_prev_dupes=settings.dupe_mode == "erase_prev",
    )
