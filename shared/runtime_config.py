import json
import logging
import os
from pathlib import Path
from threading import Lock
from typing import Any, Dict


logger = logging.getLogger(__name__)


def config_debug_enabled() -> bool:
    return os.getenv("AUTH_CONFIG_DEBUG", "").lower() == "true"


def env_int(name: str) -> int | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw.strip())
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r", name, raw)
        return None


def env_bool(name: str) -> bool | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class JsonFileConfig:
    def __init__(self, path: str, *, debug_label: str) -> None:
        self._debug_label = debug_label
        self._path = Path(path)
        self._lock = Lock()
        self._data = self._load_from_disk()
        self._last_mtime = self._get_mtime()
        if config_debug_enabled():
            message = self._debug_message()
            if message:
                logger.info("[%s] path=%s %s", self._debug_label, self._path, message)
            else:
                logger.info("[%s] path=%s", self._debug_label, self._path)

    def _debug_message(self) -> str:
        return ""

    def _load_from_disk(self) -> Dict[str, Any]:
        data = self._default_data()
        if not self._path.exists():
            return data
        try:
            loaded = json.loads(self._path.read_text(encoding="utf-8"))
        except Exception as exc:
            logger.warning("[%s] failed to parse %s: %s", self._debug_label, self._path, exc)
            return data
        if not isinstance(loaded, dict):
            logger.warning("[%s] expected a JSON object in %s", self._debug_label, self._path)
            return data
        data.update(loaded)
        return data

    def _default_data(self) -> Dict[str, Any]:
        return {}

    def _get_mtime(self) -> float | None:
        try:
            return self._path.stat().st_mtime
        except FileNotFoundError:
            return None

    def _refresh_if_changed(self) -> None:
        current = self._get_mtime()
        if current is None or current == self._last_mtime:
            return
        with self._lock:
            self._data = self._load_from_disk()
            self._last_mtime = current
        if config_debug_enabled():
            message = self._debug_message()
            if message:
                logger.info("[%s] reloaded %s", self._debug_label, message)
            else:
                logger.info("[%s] reloaded", self._debug_label)
