import os
from datetime import timedelta
from typing import Any, Dict

from shared.runtime_config import JsonFileConfig, env_bool, env_int


DEFAULT_AUTH_CONFIG_PATH = os.getenv(
    "AUTH_CONFIG_PATH",
    "config/auth_runtime.json",
)


class AuthRuntimeConfig(JsonFileConfig):
    def __init__(self, path: str = DEFAULT_AUTH_CONFIG_PATH) -> None:
        super().__init__(path, debug_label="auth_config")

    def _debug_message(self) -> str:
        return (
            f"challenge_ttl={self.challenge_ttl()} "
            f"resend_cooldown={self.resend_cooldown()} "
            f"session_ttl={self.session_ttl()} "
            f"strict_refresh={self.strict_refresh_tokens()} "
            f"revoke_on_reset={self.revoke_sessions_on_reset()} "
            f"gateway={self.delivery_gateway_url()!r}"
        )

    def challenge_ttl(self) -> timedelta:
        return timedelta(seconds=self._int_setting("challenge_ttl_seconds"))

    def resend_cooldown(self) -> timedelta:
        return timedelta(seconds=self._int_setting("resend_cooldown_seconds"))

    def session_ttl(self) -> timedelta:
        return timedelta(seconds=self._int_setting("session_ttl_seconds"))

    def min_password_length(self) -> int:
        return self._int_setting("min_password_length")

    def strict_refresh_tokens(self) -> bool:
        return self._bool_setting("strict_refresh_tokens")

    def revoke_sessions_on_reset(self) -> bool:
        return self._bool_setting("revoke_sessions_on_reset")

    def delivery_gateway_url(self) -> str:
        override = os.getenv("AUTH_DELIVERY_GATEWAY_URL")
        if override:
            return override
        self._refresh_if_changed()
        return str(self._data.get("delivery_gateway_url") or "")

    def _int_setting(self, key: str) -> int:
        override = env_int(f"AUTH_{key.upper()}")
        if override is not None:
            return override
        self._refresh_if_changed()
        default = self._default_data()[key]
        try:
            value = int(self._data.get(key, default))
        except (TypeError, ValueError):
            return default
        return value if value >= 0 else default

    def _bool_setting(self, key: str) -> bool:
        override = env_bool(f"AUTH_{key.upper()}")
        if override is not None:
            return override
        self._refresh_if_changed()
        return bool(self._data.get(key, self._default_data()[key]))

    def _default_data(self) -> Dict[str, Any]:
        return {
            "challenge_ttl_seconds": 600,
            "resend_cooldown_seconds": 60,
            "session_ttl_seconds": 3600,
            "min_password_length": 8,
            "strict_refresh_tokens": False,
            "revoke_sessions_on_reset": False,
            "delivery_gateway_url": "",
        }


runtime_config = AuthRuntimeConfig()
