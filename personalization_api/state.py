"""Application state: server config and the personalization core."""

import logging
from typing import Optional

from personalization import PersonalizationCore

from .config import ServerConfig, get_config


class AppState:
    """Global application state."""

    def __init__(self, config: ServerConfig):
        self.config = config
        logging.getLogger().setLevel(config.log_level)

        ok, errors = config.validate()
        for error in errors:
            print(f"[startup] WARNING: {error}")
        core_config = config.load_personalization_config() if ok else None
        if config.personalization_config_path and ok:
            print(f"[startup] Personalization config: {config.personalization_config_path}")

        self.core = PersonalizationCore(config=core_config)
        print(f"[startup] Stores: {type(self.core.profile_store).__name__}, "
              f"{type(self.core.experiment_store).__name__}")

    @property
    def profiles(self):
        return self.core.profiles

    @property
    def recommendations(self):
        return self.core.recommendations

    @property
    def experiments(self):
        return self.core.experiments


_state: Optional[AppState] = None


def get_state() -> AppState:
    global _state
    if _state is None:
        _state = AppState(get_config())
    return _state


def reset_state() -> None:
    """Drop the process-wide state; the next get_state() builds a fresh core."""
    global _state
    _state = None
