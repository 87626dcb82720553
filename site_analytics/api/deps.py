import os
from functools import lru_cache
from pathlib import Path

from fastapi import Depends

from site_analytics.adapters.clock import SystemClock
from site_analytics.adapters.sqlite.repos import SQLiteEventStore, SQLitePageNameRegistry
from site_analytics.rules.loader import load_rules
from site_analytics.rules.models import Rules


# --- Settings ---
class Settings:
    def __init__(self) -> None:
        self.base_dir = Path(os.getcwd())
        self.data_dir = Path(os.environ.get("SITE_ANALYTICS_DATA_DIR", "./data"))
        self.db_path = str(self.data_dir / "analytics.db")
        self.rules_path = Path(
            os.environ.get("SITE_ANALYTICS_RULES", str(self.base_dir / "rules.yaml"))
        )
        self.migrations_dir = self.base_dir / "migrations"


@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Rules ---
@lru_cache
def get_rules(settings: Settings = Depends(get_settings)) -> Rules:
    return load_rules(settings.rules_path)


# --- Adapters ---
def get_event_store(
    settings: Settings = Depends(get_settings),
    rules: Rules = Depends(get_rules),
) -> SQLiteEventStore:
    return SQLiteEventStore(
        settings.db_path,
        atomic_delete_enabled=rules.retention.atomic_enabled,
    )


def get_page_registry(settings: Settings = Depends(get_settings)) -> SQLitePageNameRegistry:
    return SQLitePageNameRegistry(settings.db_path)


def get_clock() -> SystemClock:
    return SystemClock()
