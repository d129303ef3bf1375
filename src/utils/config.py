# runtime settings, read from the environment at process start
import os
from dataclasses import dataclass, replace
from typing import Optional


@dataclass(frozen=True)
class Settings:
    db_path: str = "data/pizza.sqlite"
    seed: bool = True
    log_file: Optional[str] = None
    debug: bool = False


def _flag(value: Optional[str], default: bool) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_settings(db_path: Optional[str] = None) -> Settings:
    """
    Build Settings from PIZZA_* environment variables.
    An explicit db_path (e.g. from the command line) wins over the environment.
    """
    settings = Settings(
        db_path=os.getenv("PIZZA_DB_PATH", Settings.db_path),
        seed=_flag(os.getenv("PIZZA_SEED"), True),
        log_file=os.getenv("PIZZA_LOG_FILE") or None,
        debug=_flag(os.getenv("DEBUG"), False),
    )
    if db_path:
        settings = replace(settings, db_path=db_path)
    return settings
