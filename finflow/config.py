import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

from finflow.periods import Period, parse_period

DEFAULT_DATA_DIR = ".finflow"
THEMES = ("light", "dark")


@dataclass(frozen=True)
class Settings:
    data_dir: str = DEFAULT_DATA_DIR
    log_level: str = "INFO"
    default_period: Period = 30
    months_back: int = 6
    theme: str = "light"


def load_settings() -> Settings:
    """Read settings from the environment, after loading a .env file if present."""
    load_dotenv()
    theme = os.getenv("FINFLOW_THEME", "light").lower()
    return Settings(
        data_dir=os.getenv("FINFLOW_DATA_DIR", DEFAULT_DATA_DIR),
        log_level=os.getenv("FINFLOW_LOG_LEVEL", "INFO").upper(),
        default_period=parse_period(os.getenv("FINFLOW_DEFAULT_PERIOD", "30")),
        months_back=max(1, int(os.getenv("FINFLOW_MONTHS_BACK", "6"))),
        theme=theme if theme in THEMES else "light",
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
