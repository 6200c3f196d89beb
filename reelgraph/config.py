import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ROOT_DIR = Path(__file__).resolve().parents[1]
load_dotenv(ROOT_DIR / ".env")

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    log_level: str = "INFO"
    ffmpeg_bin: str = "ffmpeg"
    default_width: int = 1920
    default_height: int = 1080
    default_fps: float = 30.0
    font_file: str | None = None
    batch_workers: int = 4


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}, using {default}")
        return default
    if value <= 0:
        logger.warning(f"Ignoring non-positive {name}={raw!r}, using {default}")
        return default
    return value


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}, using {default}")
        return default
    if value <= 0:
        logger.warning(f"Ignoring non-positive {name}={raw!r}, using {default}")
        return default
    return value


def get_settings() -> Settings:
    """Read settings from the environment (.env was loaded on import)."""
    font_file = os.getenv("REELGRAPH_FONT_FILE", "").strip() or None
    return Settings(
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        ffmpeg_bin=os.getenv("REELGRAPH_FFMPEG_BIN", "ffmpeg").strip() or "ffmpeg",
        default_width=_env_int("REELGRAPH_DEFAULT_WIDTH", 1920),
        default_height=_env_int("REELGRAPH_DEFAULT_HEIGHT", 1080),
        default_fps=_env_float("REELGRAPH_DEFAULT_FPS", 30.0),
        font_file=font_file,
        batch_workers=_env_int("REELGRAPH_BATCH_WORKERS", 4),
    )


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=(level or get_settings().log_level).upper(),
        format=LOG_FORMAT,
    )
