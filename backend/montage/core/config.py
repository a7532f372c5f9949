"""Runtime configuration loaded from the environment (and an optional .env file)."""
import os
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

load_dotenv()


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid value for {name}: {raw!r}")
        return default


@dataclass(frozen=True)
class Settings:
    """Engine and storage settings shared by the pipeline, API and workers."""
    ffmpeg_binary: str = "ffmpeg"
    ffprobe_binary: str = "ffprobe"
    output_dir: Path = Path("processed")
    video_preset: str = "veryfast"
    video_crf: int = 23
    engine_timeout: float = 1800.0
    download_timeout: float = 60.0
    font_file: Optional[str] = None
    redis_url: str = "redis://localhost:6379/0"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            ffmpeg_binary=os.getenv("FFMPEG_BINARY", "ffmpeg"),
            ffprobe_binary=os.getenv("FFPROBE_BINARY", "ffprobe"),
            output_dir=Path(os.getenv("MONTAGE_OUTPUT_DIR", "processed")),
            video_preset=os.getenv("MONTAGE_VIDEO_PRESET", "veryfast"),
            video_crf=int(_float_env("MONTAGE_VIDEO_CRF", 23)),
            engine_timeout=_float_env("MONTAGE_ENGINE_TIMEOUT", 1800.0),
            download_timeout=_float_env("MONTAGE_DOWNLOAD_TIMEOUT", 60.0),
            font_file=os.getenv("MONTAGE_FONT_FILE") or None,
            redis_url=os.getenv("REDIS_URL", "redis://localhost:6379/0"),
        )


# Global settings instance (lazy-loaded)
_settings_instance: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or initialize the settings with lazy loading."""
    global _settings_instance

    if _settings_instance is None:
        _settings_instance = Settings.from_env()
        logger.debug(f"Loaded settings: {_settings_instance}")

    return _settings_instance


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    global _settings_instance
    _settings_instance = None
