"""Application configuration using pydantic-settings."""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be configured via environment variables or a .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================================================
    # Application Settings
    # ========================================================================
    app_name: str = Field(default="beatreel", description="Application name")
    app_version: str = Field(default="0.4.0", description="Application version")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")
    log_file: Optional[str] = Field(default=None, description="Optional log file path (rotated at 10 MB)")

    # ========================================================================
    # FFmpeg Binaries
    # ========================================================================
    ffmpeg_path: str = Field(default="ffmpeg", description="ffmpeg executable (name on PATH or absolute path)")
    ffprobe_path: str = Field(default="ffprobe", description="ffprobe executable (name on PATH or absolute path)")

    # ========================================================================
    # Output Encoding
    # ========================================================================
    video_fps: int = Field(default=30, description="Output frame rate; one frame is the transition floor")
    video_codec: str = Field(default="libx264", description="Video codec (h264_videotoolbox is too noisy)")
    video_crf: int = Field(default=26, description="Constant rate factor, only used with libx264")
    video_preset: str = Field(default="medium", description="Encoder preset")
    video_bitrate: str = Field(default="2M", description="Target video bitrate")
    video_bufsize: str = Field(default="4M", description="Rate control buffer size")
    video_maxrate: str = Field(default="3M", description="Maximum video bitrate")
    pixel_format: str = Field(default="yuv420p", description="Output pixel format")
    audio_codec: str = Field(default="aac", description="Audio codec")
    audio_bitrate: str = Field(default="128k", description="Audio bitrate")
    encoder_threads: int = Field(default=8, description="ffmpeg -threads / -filter_threads value")
    encoder_timeout_seconds: Optional[float] = Field(
        default=None,
        description="Kill the encoder if it runs longer than this (seconds). None waits forever.",
    )

    # ========================================================================
    # Canvas & Timeline Defaults
    # ========================================================================
    canvas_width: int = Field(default=1280, description="Default canvas width when the script has none")
    canvas_height: int = Field(default=720, description="Default canvas height when the script has none")
    default_padding: float = Field(default=0.3, description="Silence appended after each beat (seconds)")
    closing_padding: float = Field(default=0.8, description="Silence before the last beat (seconds)")
    intro_padding: float = Field(default=1.0, description="Silence before the first beat (seconds)")
    outro_padding: float = Field(default=1.0, description="Silence after the last beat (seconds)")

    # ========================================================================
    # Background Music
    # ========================================================================
    bgm_volume: float = Field(default=0.2, description="Background music volume in the narration mix")
    voice_volume: float = Field(default=2.0, description="Narration volume in the narration mix")

    # ========================================================================
    # Probing
    # ========================================================================
    allow_missing_media: bool = Field(
        default=False,
        description="Treat missing media files as zero-length (mock/test scripts only)",
    )


# Global settings instance
settings = Settings()
