"""I/O utility functions for movie scripts and output directories."""

import json
import re
from datetime import datetime
from pathlib import Path
from typing import Union

from beatreel.core.config import Settings
from beatreel.models.schemas import MovieScript


def slugify(text: str) -> str:
    """
    Convert text to a filesystem-safe slug.

    Args:
        text: Input text to slugify.

    Returns:
        Filesystem-safe slug string.
    """
    text = text.lower()
    text = re.sub(r"[^\w\s-]", "", text)
    text = re.sub(r"[-\s]+", "-", text)
    text = text.strip("-")
    if len(text) > 100:
        text = text[:100].rstrip("-")
    return text or "movie"


def create_run_output_dir(base_dir: Union[str, Path], slug: str) -> Path:
    """
    Create a timestamped working directory for one render.

    Args:
        base_dir: Base directory for outputs (e.g., "outputs").
        slug: Slugified identifier for the run (e.g., from the script title).

    Returns:
        Path to the created directory.
    """
    timestamp = datetime.now().strftime("%Y-%m-%d_%H%M%S")
    output_dir = Path(base_dir) / f"{timestamp}_{slug}"
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir


def load_movie_script(path: Union[str, Path], settings: Settings) -> MovieScript:
    """
    Load a movie script from JSON.

    Padding and canvas fall back to the configured defaults when the script
    does not set them. Relative media paths are resolved against the script's
    directory.

    Args:
        path: JSON file
        settings: Application settings

    Returns:
        Validated MovieScript
    """
    path = Path(path)
    data = json.loads(path.read_text(encoding="utf-8"))

    data.setdefault(
        "padding",
        {
            "default_padding": settings.default_padding,
            "closing_padding": settings.closing_padding,
            "intro_padding": settings.intro_padding,
            "outro_padding": settings.outro_padding,
        },
    )
    data.setdefault("canvas", {"width": settings.canvas_width, "height": settings.canvas_height})

    base = path.parent
    for media in data.get("media", []):
        for key in ("audio_file", "image_file", "movie_file"):
            if media.get(key):
                media[key] = str(base / media[key])
        media["caption_images"] = [str(base / image) for image in media.get("caption_images", [])]
    if data.get("bgm_file"):
        data["bgm_file"] = str(base / data["bgm_file"])

    return MovieScript.model_validate(data)
