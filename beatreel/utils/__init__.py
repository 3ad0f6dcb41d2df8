"""Utility functions for beatreel."""

from beatreel.utils.io_utils import create_run_output_dir, load_movie_script, slugify
from beatreel.utils.video_filters import convert_video_filter, convert_video_filters

__all__ = [
    "create_run_output_dir",
    "load_movie_script",
    "slugify",
    "convert_video_filter",
    "convert_video_filters",
]
