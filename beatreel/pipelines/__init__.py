"""Pipeline orchestrators for beatreel."""

from beatreel.pipelines.render_movie import main, render_movie

__all__ = ["main", "render_movie"]
