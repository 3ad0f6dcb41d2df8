"""beatreel - reconcile narrated beats into one timeline and render it with ffmpeg."""

__version__ = "0.4.0"
