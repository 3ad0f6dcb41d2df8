#!/usr/bin/env python3
"""
Main CLI entrypoint for beatreel.

This is a convenience wrapper that imports and runs the render pipeline.
"""

import sys
from pathlib import Path

# Allow running from a checkout without installing
sys.path.insert(0, str(Path(__file__).parent))

from beatreel.pipelines.render_movie import main

if __name__ == "__main__":
    sys.exit(main())
