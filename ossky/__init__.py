"""ossky: announces open-source projects on Bluesky."""

__version__ = "0.1.0"
