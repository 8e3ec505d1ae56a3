"""GG Tracker: game collections and genre-weighted game suggestions."""

__version__ = "0.1.0"
