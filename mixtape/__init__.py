"""Mixtape - personal audio track library backend"""

__version__ = "1.0.0"
