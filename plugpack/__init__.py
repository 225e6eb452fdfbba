"""plugpack — a git-backed plugin package manager."""

__version__ = "0.1.0"
