"""Version-control helpers."""

from .revision import GitRevisionSource, RevisionError, RevisionSource

__all__ = ["GitRevisionSource", "RevisionError", "RevisionSource"]
