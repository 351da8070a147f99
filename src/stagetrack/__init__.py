"""Stage and task tracking backend for a single project."""
from __future__ import annotations

__version__ = "0.1.0"
