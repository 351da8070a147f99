"""Error kinds surfaced by the stagetrack services."""
from __future__ import annotations


class StagetrackError(Exception):
    """Base class for errors raised by stagetrack."""

    status_code = 500


class ValidationError(StagetrackError):
    """Malformed input: wrong payload shape or nothing to update."""

    status_code = 400


class StoreError(StagetrackError):
    """The backing database failed (connectivity or constraint violation)."""

    status_code = 500
