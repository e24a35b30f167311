"""Small shared helpers."""

from simclock.utils.ids import get_id

__all__ = ["get_id"]
