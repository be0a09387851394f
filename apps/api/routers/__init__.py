"""Routers package."""

from . import (
    health,
    artist_ai,
)
