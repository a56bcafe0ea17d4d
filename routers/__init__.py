"""Routers package."""

from . import (
    health,
    feed,
    likes,
    downloads,
    catalog,
)
