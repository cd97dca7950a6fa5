# Export all routers
from . import (
    applications,
    consultation,
    contact,
    health,
    site,
)

__all__ = [
    "applications",
    "consultation",
    "contact",
    "health",
    "site",
]
