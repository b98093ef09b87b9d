"""Source platform packages."""

from .base import Package, Source
from .codoforum import CodoForum
from .webwiz import WebWiz

__all__ = [
    "Package",
    "Source",
    "CodoForum",
    "WebWiz",
]
