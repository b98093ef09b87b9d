"""Target platform packages."""

from .base import Target
from .flarum import Flarum
from .vanilla import Vanilla

__all__ = [
    "Target",
    "Flarum",
    "Vanilla",
]
