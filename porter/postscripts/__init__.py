"""Finalization steps run after a target import."""

from .base import Postscript
from .vanilla import VanillaPostscript

__all__ = [
    "Postscript",
    "VanillaPostscript",
]
