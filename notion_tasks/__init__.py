"""
notion-tasks: synchronize task notes in a markdown vault with a Notion
database.
"""

from pyrollup import rollup

from . import core
from .core import *  # noqa

__all__ = rollup(core)

__canonical_children__ = [
    "core",
]
