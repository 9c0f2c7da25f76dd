"""
Reconciliation of task notes in a markdown vault with Notion records.
"""

from pyrollup import rollup

from . import client, content, engine, exceptions, metadata, status, vault
from .client import *  # noqa
from .content import *  # noqa
from .engine import *  # noqa
from .exceptions import *  # noqa
from .metadata import *  # noqa
from .status import *  # noqa
from .vault import *  # noqa

__all__ = rollup(
    engine,
    client,
    content,
    metadata,
    vault,
    status,
    exceptions,
)

__canonical_children__ = [
    "engine",
    "client",
    "content",
    "metadata",
    "vault",
    "status",
    "exceptions",
]
