"""
Interface to configuration as persisted in .yaml file.
"""
from __future__ import annotations

from logging import Logger
from pathlib import Path
from typing import Any

from pydantic import Field, field_serializer, field_validator

from ..core import (
    EngineConfig,
    LocalStatus,
    ReconciliationEngine,
    RecordClient,
    Vault,
)
from ..core.client import REQUEST_TIMEOUT
from ..core.status import STATUS_MAPPING
from .yaml_model import BaseYamlModel

__all__ = [
    "Config",
]


class Config(BaseYamlModel):
    """
    Encapsulates configuration for use in tools.
    """

    api_key: str = Field(min_length=1)
    """
    Notion integration secret.
    """

    database_id: str = Field(min_length=1)
    """
    Id of Notion database holding task records.
    """

    vault_dir: Path
    """
    Root folder of the markdown vault.
    """

    interval: float = Field(default=60.0, gt=0)
    """
    Seconds between bulk scans in watch mode.
    """

    update_page_content: bool = False
    """
    Replace record bodies with note content on every sync.
    """

    serialize_notes: bool = True
    """
    Serialize overlapping reconciliations of the same note.
    """

    default_tags: list[str] = []
    """
    Values of the `Tags` multi-select set on created records.
    """

    timeout: float = Field(default=REQUEST_TIMEOUT, gt=0)
    """
    Timeout of each request to Notion in seconds.
    """

    status_mapping: dict[str, LocalStatus] = Field(
        default_factory=lambda: dict(STATUS_MAPPING)
    )
    """
    Mapping of Notion status names to local open/closed status.
    """

    @field_validator("vault_dir", mode="before")
    def validate_vault_dir(cls, value: Any) -> Any:
        return _validate_dir(value)

    @field_serializer("vault_dir")
    def serialize_vault_dir(self, value: Path) -> str:
        return str(value)

    @property
    def engine_config(self) -> EngineConfig:
        return EngineConfig(
            status_mapping=dict(self.status_mapping),
            update_page_content=self.update_page_content,
            serialize_notes=self.serialize_notes,
        )

    def create_client(self, *, logger: Logger) -> RecordClient:
        return RecordClient(
            self.api_key,
            self.database_id,
            default_tags=self.default_tags,
            timeout=self.timeout,
            logger=logger,
        )

    def create_vault(self, *, logger: Logger) -> Vault:
        return Vault(self.vault_dir, logger=logger)

    def create_engine(
        self, vault: Vault, *, logger: Logger
    ) -> ReconciliationEngine:
        """
        Get engine operating on the given vault with this config.
        """
        return ReconciliationEngine(
            self.create_client(logger=logger),
            vault,
            vault,
            self.engine_config,
            logger=logger,
        )


def _validate_dir(value: Any) -> Any:
    """
    Coerce to path and ensure it exists.
    """
    if not isinstance(value, (str, Path)):
        # let pydantic handle type error
        return value

    path = Path(value).expanduser()

    if not path.is_dir():
        raise ValueError(f"folder does not exist: '{path}'")

    return path
