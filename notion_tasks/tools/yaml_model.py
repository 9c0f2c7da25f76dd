"""
Pydantic models backed by a .yaml file.
"""

from pathlib import Path
from typing import Any, Self

import yaml
from pydantic import BaseModel

__all__ = [
    "BaseYamlModel",
]


class BaseYamlModel(BaseModel):
    """
    Base pydantic model which can be loaded from and dumped to a .yaml file.
    """

    @classmethod
    def load_yaml(cls, file: Path | None, **overrides: Any) -> Self:
        """
        Load model from .yaml file, if given, with non-`None` values in
        `overrides` taking precedence over the file's contents.
        """
        data: dict[str, Any] = {}

        if file is not None:
            if not file.is_file():
                raise ValueError(f"file does not exist: '{file}'")

            with file.open() as fh:
                data = yaml.safe_load(fh) or {}

            if not isinstance(data, dict):
                raise ValueError(f"Invalid yaml contents: {data}")

        data.update({k: v for k, v in overrides.items() if v is not None})

        return cls(**data)

    def dump_yaml(self, file: Path):
        """
        Dump model to .yaml file.
        """
        model = self.model_dump(mode="json", by_alias=True)
        model_yaml = yaml.safe_dump(
            model, default_flow_style=False, sort_keys=False
        )
        file.write_text(model_yaml)
