"""Pydantic configuration for choosing and sizing a tessellation."""

from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from spheretiles.abrate import AbrateTessellation
from spheretiles.fibonacci import FibonacciSphere
from spheretiles.tessellation import SphericalTessellation


class TessellationConfig(BaseModel):
    """Which tessellation to build and how fine to make it.

    The spiral scheme takes either a target tile count or explicit spiral
    parameters; the Fibonacci scheme takes a point count.
    """

    scheme: Literal["abrate", "fibonacci"] = "abrate"
    num_tiles: Optional[int] = Field(
        default=None,
        description="Target tile count (abrate) or point count (fibonacci).",
    )
    n: Optional[int] = Field(default=None, description="Spiral turns (abrate).")
    m: Optional[int] = Field(
        default=None, description="Non-polar tile count (abrate)."
    )

    @field_validator("num_tiles", "n", "m")
    @classmethod
    def positive(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v <= 0:
            raise ValueError(f"must be positive, got {v}")
        return v

    @model_validator(mode="after")
    def sizing_complete(self) -> TessellationConfig:
        spiral = (self.n, self.m)
        if self.scheme == "fibonacci":
            if self.n is not None or self.m is not None:
                raise ValueError("n and m only apply to the abrate scheme")
            if self.num_tiles is None:
                raise ValueError("fibonacci scheme requires num_tiles")
            return self

        if self.num_tiles is not None and any(v is not None for v in spiral):
            raise ValueError("give either num_tiles or n and m, not both")
        if self.num_tiles is None and None in spiral:
            raise ValueError("abrate scheme requires num_tiles or both n and m")
        return self

    def build(self) -> SphericalTessellation:
        """Construct the configured tessellation."""
        if self.scheme == "fibonacci":
            return FibonacciSphere(self.num_tiles)
        if self.num_tiles is not None:
            return AbrateTessellation.from_num_tiles(self.num_tiles)
        return AbrateTessellation(self.n, self.m)

    @classmethod
    def from_yaml(cls, path: str | Path) -> TessellationConfig:
        """Load configuration from a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f)
        return cls.model_validate(data)

    def to_yaml(self, path: str | Path) -> None:
        """Write configuration to a YAML file."""
        with open(path, "w") as f:
            yaml.dump(
                self.model_dump(mode="json", exclude_none=True),
                f,
                default_flow_style=False,
                sort_keys=False,
            )

    @classmethod
    def from_yaml_content(cls, content: str) -> TessellationConfig:
        """Load configuration from a YAML string."""
        data = yaml.safe_load(content)
        return cls.model_validate(data)

    def to_yaml_content(self) -> str:
        """Serialize configuration to a YAML string."""
        return yaml.dump(
            self.model_dump(mode="json", exclude_none=True),
            default_flow_style=False,
            sort_keys=False,
        )
