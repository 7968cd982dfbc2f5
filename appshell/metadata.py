# appshell/metadata.py
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PackageMetadata(BaseModel):
    """
    Flat packaging request handed to the desktop converter.

    The record is frozen while a conversion runs; a successful conversion
    returns a copy with ``appx`` set (see ``with_artifact``).
    """

    model_config = ConfigDict(frozen=True, extra="ignore", str_strip_whitespace=True)

    product: str = Field(min_length=1)
    version: str = Field(min_length=1)
    manufacturer: str = Field(min_length=1)
    app_name: str = Field(min_length=1)
    installer: str = Field(min_length=1, description="Path to the installer (.msi/.exe)")
    appx: Optional[str] = None

    @field_validator("product", "version", "manufacturer", "app_name", "installer")
    @classmethod
    def _not_flag_shaped(cls, v: str) -> str:
        # The converter reads a leading '-' as one of its own switches.
        if v.startswith("-"):
            raise ValueError("must not start with '-'")
        return v

    @property
    def basename(self) -> str:
        return f"{self.product}-{self.version}"

    def with_artifact(self, path: str) -> "PackageMetadata":
        return self.model_copy(update={"appx": path})
