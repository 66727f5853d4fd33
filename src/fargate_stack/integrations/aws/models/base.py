"""Base models shared by stack declarations and routing plans."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class StackModelBase(BaseModel):
    """Base class for immutable stack models.

    Declarations are read once from configuration and never mutated, so
    every model is frozen and rejects unknown fields.
    """

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class Tag(StackModelBase):
    """Resource tag applied to tagged stack resources.

    Attributes:
        name: Tag key.
        value: Tag value.
    """

    name: str = Field(min_length=1, max_length=128, description="Tag key")
    value: str = Field(default="", max_length=256, description="Tag value")

    def to_cfn(self) -> dict[str, str]:
        """Return the tag in CloudFormation ``Key``/``Value`` form."""
        return {"Key": self.name, "Value": self.value}
