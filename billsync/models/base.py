"""Shared model config and base types."""
from pydantic import BaseModel, ConfigDict


class BSBaseModel(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


class ExternalModel(BaseModel):
    """Payloads owned by another system: unknown keys are dropped, aliases map names."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)
