"""Engine settings model."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class EngineSettings(BaseModel):
    """Label engine settings loaded from YAML."""

    model_config = ConfigDict(extra="forbid")

    native_width_dots: int = Field(gt=0)
    native_height_dots: int = Field(gt=0)
    preview_width: int = Field(gt=0)
    preview_height: int = Field(gt=0)
    anchor_tolerance_x: int = Field(ge=0)
    anchor_tolerance_y: int = Field(ge=0)
    layer_tolerance: int = Field(default=2, ge=0)
    renderer_url: str
    renderer_timeout_seconds: float = Field(default=15.0, gt=0)
