"""YAML schema validation and config loading.

Provides centralized validation for configuration and data files using pydantic:
    - Heatmap schema (heatmap.v1.yaml): kernel, smoothing, colour, opacity,
      blur, interaction tolerances
    - Points schema (points.v1.yaml): normalized point lists fed to renders

All modules load configs through these validators for fail-fast error detection
with actionable messages (offending keys, expected ranges).

Units:
    - radius, blur_amount: pixels at render-grid resolution
    - hit_radius, dot_radius_px, tap_threshold_px: device pixels
    - dedup_distance: normalized units ([0,100] space)
    - opacity, thresholds: [0.0, 1.0]

Usage:
    from src.utils import validators

    cfg = validators.load_heatmap_config()               # shipped default
    cfg = validators.load_heatmap_config("my.yaml")
    pts = validators.load_points_file("configs/sample_points.yaml")
"""

from pathlib import Path
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .color import GradientStop, get_preset, parse_color

PROJECT_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_HEATMAP_CONFIG = PROJECT_ROOT / "configs" / "heatmap.v1.yaml"


# ============================================================================
# HEATMAP SCHEMA V1
# ============================================================================

class GradientStopModel(BaseModel):
    """Single gradient stop: normalized threshold → colour."""
    model_config = ConfigDict(frozen=True)

    threshold: float = Field(..., ge=0.0, le=1.0, description="Normalized intensity")
    color: Union[str, List[float]] = Field(..., description="'#rrggbb', 'rgba(...)' or [r,g,b(,a)]")

    @field_validator('color')
    @classmethod
    def validate_color(cls, v):
        parse_color(v)
        return v

    def to_stop(self) -> GradientStop:
        return GradientStop(self.threshold, parse_color(self.color))


class HeatmapConfigV1(BaseModel):
    """Render + interaction configuration (heatmap.v1.yaml schema).

    Immutable: derive variants with ``cfg.model_copy(update={...})``.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra='forbid')

    schema_version: str = Field("heatmap.v1", alias="schema")

    # Kernel
    radius: float = Field(35.0, gt=0.0, description="Kernel footprint (grid px)")
    kernel_sigma_ratio: float = Field(2.5, gt=0.0, description="sigma = radius / ratio")
    kernel_shape: Literal['circular', 'elliptical'] = 'circular'
    kernel_seed: int = Field(0, ge=0, description="Seed for elliptical kernel orientation")

    # Smoothing
    smoothing: bool = True
    smoothing_mode: Literal['nonzero', 'symmetric'] = 'nonzero'
    smoothing_radius: int = Field(2, ge=1, le=16)
    smoothing_gain: float = Field(1.2, gt=0.0)

    # Intensity scaling
    adaptive_intensity: bool = True
    adaptive_mode: Literal['log', 'linear'] = 'log'
    intensity_divisor: Optional[float] = Field(
        None, gt=0.0, description="Fixed normalization divisor; None → per-render max"
    )

    # Colour mapping
    gradient_preset: str = 'classic'
    gradient_stops: Optional[List[GradientStopModel]] = None
    activation_threshold: float = Field(0.01, ge=0.0, lt=1.0)
    min_opacity: float = Field(0.05, ge=0.0, le=1.0)
    max_opacity: float = Field(0.8, ge=0.0, le=1.0)
    alpha_policy: Literal['linear', 'weighted'] = 'linear'
    alpha_weight: float = Field(0.2, ge=0.0, le=1.0)

    # Compositing
    blur_amount: float = Field(1.0, ge=0.0, description="Blur radius = blur_amount * 4 px")
    points_per_blur_pass: int = Field(40, ge=1)
    max_blur_passes: int = Field(3, ge=0)
    downscale_point_threshold: int = Field(100, ge=0)
    downscale_factor: float = Field(0.5, gt=0.0, le=1.0)
    field_backend: Literal['numpy', 'torch'] = 'numpy'

    # Simple mode / dots
    simple_mode: bool = False
    dot_radius_px: float = Field(25.0, gt=0.0)
    dot_color: str = 'rgba(255, 0, 0, 0.8)'
    preview_alpha: float = Field(0.7, ge=0.0, le=1.0)

    # Interaction
    dedup_distance: float = Field(5.0, ge=0.0, description="Normalized units")
    hit_radius: float = Field(30.0, ge=0.0, description="Device px")
    max_points: Optional[int] = Field(None, ge=1)
    tap_threshold_px: float = Field(10.0, gt=0.0)
    tap_max_ms: float = Field(300.0, gt=0.0)

    @field_validator('schema_version')
    @classmethod
    def validate_schema(cls, v: str) -> str:
        if v != "heatmap.v1":
            raise ValueError(f"Expected schema 'heatmap.v1', got '{v}'")
        return v

    @field_validator('gradient_preset')
    @classmethod
    def validate_preset(cls, v: str) -> str:
        get_preset(v)
        return v

    @field_validator('dot_color')
    @classmethod
    def validate_dot_color(cls, v: str) -> str:
        parse_color(v)
        return v

    @model_validator(mode='after')
    def validate_opacity_range(self) -> 'HeatmapConfigV1':
        if self.min_opacity > self.max_opacity:
            raise ValueError(
                f"min_opacity ({self.min_opacity}) must not exceed max_opacity ({self.max_opacity})"
            )
        if self.gradient_stops is not None and len(self.gradient_stops) < 1:
            raise ValueError("gradient_stops must contain at least one stop")
        return self

    def resolved_stops(self) -> List[GradientStop]:
        """Explicit gradient_stops if given, else the named preset."""
        if self.gradient_stops:
            return sorted((s.to_stop() for s in self.gradient_stops), key=lambda s: s.threshold)
        return get_preset(self.gradient_preset)


# ============================================================================
# POINTS SCHEMA V1
# ============================================================================

class PointModel(BaseModel):
    """Normalized point (integers in [0, 100])."""
    x: int = Field(..., ge=0, le=100)
    y: int = Field(..., ge=0, le=100)


class PointsFileV1(BaseModel):
    """Container for a list of normalized points (YAML file format)."""
    model_config = ConfigDict(populate_by_name=True)

    schema_version: str = Field("points.v1", alias="schema")
    points: List[PointModel] = Field(default_factory=list)

    @field_validator('schema_version')
    @classmethod
    def validate_schema(cls, v: str) -> str:
        if v != "points.v1":
            raise ValueError(f"Expected schema 'points.v1', got '{v}'")
        return v


# ============================================================================
# PUBLIC API
# ============================================================================

def load_heatmap_config(path: Optional[Union[str, Path]] = None) -> HeatmapConfigV1:
    """Load and validate heatmap config from YAML.

    Parameters
    ----------
    path : Union[str, Path], optional
        Path to a heatmap.v1.yaml file. If None, the shipped
        configs/heatmap.v1.yaml is used when present, otherwise built-in
        defaults.

    Returns
    -------
    HeatmapConfigV1
        Validated configuration

    Raises
    ------
    FileNotFoundError
        If an explicit path doesn't exist
    ValueError
        If validation fails (with actionable error message)
    """
    from . import fs

    if path is None:
        if not DEFAULT_HEATMAP_CONFIG.exists():
            return HeatmapConfigV1()
        path = DEFAULT_HEATMAP_CONFIG

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Heatmap config not found: {path}")

    data = fs.load_yaml(path) or {}
    try:
        return HeatmapConfigV1(**data)
    except Exception as e:
        raise ValueError(f"Heatmap config validation failed at {path}: {e}") from e


def load_points_file(path: Union[str, Path]) -> PointsFileV1:
    """Load and validate a points.v1 YAML file.

    Raises
    ------
    FileNotFoundError
        If path doesn't exist
    ValueError
        If validation fails
    """
    from . import fs

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Points file not found: {path}")

    data = fs.load_yaml(path) or {}
    try:
        return PointsFileV1(**data)
    except Exception as e:
        raise ValueError(f"Points file validation failed at {path}: {e}") from e
