"""
Settings of a single generation pass.

These models describe one map: grid size, seed and the parameters of every
generator. Keys are accepted in snake_case or in the camelCase used by the
JSON snapshot (``gridSize``, ``poissonRadius``, ``numLakes``, ...).
"""

from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

from ..errors import SettingsError

COASTLINE_DIRECTIONS = ("N", "S", "E", "W", "RANDOM")
DEFAULT_POISSON_RADIUS = 25.0


class _SettingsModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class VoronoiSettings(_SettingsModel):
    """Site distribution and graph construction settings."""

    num_sites: Optional[int] = Field(default=None, ge=3, description="Number of uniformly random sites")
    poisson_radius: Optional[float] = Field(default=None, gt=0, description="Minimum distance between Poisson disk sites")
    boundary_tolerance: float = Field(default=30.0, ge=0, description="Distance from the grid edge at which edges are penalized")
    boundary_weight: float = Field(default=1000.0, gt=0, description="Weight of penalized boundary edges")
    vertex_tolerance: float = Field(default=0.01, ge=0, description="Band along the grid edge in which edges are dropped")

    @model_validator(mode="after")
    def check_distribution(self):
        if self.num_sites is None and self.poisson_radius is None:
            if "poisson_radius" in self.model_fields_set:
                raise ValueError("voronoi requires num_sites or poisson_radius")
            self.poisson_radius = DEFAULT_POISSON_RADIUS
        return self


class CoastlineSettings(_SettingsModel):
    """Coastline generator settings."""

    enabled: bool = Field(default=True, description="Generate a coastline")
    direction: str = Field(default="N", description="Map edge the coastline grows from (N, S, E, W or RANDOM)")
    budget: int = Field(ge=0, description="Maximum number of coastline cells")
    margin: float = Field(default=0.10, gt=0, le=0.5, description="Seed band width as a fraction of the grid size")
    max_depth: int = Field(default=10, ge=0, description="Maximum number of growth waves")

    @field_validator("direction")
    @classmethod
    def normalize_direction(cls, value: str) -> str:
        value = value.upper()
        if value not in COASTLINE_DIRECTIONS:
            raise ValueError(f"direction must be one of {', '.join(COASTLINE_DIRECTIONS)}")
        return value


class LakeSettings(_SettingsModel):
    """Lake generator settings."""

    enabled: bool = Field(default=True, description="Generate lakes")
    budget: int = Field(ge=0, description="Maximum number of lake cells across all lakes")
    num_lakes: int = Field(default=1, ge=0, description="Number of lake origins")
    avoid_coastlines: bool = Field(default=True, description="Never claim coastline cells")
    retry_factor: int = Field(default=5, ge=1, description="Growth loop cap as a multiple of the budget")


class RiverSettings(_SettingsModel):
    """River generator settings."""

    enabled: bool = Field(default=True, description="Generate rivers")
    num_rivers: int = Field(default=1, ge=0, description="Number of rivers")
    north_tolerance: float = Field(default=30.0, gt=0, description="Depth of the north start band")
    south_tolerance: float = Field(default=10.0, gt=0, description="Depth of the south end band")
    max_iterations: int = Field(default=1000, ge=1, description="A* expansion cap")


class TributarySettings(_SettingsModel):
    """Tributary generator settings."""

    enabled: bool = Field(default=True, description="Generate tributaries")
    num_tributaries: int = Field(default=1, ge=0, description="Tributaries per river")
    max_tributary_length: Optional[int] = Field(default=None, ge=2, description="Maximum vertices per tributary")


class GenerationSettings(_SettingsModel):
    """Settings object of one generation pass."""

    grid_size: float = Field(default=600.0, gt=0, description="Side length of the square map")
    seed: Union[int, str] = Field(description="Seed of the pass's random stream")
    voronoi: VoronoiSettings = Field(default_factory=VoronoiSettings)
    coastlines: Optional[CoastlineSettings] = None
    lakes: Optional[LakeSettings] = None
    rivers: RiverSettings = Field(default_factory=RiverSettings)
    tributaries: TributarySettings = Field(default_factory=TributarySettings)

    @model_validator(mode="after")
    def check_poisson_fits_grid(self):
        radius = self.voronoi.poisson_radius
        if radius is not None and self.grid_size < 2 * radius:
            raise ValueError(f"grid_size must be at least twice the Poisson radius ({2 * radius})")
        return self

    def to_snapshot(self) -> dict:
        """Settings as stored in the JSON snapshot (camelCase keys)."""
        return self.model_dump(by_alias=True, mode="json")


def load_generation_settings(data: Union[GenerationSettings, Mapping[str, Any]]) -> GenerationSettings:
    """
    Validate a settings mapping.

    Raises:
        SettingsError: If required fields are missing or any value is invalid
    """
    if isinstance(data, GenerationSettings):
        return data
    if not isinstance(data, Mapping):
        raise SettingsError(f"Settings must be a mapping, got {type(data).__name__}")
    try:
        return GenerationSettings.model_validate(dict(data))
    except ValidationError as exc:
        raise SettingsError(f"Invalid generation settings: {exc}") from exc
