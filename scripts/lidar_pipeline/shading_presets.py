"""
Named shading presets for the hillshade renderer.

Each preset is a ready-made stack of shading layers. Igor azimuths are
in degrees; oblique and slope angles are in radians.
"""

import math
from dataclasses import dataclass

from .errors import ConfigError
from .shading import (
    IgorShading,
    ObliqueShading,
    ShadingDefinition,
    SlopeShading,
)


@dataclass
class ShadingPreset:
    """A named stack of shading layers."""

    name: str
    description: str
    shadings: list[ShadingDefinition]


PRESETS: dict[str, ShadingPreset] = {
    "igor": ShadingPreset(
        name="Igor",
        description="Single Igor-style layer lit from the north-west",
        shadings=[ShadingDefinition(IgorShading(azimuth=315.0), 0x000000FF)],
    ),

    "oblique": ShadingPreset(
        name="Oblique",
        description="Classic grey hillshade, sun in the north-west at 45°",
        shadings=[
            ShadingDefinition(
                ObliqueShading(azimuth=math.radians(315.0), altitude=math.radians(45.0)),
                0x000000FF,
            ),
        ],
    ),

    "slope": ShadingPreset(
        name="Slope",
        description="Ambient slope shading, steeper is darker",
        shadings=[ShadingDefinition(SlopeShading(altitude=math.radians(60.0)), 0x000000FF)],
    ),

    "swiss": ShadingPreset(
        name="Swiss",
        description="Warm north-west light, cool south-east fill and soft slope shading",
        shadings=[
            ShadingDefinition(IgorShading(azimuth=315.0), 0x201000C0),
            ShadingDefinition(IgorShading(azimuth=135.0), 0x00204060),
            ShadingDefinition(SlopeShading(altitude=math.radians(60.0)), 0x00000040),
        ],
    ),

    "multidirectional": ShadingPreset(
        name="Multidirectional",
        description="Four oblique lights around the north-west, softer and less directional relief",
        shadings=[
            ShadingDefinition(
                ObliqueShading(azimuth=math.radians(azimuth), altitude=math.radians(45.0)),
                0x000000FF if azimuth == 315.0 else 0x00000060,
            )
            for azimuth in (315.0, 270.0, 0.0, 225.0)
        ],
    ),
}


def get_preset(name: str) -> ShadingPreset:
    """Get a shading preset by name.

    Raises:
        ConfigError: If preset not found
    """
    key = name.lower()
    if key not in PRESETS:
        available = ", ".join(PRESETS.keys())
        raise ConfigError(f"Unknown preset '{name}'. Available: {available}")
    return PRESETS[key]


def list_presets() -> list[str]:
    """List available preset names."""
    return list(PRESETS.keys())
