"""
Slope/aspect computation and multi-method hillshade compositing.

Slope and aspect use Horn's 3x3 finite-difference kernel on interior
cells. Each shading definition turns (aspect, slope) into an
illumination value, the values become per-layer coverages weighted by
the colour's low byte, and the layers are blended into one RGB pixel
with a screen-style lighten toward white where coverage is low.

Elevation grids are row-major with row 0 at the south edge; the
rendered image is flipped so north is up.

References:
- Horn, B.K.P. (1981) "Hill shading and the reflectance map"
"""

import math
import sys
from dataclasses import dataclass
from typing import Sequence, Union

import numpy as np
from numpy.typing import NDArray

from .errors import ConfigError


TAU = 2.0 * math.pi

# Smallest positive normal double, keeps the normalization finite when
# every layer has zero coverage.
NORM_EPSILON = sys.float_info.min

# Byte offsets of R, G, B in the packed 0xRRGGBBWW colour
CHANNEL_SHIFTS = (24, 16, 8)


@dataclass(frozen=True)
class IgorShading:
    """Igor-style shading. Azimuth in degrees."""

    azimuth: float


@dataclass(frozen=True)
class ObliqueShading:
    """Classic oblique hillshade. Azimuth and altitude in radians."""

    azimuth: float
    altitude: float


@dataclass(frozen=True)
class SlopeShading:
    """Azimuth-independent slope shading. Altitude in radians."""

    altitude: float


ShadingMethod = Union[IgorShading, ObliqueShading, SlopeShading]


@dataclass(frozen=True)
class ShadingDefinition:
    """A shading method and its packed 0xRRGGBBWW colour."""

    method: ShadingMethod
    color: int

    @property
    def weight(self) -> float:
        """Layer weight in [0, 1] from the colour's low byte."""
        return (self.color & 0xFF) / 255.0

    def channel(self, shift: int) -> int:
        """Colour channel byte at bit offset ``shift``."""
        return (self.color >> shift) & 0xFF


def parse_color(value: str) -> int:
    """Parse ``RRGGBBWW`` (optionally ``#``-prefixed) into a packed int.

    A six-digit ``RRGGBB`` gets full weight.
    """
    text = value.strip().lstrip("#")
    if text.lower().startswith("0x"):
        text = text[2:]
    if len(text) == 6:
        text += "ff"
    if len(text) != 8:
        raise ConfigError(f"Colour must be RRGGBB or RRGGBBWW, got {value!r}")
    try:
        return int(text, 16)
    except ValueError:
        raise ConfigError(f"Invalid hex colour {value!r}") from None


def parse_shading(value: str) -> ShadingDefinition:
    """Parse a shading definition from its command-line form.

    Formats:
        igor:<azimuth_deg>:<RRGGBBWW>
        oblique:<azimuth_rad>:<altitude_rad>:<RRGGBBWW>
        slope:<altitude_rad>:<RRGGBBWW>
    """
    name, *params = value.strip().split(":")
    name = name.lower()
    arity = {"igor": 1, "oblique": 2, "slope": 1}

    if name not in arity:
        raise ConfigError(
            f"Unknown shading method {name!r}. Available: {', '.join(arity)}"
        )
    if len(params) != arity[name] + 1:
        raise ConfigError(
            f"Shading {name!r} expects {arity[name]} number(s) and a colour, got {value!r}"
        )

    *numbers, color = params
    try:
        args = [float(n) for n in numbers]
    except ValueError:
        raise ConfigError(f"Invalid number in shading {value!r}") from None

    if name == "igor":
        method: ShadingMethod = IgorShading(*args)
    elif name == "oblique":
        method = ObliqueShading(*args)
    else:
        method = SlopeShading(*args)

    return ShadingDefinition(method, parse_color(color))


# =============================================================================
# Slope / aspect
# =============================================================================


def slope_aspect_at(
    elevation: Sequence[float],
    cols: int,
    x: int,
    y: int,
    z_factor: float = 1.0,
) -> tuple[float, float]:
    """Compute (slope, aspect) in radians for one interior cell.

    Args:
        elevation: Row-major elevation grid
        cols: Grid width
        x: Column of the cell, 1 <= x < cols - 1
        y: Row of the cell, 1 <= y < rows - 1
        z_factor: Vertical exaggeration

    Returns:
        Tuple of (slope, aspect); aspect in [0, 2π), both 0 for flat or
        invalid neighbourhoods
    """
    off = y * cols

    z1 = elevation[off - cols + x - 1]
    z2 = elevation[off - cols + x]
    z3 = elevation[off - cols + x + 1]
    z4 = elevation[off + x - 1]
    z6 = elevation[off + x + 1]
    z7 = elevation[off + cols + x - 1]
    z8 = elevation[off + cols + x]
    z9 = elevation[off + cols + x + 1]

    dz_dx = ((-z1 + z3 - 2.0 * z4 + 2.0 * z6 - z7 + z9) / 8.0) * z_factor
    dz_dy = ((-z1 - 2.0 * z2 - z3 + z7 + 2.0 * z8 + z9) / 8.0) * z_factor

    # Aspect of a flat cell is undefined
    if dz_dx == 0.0 and dz_dy == 0.0:
        return 0.0, 0.0

    slope = math.atan(math.hypot(dz_dx, dz_dy))
    aspect = math.atan2(dz_dy, -dz_dx)

    if aspect < 0.0:
        aspect += TAU

    if math.isnan(slope) or math.isnan(aspect):
        return 0.0, 0.0

    return slope, aspect


def compute_slope_aspect(
    elevation: NDArray[np.float64],
    rows: int,
    cols: int,
    z_factor: float = 1.0,
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Vectorized slope and aspect for all interior cells.

    Same kernel and evaluation order as ``slope_aspect_at``.

    Args:
        elevation: Row-major elevation, flat of length rows*cols or (rows, cols)
        rows: Grid height
        cols: Grid width
        z_factor: Vertical exaggeration

    Returns:
        Tuple of (slope, aspect) arrays of shape (rows - 2, cols - 2)
    """
    grid = np.asarray(elevation, dtype=np.float64).reshape(rows, cols)

    z1 = grid[:-2, :-2]
    z2 = grid[:-2, 1:-1]
    z3 = grid[:-2, 2:]
    z4 = grid[1:-1, :-2]
    z6 = grid[1:-1, 2:]
    z7 = grid[2:, :-2]
    z8 = grid[2:, 1:-1]
    z9 = grid[2:, 2:]

    dz_dx = ((-z1 + z3 - 2.0 * z4 + 2.0 * z6 - z7 + z9) / 8.0) * z_factor
    dz_dy = ((-z1 - 2.0 * z2 - z3 + z7 + 2.0 * z8 + z9) / 8.0) * z_factor

    with np.errstate(invalid="ignore"):
        slope = np.arctan(np.hypot(dz_dx, dz_dy))
        aspect = np.arctan2(dz_dy, -dz_dx)

    aspect = np.where(aspect < 0.0, aspect + TAU, aspect)

    degenerate = (
        np.isnan(slope)
        | np.isnan(aspect)
        | ((dz_dx == 0.0) & (dz_dy == 0.0))
    )
    slope = np.where(degenerate, 0.0, slope)
    aspect = np.where(degenerate, 0.0, aspect)

    return slope, aspect


# =============================================================================
# Shading
# =============================================================================


def normalize_angle(angle: float, normalizer: float = TAU) -> float:
    """Wrap ``angle`` into [0, normalizer)."""
    angle = math.fmod(angle, normalizer)
    return normalizer + angle if angle < 0.0 else angle


def angle_difference(angle1: float, angle2: float, normalizer: float = TAU) -> float:
    """Shortest wrap-aware distance between two angles, in [0, normalizer/2]."""
    diff = abs(normalize_angle(angle1, normalizer) - normalize_angle(angle2, normalizer))
    return normalizer - diff if diff > normalizer / 2.0 else diff


def illumination(method: ShadingMethod, aspect: float, slope: float) -> float:
    """Illumination value in roughly [-1, 1] for one cell."""
    if isinstance(method, IgorShading):
        aspect_diff = angle_difference(aspect, math.pi * 1.5 - math.radians(method.azimuth))
        aspect_strength = 1.0 - aspect_diff / math.pi
        return 1.0 - slope * 2.0 * aspect_strength

    if isinstance(method, ObliqueShading):
        zenith = math.pi / 2 - method.altitude
        return (
            math.cos(zenith) * math.cos(slope)
            + math.sin(zenith) * math.sin(slope) * math.cos(method.azimuth - aspect)
        )

    if isinstance(method, SlopeShading):
        zenith = math.pi / 2 - method.altitude
        return math.cos(zenith) * math.cos(slope) + math.sin(zenith) * math.sin(slope)

    raise TypeError(f"Unsupported shading method: {method!r}")


def layer_mods(
    aspect: float,
    slope: float,
    shadings: Sequence[ShadingDefinition],
) -> list[float]:
    """Per-layer coverage: weight times how far the cell is from fully lit."""
    return [
        shading.weight * (1.0 - illumination(shading.method, aspect, slope))
        for shading in shadings
    ]


def _to_byte(value: float) -> int:
    if math.isnan(value):
        return 0
    return int(min(max(value * 255.0, 0.0), 255.0))


def shade(
    aspect: float,
    slope: float,
    shadings: Sequence[ShadingDefinition],
    contrast: float = 1.0,
    brightness: float = 0.0,
) -> tuple[int, int, int]:
    """Composite all shading layers into one RGB pixel.

    Args:
        aspect: Aspect in radians
        slope: Slope in radians
        shadings: Non-empty sequence of shading definitions
        contrast: Contrast multiplier around mid-grey
        brightness: Brightness offset

    Returns:
        (r, g, b) bytes
    """
    if not shadings:
        raise ConfigError("At least one shading definition is required")

    mods = layer_mods(aspect, slope, shadings)

    # Strict left-to-right accumulation, no compensated summation
    total_mod = 0.0
    coverage = 1.0
    for m in mods:
        total_mod += m
        coverage *= 1.0 - m

    norm = NORM_EPSILON + total_mod
    alpha = 1.0 - coverage

    def channel(shift: int) -> int:
        total = 0.0
        for m, shading in zip(mods, shadings):
            total += m * shading.channel(shift) / 255.0
        value = contrast * ((total / norm) - 0.5) + 0.5 + brightness
        value = value + (1.0 - value) * (1.0 - alpha)
        return _to_byte(value)

    r, g, b = (channel(shift) for shift in CHANNEL_SHIFTS)
    return r, g, b


def illumination_grid(
    method: ShadingMethod,
    aspect: NDArray[np.float64],
    slope: NDArray[np.float64],
) -> NDArray[np.float64]:
    """Vectorized ``illumination`` over whole aspect/slope arrays."""
    if isinstance(method, IgorShading):
        target = normalize_angle(math.pi * 1.5 - math.radians(method.azimuth))
        wrapped = np.fmod(aspect, TAU)
        wrapped = np.where(wrapped < 0.0, wrapped + TAU, wrapped)
        diff = np.abs(wrapped - target)
        diff = np.where(diff > math.pi, TAU - diff, diff)
        aspect_strength = 1.0 - diff / math.pi
        return 1.0 - slope * 2.0 * aspect_strength

    if isinstance(method, ObliqueShading):
        zenith = math.pi / 2 - method.altitude
        return (
            math.cos(zenith) * np.cos(slope)
            + math.sin(zenith) * np.sin(slope) * np.cos(method.azimuth - aspect)
        )

    if isinstance(method, SlopeShading):
        zenith = math.pi / 2 - method.altitude
        return math.cos(zenith) * np.cos(slope) + math.sin(zenith) * np.sin(slope)

    raise TypeError(f"Unsupported shading method: {method!r}")


def shade_grid(
    aspect: NDArray[np.float64],
    slope: NDArray[np.float64],
    shadings: Sequence[ShadingDefinition],
    contrast: float = 1.0,
    brightness: float = 0.0,
) -> NDArray[np.uint8]:
    """Vectorized ``shade`` over aspect/slope arrays.

    Returns:
        RGB array with shape ``aspect.shape + (3,)``
    """
    if not shadings:
        raise ConfigError("At least one shading definition is required")

    mods = [
        shading.weight * (1.0 - illumination_grid(shading.method, aspect, slope))
        for shading in shadings
    ]

    total_mod = np.zeros_like(mods[0])
    coverage = np.ones_like(mods[0])
    for m in mods:
        total_mod = total_mod + m
        coverage = coverage * (1.0 - m)

    norm = NORM_EPSILON + total_mod
    alpha = 1.0 - coverage

    channels = []
    for shift in CHANNEL_SHIFTS:
        total = np.zeros_like(total_mod)
        for m, shading in zip(mods, shadings):
            total = total + m * shading.channel(shift) / 255.0
        value = contrast * ((total / norm) - 0.5) + 0.5 + brightness
        value = value + (1.0 - value) * (1.0 - alpha)
        value = np.nan_to_num(value * 255.0, nan=0.0)
        channels.append(np.clip(value, 0.0, 255.0).astype(np.uint8))

    return np.stack(channels, axis=-1)


def compute_hillshade(
    elevation: NDArray[np.float64],
    rows: int,
    cols: int,
    shadings: Sequence[ShadingDefinition],
    z_factor: float = 1.0,
    contrast: float = 1.0,
    brightness: float = 0.0,
) -> NDArray[np.uint8]:
    """Render an elevation grid to an RGB image, north up.

    The one-cell border has no full neighbourhood and is dropped, so a
    (rows, cols) grid yields a (rows - 2, cols - 2, 3) image.

    Args:
        elevation: Row-major elevation, row 0 at the south edge
        rows: Grid height
        cols: Grid width
        shadings: Shading definitions to composite
        z_factor: Vertical exaggeration
        contrast: Contrast multiplier
        brightness: Brightness offset

    Returns:
        RGB image as uint8 array
    """
    if rows < 3 or cols < 3:
        raise ValueError(f"Elevation grid must be at least 3x3, got {rows}x{cols}")

    slope, aspect = compute_slope_aspect(elevation, rows, cols, z_factor)
    image = shade_grid(aspect, slope, shadings, contrast, brightness)
    return np.ascontiguousarray(image[::-1])
