"""globe_field - globe projections and screen-space vector field interpolation."""

from __future__ import annotations

__version__ = "0.1.0"

from globe_field.config import EngineConfig
from globe_field.errors import GlobeFieldError, UnknownProjection
from globe_field.field import Field, FieldVector, InterpolationTask, interpolate_field, run_interpolation
from globe_field.globes import Bounds, Globe, View, build_globe, list_projections
from globe_field.grids import Grids
from globe_field.mask import Mask, build_mask

__all__ = [
    "Bounds",
    "EngineConfig",
    "Field",
    "FieldVector",
    "Globe",
    "GlobeFieldError",
    "Grids",
    "InterpolationTask",
    "Mask",
    "UnknownProjection",
    "View",
    "__version__",
    "build_globe",
    "build_mask",
    "interpolate_field",
    "list_projections",
    "run_interpolation",
]
