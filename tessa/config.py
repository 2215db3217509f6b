"""
Run configuration for tessa.

Holds the structural operations to perform, the refinement criteria and the
output options, as collected from the command line.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

# Shape bound B = sin^2(minimum angle); 0.125 is about 20.7 degrees.
DEFAULT_SHAPE_BOUND = 0.125
# Above this, Delaunay refinement is not guaranteed to terminate.
SAFE_SHAPE_BOUND = 0.125
# B = sin^2(60 deg); no triangle can do better.
MAX_SHAPE_BOUND = 0.75
DEFAULT_TOLERANCE = 1e-9


@dataclass
class TessaConfig:
    """
    Attributes:
        input_path: WKT input file (None = stdin)
        output_path: output file (None = stdout)
        verbose: log progress at info level
        cdt: make a conforming Delaunay triangulation
        mesh: refine into a quality mesh
        gabriel: make a conforming Gabriel graph
        shape_bound: B, refinement shape criterion
        size_bound: S, longest edge target for refinement (0 = disabled)
        free_for: text for the 'free_for' field of output edges
        tolerance: geometric tolerance, relative to the input bounding box
        vtu_path: optional VTU file for inspection in ParaView
    """
    input_path: Optional[str] = None
    output_path: Optional[str] = None
    verbose: bool = False

    # Structural operations, applied in this order
    cdt: bool = False
    mesh: bool = False
    gabriel: bool = False

    # Refinement criteria
    shape_bound: float = DEFAULT_SHAPE_BOUND
    size_bound: float = 0.0

    free_for: str = ""
    tolerance: float = DEFAULT_TOLERANCE
    vtu_path: Optional[str] = None

    def validate(self) -> list[str]:
        """
        Validate configuration values.

        Returns:
            List of error messages (empty if valid)
        """
        errors = []

        if not 0.0 <= self.shape_bound <= MAX_SHAPE_BOUND:
            errors.append(f"B must be between 0 and {MAX_SHAPE_BOUND}, got {self.shape_bound}")

        if self.size_bound < 0.0:
            errors.append(f"S cannot be negative, got {self.size_bound}")

        if self.tolerance <= 0.0:
            errors.append(f"tolerance must be positive, got {self.tolerance}")

        return errors

    @property
    def any_transform(self) -> bool:
        return self.cdt or self.mesh or self.gabriel
