"""
Configuration for Convex Hull-CNMF.

CHCNMFConfig:
  - initial values (S, G, H), update switches, sparsity levels and stopping criteria
"""

from dataclasses import dataclass, fields, replace
from typing import Mapping, Optional

import numpy as np

DEFAULT_MAXITER = 100
DEFAULT_TOLERANCE = 1e-3


@dataclass(frozen=True, eq=False)
class CHCNMFConfig:
    """
    Optional settings for chcnmf(). Fields left as None are filled in by resolve().

    S_init:     m-by-p matrix of points on the convex hull of V (default: convex_hull_points(V)).
    G_init:     non-negative p-by-num_basis_elems-by-num_frames tensor (default: random, columns sum to one).
    H_init:     non-negative num_basis_elems-by-n matrix (default: random).
    G_fixed:    keep G fixed during the updates.
    H_fixed:    keep H fixed during the updates.
    G_sparsity: non-negative weight added to the G update denominator.
    H_sparsity: non-negative weight added to the H update denominator.
    maxiter:    maximum number of update iterations, non-positive values fall back to 100.
    tolerance:  minimum decrease of the cost between iterations, non-positive values fall back to 1e-3.
    """

    # ---- Initial values ----
    S_init: Optional[np.ndarray] = None
    G_init: Optional[np.ndarray] = None
    H_init: Optional[np.ndarray] = None

    # ---- Update switches ----
    G_fixed: bool = False
    H_fixed: bool = False

    # ---- Sparsity ----
    G_sparsity: Optional[float] = 0.0
    H_sparsity: Optional[float] = 0.0

    # ---- Stopping ----
    maxiter: Optional[int] = DEFAULT_MAXITER
    tolerance: Optional[float] = DEFAULT_TOLERANCE

    @classmethod
    def from_dict(cls, config: Mapping) -> "CHCNMFConfig":
        """Build from a mapping of field names, unknown names raise TypeError."""
        known = {f.name for f in fields(cls)}
        unknown = set(config) - known
        if unknown:
            raise TypeError(f"Unknown configuration fields: {sorted(unknown)}")
        return cls(**config)

    def resolve(self) -> "CHCNMFConfig":
        """Return a copy with every default applied."""
        maxiter = self.maxiter
        if maxiter is None or maxiter <= 0:
            maxiter = DEFAULT_MAXITER
        tolerance = self.tolerance
        if tolerance is None or tolerance <= 0:
            tolerance = DEFAULT_TOLERANCE

        return replace(
            self,
            G_fixed=bool(self.G_fixed),
            H_fixed=bool(self.H_fixed),
            G_sparsity=0.0 if self.G_sparsity is None else float(self.G_sparsity),
            H_sparsity=0.0 if self.H_sparsity is None else float(self.H_sparsity),
            maxiter=int(maxiter),
            tolerance=float(tolerance),
        )


def as_config(config) -> CHCNMFConfig:
    """Accept None, a mapping or a CHCNMFConfig and return the resolved config."""
    if config is None:
        config = CHCNMFConfig()
    elif isinstance(config, Mapping):
        config = CHCNMFConfig.from_dict(config)
    return config.resolve()
