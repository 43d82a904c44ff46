"""Configuration for split decomposition, classification and circular ordering."""

from dataclasses import dataclass, field
from typing import Optional

# Isolation indices at or below this value are treated as zero ("not a split").
# Carried over unchanged from split decomposition practice; flagged for review.
ISOLATION_TOLERANCE: float = 1e-7

# The O(s^3) weak compatibility test is only attempted below this taxon count.
# Also carried over unchanged; flagged for review.
WEAK_COMPATIBILITY_MAX_TAXA: int = 100

# Off-diagonal differences |d(i,j) - d(j,i)| above this are reported as asymmetry.
SYMMETRY_TOLERANCE: float = 1e-9


@dataclass
class SearchBudget:
    """Limits and schedule for the circular ordering search."""

    max_iterations: int = 20000
    """Annealing steps per chain."""

    max_seconds: Optional[float] = None
    """Wall-clock cap per chain, checked together with cancellation."""

    initial_temperature: float = 1.0
    cooling_rate: float = 0.9995
    """Temperature is multiplied by this factor after every step."""

    check_interval: int = 256
    """Number of steps between cancellation / time checks."""

    chains: int = 1
    workers: int = 1
    """Threads used to run chains; 1 runs them one after another."""

    weighted: bool = False
    """Cost counts split weights instead of number of non-contiguous splits."""

    def __post_init__(self) -> None:
        if self.max_iterations < 0:
            raise ValueError("max_iterations must be non-negative")
        if not 0.0 < self.cooling_rate <= 1.0:
            raise ValueError("cooling_rate must be in (0, 1]")
        if self.check_interval < 1:
            raise ValueError("check_interval must be at least 1")
        if self.chains < 1 or self.workers < 1:
            raise ValueError("chains and workers must be at least 1")


@dataclass
class SplitSystemConfig:
    """Configuration for the split system pipeline."""

    isolation_tolerance: float = ISOLATION_TOLERANCE
    weak_compatibility_max_taxa: int = WEAK_COMPATIBILITY_MAX_TAXA
    trivial_default_weight: float = 0.0
    symmetry_tolerance: float = SYMMETRY_TOLERANCE
    workers: int = 1
    """Threads used for the refinement scan of each decomposition generation."""

    search_budget: SearchBudget = field(default_factory=SearchBudget)
    seed: int = 0
    logger_name: str = "splitarchitect"
