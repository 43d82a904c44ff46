"""Split system pipeline: decompose, order, classify, fit."""

import logging
import time
from typing import Optional, Sequence, Union

from numpy.typing import ArrayLike

from splitarchitect.compatibility.classify import classify, is_cyclic
from splitarchitect.config import SplitSystemConfig
from splitarchitect.decomposition.split_decomposition import decompose
from splitarchitect.decomposition.trivial_splits import complete_trivial
from splitarchitect.distances.matrix import DistanceMatrix
from splitarchitect.elements.split_system import (
    CompatibilityClass,
    SplitSystem,
    check_cycle,
)
from splitarchitect.fit import compute_fit
from splitarchitect.leaforder.circular_ordering import find_cycle, identity_cycle
from splitarchitect.progress import Progress, ensure_progress


class SplitSystemPipeline:
    """
    Coordinates the full workflow from a distance matrix to an annotated
    split system.

    This includes split decomposition, trivial split completion, circular
    ordering, compatibility classification and the least squares fit.
    """

    def __init__(
        self,
        config: Optional[SplitSystemConfig] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.config: SplitSystemConfig = config or SplitSystemConfig()
        self.logger = logger or logging.getLogger(self.config.logger_name)

    def analyze(
        self,
        distances: Union[ArrayLike, DistanceMatrix],
        n: int,
        progress: Optional[Progress] = None,
        cycle_hint: Optional[Sequence[int]] = None,
    ) -> SplitSystem:
        """
        Run the pipeline.

        Args:
            distances: n x n distance matrix
            n: Number of taxa
            progress: Progress listener and cancellation source
            cycle_hint: Circular ordering to use instead of searching one

        Returns:
            SplitSystem with cycle, compatibility and fit set.
        """
        start_time = time.time()
        progress = ensure_progress(progress)
        matrix = DistanceMatrix(distances, n, self.config.symmetry_tolerance)

        system = decompose(matrix, n, progress=progress, config=self.config)
        complete_trivial(system.splits, n, self.config.trivial_default_weight)

        if n < 4:
            system.set_cycle(identity_cycle(n))
            system.set_compatibility(CompatibilityClass.COMPATIBLE)
        else:
            self._order_and_classify(system, progress, cycle_hint)

        system.set_fit(compute_fit(system.splits, matrix, n))
        progress.close()

        self.logger.info(
            f"Analyzed {n} taxa in {time.time() - start_time:.2f} seconds: "
            f"{len(system)} splits, {system.compatibility.value}, fit={system.fit}"
        )
        return system

    # --- Private helpers ---

    def _order_and_classify(
        self,
        system: SplitSystem,
        progress: Progress,
        cycle_hint: Optional[Sequence[int]],
    ) -> None:
        n = system.n
        if cycle_hint is not None:
            cycle = check_cycle(cycle_hint, n, "Cycle hint")
        else:
            t_start = time.perf_counter()
            result = find_cycle(
                system.splits,
                n,
                budget=self.config.search_budget,
                seed=self.config.seed,
                progress=progress,
            )
            cycle = result.cycle
            self.logger.debug(
                f"Circular ordering took {time.perf_counter() - t_start:.3f}s "
                f"(cost {result.cost:g}, exact={result.exact})"
            )

        compatibility = classify(
            system.splits, n, cycle_hint=cycle, config=self.config, progress=progress
        )
        if cycle_hint is not None and compatibility is CompatibilityClass.COMPATIBLE:
            # A hint need not fit a compatible system; the tree order always does
            if not is_cyclic(system.splits, n, cycle):
                cycle = find_cycle(system.splits, n, progress=progress).cycle
        system.set_cycle(cycle)
        system.set_compatibility(compatibility)


def analyze(
    distances: Union[ArrayLike, DistanceMatrix],
    n: int,
    config: Optional[SplitSystemConfig] = None,
    progress: Optional[Progress] = None,
    cycle_hint: Optional[Sequence[int]] = None,
) -> SplitSystem:
    """Run the split system pipeline with a default-constructed pipeline object."""
    return SplitSystemPipeline(config).analyze(
        distances, n, progress=progress, cycle_hint=cycle_hint
    )
