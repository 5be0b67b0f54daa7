"""Binding-kinetics model of antibiotic action on a bacterial population.

Bacteria are grouped into compartments by how many of their target
molecules are bound by the antibiotic.  Cells below the replication
threshold divide, and cells at or above the killing threshold die.  Dead
cells release free target and bound complex into the medium.  The free
antibiotic concentration is read from a time series that the caller
supplies and is interpolated linearly between its samples.

The state vector is laid out as ``[free_target, free_bound_complex,
B_0, B_1, ..., B_n]``.  ``B_i`` is the number of cells with ``i`` bound
targets and ``n`` is the number of target molecules per cell.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass, field

import numpy as np

__all__ = [
    "AVOGADRO_CONSTANT",
    "FREE_VARIABLE_COUNT",
    "DEFAULT_TRANSMEMBRANE_PERMEABILITY",
    "DEFAULT_INTRACELLULAR_VOLUME",
    "DEFAULT_TARGET_MOLECULE_COUNT",
    "DEFAULT_BASELINE_REPLICATION",
    "DEFAULT_MAXIMUM_KILL_RATE",
    "DEFAULT_MOLECULAR_WEIGHT",
    "DEFAULT_TARGET_ASSOCIATION_RATE",
    "DEFAULT_TARGET_DISSOCIATION_RATE",
    "DEFAULT_NONSPECIFIC_ASSOCIATION_RATE",
    "DEFAULT_NONSPECIFIC_DISSOCIATION_RATE",
    "DEFAULT_CARRYING_CAPACITY",
    "DEFAULT_TIMEPOINTS",
    "DEFAULT_STEPTIME",
    "DEFAULT_THRESHOLD",
    "ModelParameters",
    "ParameterError",
    "derivative",
]

AVOGADRO_CONSTANT = 6.02e23

# Free target and free bound complex precede the per-compartment counts.
FREE_VARIABLE_COUNT = 2

DEFAULT_TRANSMEMBRANE_PERMEABILITY = 0.0
DEFAULT_INTRACELLULAR_VOLUME = 1.0e-15
DEFAULT_TARGET_MOLECULE_COUNT = 100
DEFAULT_BASELINE_REPLICATION = 8.34e-6
DEFAULT_MAXIMUM_KILL_RATE = 1.39e-5
DEFAULT_MOLECULAR_WEIGHT = 555.5
DEFAULT_TARGET_ASSOCIATION_RATE = 4450.0
DEFAULT_TARGET_DISSOCIATION_RATE = 0.0023
DEFAULT_NONSPECIFIC_ASSOCIATION_RATE = 0.0
DEFAULT_NONSPECIFIC_DISSOCIATION_RATE = 0.0
DEFAULT_CARRYING_CAPACITY = 1e9
DEFAULT_TIMEPOINTS = 360000
DEFAULT_STEPTIME = 3600.0
DEFAULT_THRESHOLD = 60


class ParameterError(ValueError):
    """Raised when model parameters are out of range or inconsistent."""

    def __init__(self, message: str, problems: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.problems = list(problems)


@dataclass
class ModelParameters:
    """Parameters of one simulation; they do not change while it runs.

    When ``replication_threshold`` is ``None`` it becomes one below the
    killing threshold.  When both thresholds are ``None`` each becomes half
    the number of target molecules.
    """

    transmembrane_permeability: float = DEFAULT_TRANSMEMBRANE_PERMEABILITY
    intracellular_volume: float = DEFAULT_INTRACELLULAR_VOLUME
    target_molecule_count: int = DEFAULT_TARGET_MOLECULE_COUNT
    replication_threshold: int | None = None
    killing_threshold: int | None = DEFAULT_THRESHOLD
    timepoints: int = DEFAULT_TIMEPOINTS
    steptime: float = DEFAULT_STEPTIME
    baseline_replication: float = DEFAULT_BASELINE_REPLICATION
    maximum_kill_rate: float = DEFAULT_MAXIMUM_KILL_RATE
    molecular_weight: float = DEFAULT_MOLECULAR_WEIGHT
    nonspecific_association_rate: float = DEFAULT_NONSPECIFIC_ASSOCIATION_RATE
    nonspecific_dissociation_rate: float = DEFAULT_NONSPECIFIC_DISSOCIATION_RATE
    target_association_rate: float = DEFAULT_TARGET_ASSOCIATION_RATE
    target_dissociation_rate: float = DEFAULT_TARGET_DISSOCIATION_RATE
    carrying_capacity: float = DEFAULT_CARRYING_CAPACITY
    hypergeometric_matrix: np.ndarray | None = None
    antibiotic_concentrations: np.ndarray = field(
        default_factory=lambda: np.zeros(0)
    )

    def __post_init__(self) -> None:
        if self.replication_threshold is None:
            if self.killing_threshold is not None:
                self.replication_threshold = self.killing_threshold - 1
            else:
                half = self.target_molecule_count // 2
                self.replication_threshold = half
                self.killing_threshold = half
        self.antibiotic_concentrations = np.asarray(
            self.antibiotic_concentrations, dtype=float
        )
        if self.hypergeometric_matrix is not None:
            self.hypergeometric_matrix = np.asarray(
                self.hypergeometric_matrix, dtype=float
            )

    def free_antibiotic(self, time: float) -> float:
        """Free antibiotic at ``time``, interpolated between samples.

        Samples are ``steptime`` apart; past the last sample the last
        value holds.
        """
        samples = self.antibiotic_concentrations
        if samples.size == 0:
            raise ParameterError("no antibiotic concentrations supplied")
        if self.steptime <= 0:
            raise ParameterError("step time must be positive")
        last = samples.size - 1
        index = min(max(math.floor(time / self.steptime), 0), last)
        following = min(index + 1, last)
        start = samples[index]
        slope = (samples[following] - start) / self.steptime
        return float((time - index * self.steptime) * slope + start)

    def problems(self) -> list[str]:
        """Return a message for every parameter that is out of range."""
        n = self.target_molecule_count
        found: list[str] = []
        if self.baseline_replication < 0:
            found.append("Baseline replication was out of range. Must be R > 0.")
        if n < 0:
            found.append(
                "Number of target molecules per-cell was out of range. Must be n > 0."
            )
        if self.replication_threshold < 0 or self.replication_threshold > n:
            found.append("Replication threshold was out of range. Must be 0 < r <= n.")
        if self.maximum_kill_rate < 0 or self.maximum_kill_rate > 1.0:
            found.append("Maximum killing rate was out of range. Must be 0 < K < 1.")
        if self.killing_threshold < 0 or self.killing_threshold > n:
            found.append("Killing threshold was out of range. Must be 0 < k <= n.")
        if self.target_association_rate < 0.0:
            found.append("Target association rate was out of range. Must be A > 0.")
        if self.target_dissociation_rate < 0.0:
            found.append("Target dissociation rate was out of range. Must be D > 0.")
        if self.carrying_capacity < 0.0:
            found.append("Carrying capacity was out of range. Must be C > 0.")
        if self.intracellular_volume < 0.0:
            found.append("Intra-cellular volume was out of range. Must be V > 0.")
        return found

    def validate(self) -> None:
        """Raise :class:`ParameterError` if any parameter is out of range."""
        found = self.problems()
        if found:
            raise ParameterError("\n".join(found), found)

    def _replication_weights(self) -> np.ndarray:
        """Upper-triangular ``r x r`` matrix built from the packed rows."""
        r = self.replication_threshold
        packed = self.hypergeometric_matrix
        expected = r * (r + 1) // 2
        if packed is None or packed.size != expected:
            raise ParameterError(
                f"hypergeometric matrix must hold {expected} values for threshold {r}"
            )
        weights = np.zeros((r, r))
        weights[np.triu_indices(r)] = packed
        return weights


def derivative(time: float, state: Sequence[float], params: ModelParameters) -> np.ndarray:
    """Return the time derivative of ``state`` under the binding model."""
    n = params.target_molecule_count
    if n < 1:
        raise ParameterError("the model needs at least one target molecule per cell")
    r = params.replication_threshold
    k = params.killing_threshold
    if r < 0 or r > n:
        raise ParameterError(f"replication threshold {r} is outside 0..{n}")

    y = np.asarray(state, dtype=float)
    if y.shape != (n + FREE_VARIABLE_COUNT + 1,):
        raise ValueError(
            f"state must hold {n + FREE_VARIABLE_COUNT + 1} values, got {y.size}"
        )
    free_target, free_complex = y[0], y[1]
    bound = y[FREE_VARIABLE_COUNT:]

    replication = params.baseline_replication
    kill = params.maximum_kill_rate
    dissociation = params.target_dissociation_rate
    antibiotic = params.free_antibiotic(time)
    rate = params.target_association_rate / (
        AVOGADRO_CONSTANT * params.intracellular_volume
    )

    counts = np.arange(1, n + 1)
    forward = rate * antibiotic * bound[:-1]
    backward = dissociation * counts * bound[1:]
    room = (params.carrying_capacity - bound.sum()) / params.carrying_capacity

    killed = counts >= k
    death_free = float(np.sum(bound[1:][killed] * (n - counts[killed])))
    death_bound = float(np.sum(bound[1:][killed] * counts[killed]))

    growth = np.zeros(n + 1)
    if r > 0:
        inherited = params._replication_weights() @ bound[:r]
        growth[:r] = 2.0 * replication * inherited * room - replication * room * bound[:r]
        # Integer division: replication stops for B_0 only when r == n.
        growth[0] *= 1.0 - r // n
    else:
        growth[0] = -replication * room * bound[0]

    if k == 0:
        death_free += bound[0] * n
        growth[0] -= kill * bound[0]
    interior = growth[1:n]
    dying = np.arange(1, n) >= k
    interior[dying] -= kill * bound[1:n][dying]

    death_free *= kill
    death_bound *= kill

    result = np.empty_like(y)
    d_bound = result[FREE_VARIABLE_COUNT:]
    d_bound[0] = backward[0] - n * forward[0] + growth[0]
    d_bound[n] = forward[n - 1] - backward[n - 1] - kill * bound[n]
    middle = np.arange(1, n)
    d_bound[1:n] = (
        (n - middle + 1) * forward[:-1]
        - (n - middle) * forward[1:]
        + backward[1:]
        - backward[:-1]
        + growth[1:n]
    )

    exchange = antibiotic * free_target * rate - dissociation * free_complex
    result[0] = death_free - exchange
    result[1] = death_bound + exchange
    return result