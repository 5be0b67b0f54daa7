"""Set-up and main loop of a binding-model simulation.

The ODE system of :mod:`tbsim.model` is integrated from time zero. The
summary of every time point is collected: the time, the total bacterial
population and the plasma antibiotic concentration. The per-compartment
state can also be written to a text stream as it is produced.
"""

from __future__ import annotations

import math
import sys
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TextIO

import numpy as np
from scipy.integrate import solve_ivp

from tbsim.model import (
    FREE_VARIABLE_COUNT,
    ModelParameters,
    ParameterError,
    derivative,
)

__all__ = [
    "DEFAULT_STARTING_ANTIBIOTIC",
    "DEFAULT_STARTING_POPULATION",
    "DEFAULT_SIMULATION_END_TIME",
    "DEFAULT_SIMULATION_STEP_SIZE",
    "SimulationParameters",
    "SimulationResults",
    "Stepper",
    "SimulationError",
    "hypergeometric_matrix",
    "initial_state",
    "run_simulation",
]

DEFAULT_STARTING_ANTIBIOTIC = 1e4
DEFAULT_STARTING_POPULATION = 1e6
DEFAULT_SIMULATION_END_TIME = 360000.0
DEFAULT_SIMULATION_STEP_SIZE = 3600.0

_TOLERANCE = 1e-5


@dataclass
class SimulationParameters:
    """How a simulation is started and sampled."""

    starting_antibiotic: float = DEFAULT_STARTING_ANTIBIOTIC
    starting_population: float = DEFAULT_STARTING_POPULATION
    end_time: float = DEFAULT_SIMULATION_END_TIME
    step_size: float = DEFAULT_SIMULATION_STEP_SIZE


@dataclass
class SimulationResults:
    """Aggregated results, one entry per time point."""

    time_point: list[float] = field(default_factory=list)
    total_population: list[float] = field(default_factory=list)
    unbound_antibiotic: list[float] = field(default_factory=list)
    final_time: float = 0.0
    final_population: float = 0.0
    final_state: np.ndarray = field(default_factory=lambda: np.zeros(0))


class SimulationError(RuntimeError):
    """Raised when the ODE solver fails."""


class Stepper(Enum):
    """Integration method, named after the command-line choices."""

    RK2 = "rk2"
    RK4 = "rk4"
    RKF45 = "rkf45"
    RKCK = "rkck"
    MSBDF = "msbdf"
    BSIMP = "bsimp"
    MSADAMS = "msadams"

    @classmethod
    def from_name(cls, name: str) -> Stepper:
        """Return the stepper called ``name``; raise ValueError if unknown."""
        try:
            return cls(name)
        except ValueError:
            known = ", ".join(member.value for member in cls)
            raise ValueError(f"unknown stepping function {name!r}; expected one of {known}") from None

    @property
    def method(self) -> str:
        """The solver method used for this stepper."""
        return _SOLVER_METHODS[self]


_SOLVER_METHODS = {
    Stepper.RK2: "RK23",
    Stepper.RK4: "RK45",
    Stepper.RKF45: "RK45",
    Stepper.RKCK: "RK45",
    Stepper.MSBDF: "BDF",
    Stepper.BSIMP: "Radau",
    Stepper.MSADAMS: "LSODA",
}


def _ln_choose(n: int, m: int) -> float:
    if m < 0 or m > n:
        raise ValueError(f"cannot choose {m} from {n}")
    return math.lgamma(n + 1) - math.lgamma(m + 1) - math.lgamma(n - m + 1)


def hypergeometric_matrix(population_count: int, replication_threshold: int) -> np.ndarray:
    """Hypergeometric inheritance probabilities below the replication threshold.

    Entry ``(i, j)`` with ``i <= j`` is the chance that a daughter cell
    gets ``i`` bound targets from a parent with ``j``.  The upper triangle,
    diagonal included, is packed row by row into a flat vector of
    ``r * (r + 1) / 2`` values.
    """
    if replication_threshold < 0:
        raise ValueError("replication threshold must not be negative")
    if replication_threshold > population_count:
        raise ValueError("replication threshold must not exceed the target count")
    total = _ln_choose(2 * population_count, population_count)
    values = [
        math.exp(
            _ln_choose(j, i)
            + _ln_choose(2 * population_count - j, population_count - i)
            - total
        )
        for i in range(replication_threshold)
        for j in range(i, replication_threshold)
    ]
    return np.array(values, dtype=float)


def initial_state(
    target_molecule_count: int, starting_antibiotic: float, starting_population: float
) -> np.ndarray:
    """Starting state: the dose in the first slot, every cell unbound."""
    if target_molecule_count < 0:
        raise ValueError("target molecule count must not be negative")
    state = np.zeros(FREE_VARIABLE_COUNT + target_molecule_count + 1)
    state[0] = starting_antibiotic
    state[FREE_VARIABLE_COUNT] = starting_population
    return state


def _plasma_concentration(params: ModelParameters, time: float) -> float:
    samples = params.antibiotic_concentrations
    if samples.size == 0:
        raise ParameterError("no antibiotic concentrations supplied")
    index = min(max(math.floor(time / params.steptime), 0), samples.size - 1)
    return float(samples[index])


def _sample_times(end_time: float, interval: float) -> list[float]:
    times = [0.0]
    next_time = interval
    while next_time < end_time:
        times.append(next_time)
        next_time += interval
    return times


def run_simulation(
    stepper: Stepper | str,
    params: ModelParameters,
    end_time: float,
    interval: float,
    state: Sequence[float],
    matrix_out: TextIO | None = None,
    verbose: bool = False,
) -> SimulationResults:
    """Integrate the model from ``state`` and collect one summary per interval.

    If ``matrix_out`` is given, one line per time point is written to it:
    the compartment counts, the time, the population, the plasma
    concentration and the free bound complex.
    """
    if interval <= 0:
        raise ValueError("time interval must be positive")
    if isinstance(stepper, str):
        stepper = Stepper.from_name(stepper)
    if params.steptime <= 0:
        raise ParameterError("step time must be positive")
    n = params.target_molecule_count
    if params.hypergeometric_matrix is None:
        params = replace(
            params,
            hypergeometric_matrix=hypergeometric_matrix(n, params.replication_threshold),
        )

    y0 = np.asarray(state, dtype=float)
    size = FREE_VARIABLE_COUNT + n + 1
    if y0.shape != (size,):
        raise ValueError(f"state must hold {size} values, got {y0.size}")

    if verbose:
        print(f"\ncreating system with {size} free variables")

    times = _sample_times(end_time, interval)
    if len(times) > 1:
        solution = solve_ivp(
            lambda t, y: derivative(t, y, params),
            (0.0, times[-1]),
            y0,
            method=stepper.method,
            t_eval=times,
            rtol=_TOLERANCE,
            atol=_TOLERANCE,
            first_step=min(interval, times[-1]),
        )
        if not solution.success:
            raise SimulationError(f"integration failed: {solution.message}")
        states = solution.y.T
    else:
        states = y0[np.newaxis, :]

    results = SimulationResults()
    for time, current in zip(times, states):
        bound = current[FREE_VARIABLE_COUNT:]
        population = max(float(bound.sum()), 0.0)
        concentration = _plasma_concentration(params, time)
        if matrix_out is not None:
            fields = [*bound, time, population, concentration, current[1]]
            matrix_out.write("".join(f"{value:f} " for value in fields) + "\n")
        results.time_point.append(time)
        results.total_population.append(population)
        results.unbound_antibiotic.append(concentration)
        if verbose:
            print(
                f"{time:.4g} {population:.8g} {concentration:.8g}                   ",
                end="\r",
            )
            sys.stdout.flush()
    if verbose:
        print("\n")

    results.final_time = results.time_point[-1]
    results.final_population = results.total_population[-1]
    results.final_state = np.array(states[-1], dtype=float)
    return results