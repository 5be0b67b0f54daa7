"""Command-line entry point of the tuberculosis treatment simulator.

The command reads the plasma antibiotic concentrations from a file,
integrates the binding model and writes the per-compartment matrix and a
YAML summary if asked to.
"""

from __future__ import annotations

import math
import os
import re
import sys
import time
from collections.abc import Sequence
from contextlib import ExitStack
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np
import yaml

from tbsim.argparser import ArgumentError, HasArg, Option, parse_arguments
from tbsim.model import (
    DEFAULT_BASELINE_REPLICATION,
    DEFAULT_CARRYING_CAPACITY,
    DEFAULT_INTRACELLULAR_VOLUME,
    DEFAULT_MAXIMUM_KILL_RATE,
    DEFAULT_MOLECULAR_WEIGHT,
    DEFAULT_TARGET_ASSOCIATION_RATE,
    DEFAULT_TARGET_DISSOCIATION_RATE,
    DEFAULT_TARGET_MOLECULE_COUNT,
    DEFAULT_THRESHOLD,
    FREE_VARIABLE_COUNT,
    ModelParameters,
)
from tbsim.report import VERSION_STRING, format_g, header_line, write_results_yaml
from tbsim.simulation import (
    DEFAULT_SIMULATION_END_TIME,
    DEFAULT_SIMULATION_STEP_SIZE,
    DEFAULT_STARTING_ANTIBIOTIC,
    DEFAULT_STARTING_POPULATION,
    SimulationError,
    SimulationParameters,
    Stepper,
    hypergeometric_matrix,
    initial_state,
    run_simulation,
)

__all__ = [
    "PROGRAM_NAME",
    "COMMAND_OPTIONS",
    "RunConfig",
    "help_text",
    "parse_command_line",
    "read_concentrations",
    "main",
]

PROGRAM_NAME = "tbsim"

# A threshold given as this value counts as "not given".
_UNSET_THRESHOLD = -12345

# Plasma concentration (ng/mL) to molecules per cell: 1e-3 g/L * N_A / MW * V.
_CONCENTRATION_FACTOR = 6.02e20

COMMAND_OPTIONS: tuple[Option, ...] = (
    Option("v", "verbose", HasArg.NO),
    Option("h", "help", HasArg.NO),
    Option("V", "intracellularVolume", HasArg.YES),
    Option("n", "targetMoleculeCount", HasArg.YES),
    Option("r", "replicationThreshold", HasArg.YES),
    Option("k", "killingThreshold", HasArg.YES),
    Option("R", "baselineReplicationRate", HasArg.YES),
    Option("K", "maximumKillingRate", HasArg.YES),
    Option("A", "targetAssociationRate", HasArg.YES),
    Option("D", "targetDissociationRate", HasArg.YES),
    Option("C", "carryingCapacity", HasArg.YES),
    Option("t", "time", HasArg.YES),
    Option("d", "startingAntibiotic", HasArg.YES),
    Option("M", "molecularweight", HasArg.YES),
    Option("p", "startingPopulation", HasArg.YES),
    Option("o", "outputFile", HasArg.YES),
    Option("m", "outputFileM", HasArg.YES),
    Option("i", "inputFile", HasArg.YES),
    Option("S", "steppingFunction", HasArg.YES),
)

_FLOAT_PREFIX = re.compile(
    r"\s*[+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf(?:inity)?|nan)",
    re.IGNORECASE,
)
_INT_PREFIX = re.compile(r"\s*[+-]?\d+")

_MODEL_FLOATS = {
    "V": "intracellular_volume",
    "R": "baseline_replication",
    "K": "maximum_kill_rate",
    "A": "target_association_rate",
    "D": "target_dissociation_rate",
    "C": "carrying_capacity",
    "M": "molecular_weight",
}
_MODEL_INTS = {
    "n": "target_molecule_count",
    "r": "replication_threshold",
    "k": "killing_threshold",
}
_SIMULATION_FLOATS = {
    "d": "starting_antibiotic",
    "p": "starting_population",
}


@dataclass
class RunConfig:
    """Everything the command line decides about one run."""

    model: ModelParameters = field(default_factory=ModelParameters)
    simulation: SimulationParameters = field(default_factory=SimulationParameters)
    stepper: Stepper = Stepper.RK2
    verbose: bool = False
    output_file: str | None = None
    matrix_file: str | None = None
    input_file: str | None = None
    show_help: bool = False


def _scan_float(text: str) -> tuple[float | None, str]:
    """Leading floating-point number of ``text`` and the rest, like ``%lg``."""
    match = _FLOAT_PREFIX.match(text)
    if match is None:
        return None, text
    return float(match.group().strip()), text[match.end():]


def _scan_int(text: str) -> int | None:
    match = _INT_PREFIX.match(text)
    return int(match.group()) if match else None


def help_text(program_name: str = PROGRAM_NAME) -> str:
    """Return the usage text shown for ``--help``."""
    steppers = ", ".join(member.value for member in Stepper)
    return "\n".join(
        [
            "",
            f"  {program_name} - Tuberculosis simulation software {VERSION_STRING}",
            "",
            f"  usage: {program_name} [options]",
            "",
            "                                 GENERAL OPTIONS",
            "",
            "   -h, --help    : Display this help message.",
            "   -v, --verbose : Display extra information during program run.",
            "",
            "                              SIMULATION PARAMETERS",
            "",
            "   -d, --startingAntibiotic [dose]   : Initial dose quantity.",
            f"                                         default: {format_g(DEFAULT_STARTING_ANTIBIOTIC)}",
            "   -p, --startingPopulation [population]    : Initial bacterial population.",
            f"                                         default: {format_g(DEFAULT_STARTING_POPULATION)}",
            "   -S, --steppingFunction [function] : Stepping function to use for the numerical integration.",
            f"                                         where [function] is one of {{{steppers}}}",
            f"                                         default: {Stepper.RK2.value}",
            "   -t, --time [etime (s)]:[intvl (s)]   : Specifies total simulation time [etime] and interval between time-points [intvl].",
            f"                                         default: {format_g(DEFAULT_SIMULATION_END_TIME)}:{format_g(DEFAULT_SIMULATION_STEP_SIZE)}",
            "",
            "                                 MODEL PARAMETERS",
            "",
            "   -n, --targetMoleculeCount [Integer Number]     : Number of target molecules in a cell.",
            f"                                            default: {DEFAULT_TARGET_MOLECULE_COUNT}",
            "   -R, --baselineReplicationRate [rate (1/s)] : Rate of replication for those bacteria below replication threshold.",
            f"                                            default: {format_g(DEFAULT_BASELINE_REPLICATION)}",
            "   -k, --killingThreshold [FC*n=Integer Number]     : Number of bound target molecules in a cell to cause death.",
            f"                                            default: {DEFAULT_THRESHOLD}",
            "   -r, --replicationThreshold [Integer Number]     : Number of bound target molecules in a cell to stop replication.",
            "                                            default: killing threshold - 1",
            "   -K, --maximumKillingRate [rate (1/s)]      : Rate of death for those bacteria above killing threshold.",
            f"                                            default: {format_g(DEFAULT_MAXIMUM_KILL_RATE)}",
            "   -M, --molecularweight [weight (gr/mol)]         : Drug Molecular Weight gram per mole.",
            f"                                            default: {format_g(DEFAULT_MOLECULAR_WEIGHT)}",
            "   -A, --targetAssociationRate [rate (L/mol/s)]   : Rate constant for association between target and antibiotic.",
            f"                                            default: {format_g(DEFAULT_TARGET_ASSOCIATION_RATE)}",
            "   -D, --targetDissociationRate [rate (1/s)]  : Rate constant for dissociation of target/antibiotic complex.",
            f"                                            default: {format_g(DEFAULT_TARGET_DISSOCIATION_RATE)}",
            "   -V, --intracellularVolume [size (L)]     : Internal volume of a bacterium.",
            f"                                            default: {format_g(DEFAULT_INTRACELLULAR_VOLUME)}",
            "   -C, --carryingCapacity [population]         : Carrying capacity (maximum population) of the system.",
            f"                                            default: {format_g(DEFAULT_CARRYING_CAPACITY)}",
            "",
            "                                DATA OUTPUT OPTIONS",
            "",
            "   -i, --inputFile [ifile]   : Read Drug Concentration from [ifile].",
            "",
            "   -m, --outputFileM [ofile] : Write intracellular compartment vectors to [ofile].",
            "",
            "   -o, --outputFile [ofile]  : Write a YAML summary of the run to [ofile].",
            "",
        ]
    )


def parse_command_line(argv: Sequence[str]) -> RunConfig:
    """Build the run configuration from ``argv`` (program name first).

    Numeric arguments are read from their leading number; an argument with
    no number leaves the default in place, as does an unknown stepping
    function.  Raises :class:`ArgumentError` for malformed options.
    """
    records = parse_arguments(argv, COMMAND_OPTIONS)
    config = RunConfig()
    model_values: dict[str, object] = {
        "killing_threshold": DEFAULT_THRESHOLD,
        "replication_threshold": None,
    }
    simulation = config.simulation

    for record in records:
        if not record.is_option:
            break
        letter = chr(record.code)
        text = record.argument
        if letter == "v":
            config.verbose = True
        elif letter == "h":
            config.show_help = True
            return config
        elif letter in _MODEL_FLOATS:
            value, _ = _scan_float(text)
            if value is not None:
                model_values[_MODEL_FLOATS[letter]] = value
        elif letter in _MODEL_INTS:
            number = _scan_int(text)
            if number is not None:
                model_values[_MODEL_INTS[letter]] = number
        elif letter in _SIMULATION_FLOATS:
            value, _ = _scan_float(text)
            if value is not None:
                setattr(simulation, _SIMULATION_FLOATS[letter], value)
        elif letter == "t":
            end, rest = _scan_float(text)
            if end is not None:
                simulation.end_time = end
                if rest.startswith(":"):
                    step, _ = _scan_float(rest[1:])
                    if step is not None:
                        simulation.step_size = step
        elif letter == "o":
            config.output_file = text
        elif letter == "m":
            config.matrix_file = text
        elif letter == "i":
            config.input_file = text
        elif letter == "S":
            try:
                config.stepper = Stepper.from_name(text)
            except ValueError:
                pass

    for name in ("killing_threshold", "replication_threshold"):
        if model_values[name] == _UNSET_THRESHOLD:
            model_values[name] = None

    if not simulation.step_size > 0:
        raise ArgumentError("time interval must be positive")
    ratio = simulation.end_time / simulation.step_size
    if not math.isfinite(ratio):
        raise ArgumentError("simulation time must be finite")

    config.model = ModelParameters(
        **model_values,
        timepoints=math.floor(ratio),
        steptime=simulation.step_size,
    )
    return config


def read_concentrations(
    path: str | os.PathLike[str],
    count: int,
    intracellular_volume: float,
    molecular_weight: float,
) -> np.ndarray:
    """Read ``count`` plasma concentrations and convert them to molecules per cell."""
    if count < 0:
        raise ValueError("concentration count must not be negative")
    if molecular_weight == 0:
        raise ValueError("molecular weight must not be zero")
    words = Path(path).read_text(encoding="utf-8").split()
    if len(words) < count:
        raise ValueError(f"{path}: expected {count} concentrations, found {len(words)}")
    try:
        values = np.array([float(word) for word in words[:count]], dtype=float)
    except ValueError as exc:
        raise ValueError(f"{path}: {exc}") from None
    return values * _CONCENTRATION_FACTOR * intracellular_volume / molecular_weight


def _error(message: str) -> None:
    print(message, file=sys.stderr)


def _print_parameters(config: RunConfig) -> None:
    sim = config.simulation
    model = config.model
    print()
    print("TB-Simulation: Version 6.0 ")
    print("------------------------------------\n")
    print("\nStarting simulation with arguments")
    print("------------------------------------\n")
    print(f"Starting population     \t{format_g(sim.starting_population)}")
    print(f"Time of simulation      \t{format_g(sim.end_time)}")
    print(f"Step size               \t{format_g(sim.step_size)}\n")
    print(f"Target molecules        \t{model.target_molecule_count}")
    print(f"Maximum kill rate       \t{format_g(model.maximum_kill_rate)}")
    print(f"Killing threshold       \t{model.killing_threshold}")
    print(f"Replication threshold   \t{model.replication_threshold}")
    print(f"Baseline replication    \t{format_g(model.baseline_replication)}")
    print(f"Target association rate \t{format_g(model.target_association_rate)}")
    print(f"Target dissociation rate\t{format_g(model.target_dissociation_rate)}")
    print(f"Drug Molecular Weight    \t{format_g(model.molecular_weight)}")
    print(f"Carrying capacity       \t{format_g(model.carrying_capacity)}")
    print(f"Intracellular volume    \t{format_g(model.intracellular_volume)}")


def main(argv: Sequence[str] | None = None) -> int:
    """Run the simulator; ``argv`` excludes the program name."""
    if argv is None:
        invocation = sys.argv[0] if sys.argv and sys.argv[0] else PROGRAM_NAME
        argv = sys.argv[1:]
    else:
        invocation = PROGRAM_NAME
    program = os.path.basename(invocation) or PROGRAM_NAME

    try:
        config = parse_command_line([invocation, *argv])
    except ArgumentError as exc:
        _error(f"{program}: {exc}")
        _error(f"Try '{invocation} --help' for more information.")
        return 1

    if config.show_help:
        print(help_text(program))
        return 0

    model = config.model
    sim = config.simulation
    if config.input_file is None:
        _error(f"{program}: no concentration input file given (use -i)")
        return 1
    try:
        model.antibiotic_concentrations = read_concentrations(
            config.input_file,
            model.timepoints,
            model.intracellular_volume,
            model.molecular_weight,
        )
    except (OSError, ValueError) as exc:
        _error(f"{program}: {exc}")
        return 1

    if config.verbose:
        _print_parameters(config)

    problems = model.problems()
    if problems:
        for problem in problems:
            _error(problem)
        _error("Failure: Bad parameters supplied")
        return 1

    n = model.target_molecule_count
    with ExitStack() as stack:
        matrix_out = None
        if config.matrix_file is not None:
            if config.verbose:
                print(f"Outputing compartmentBoundComplexState matrix to {config.matrix_file}")
            print("Output File order is as follows:")
            try:
                matrix_out = stack.enter_context(
                    open(config.matrix_file, "w", encoding="utf-8")
                )
            except OSError:
                _error(f"Could not open {config.matrix_file} for writing")
                return 1

        header = header_line(n)
        print(header)

        state = initial_state(n, sim.starting_antibiotic, sim.starting_population)
        started = time.perf_counter()
        try:
            model.hypergeometric_matrix = hypergeometric_matrix(
                n, model.replication_threshold
            )
            results = run_simulation(
                config.stepper,
                model,
                sim.end_time,
                sim.step_size,
                state,
                matrix_out,
                config.verbose,
            )
        except (SimulationError, ValueError) as exc:
            _error(f"{program}: {exc}")
            _error("The simulation failed.")
            return 1
        elapsed = time.perf_counter() - started

        if matrix_out is not None:
            matrix_out.write(header + "\n")

    if config.verbose:
        population = float(results.final_state[FREE_VARIABLE_COUNT:].sum())
        print("Results readout")
        print("---------------\n")
        print(f"Final population {format_g(population)}\n")
        print(f"It took me ({elapsed * 1000.0:f} milliseconds).\n")

    if config.output_file is not None:
        if config.verbose:
            print(f"Outputing results to {config.output_file}")
        try:
            with open(config.output_file, "w", encoding="utf-8") as handle:
                write_results_yaml(sim, handle)
        except OSError:
            _error(f"Could not open {config.output_file} for writing")
            return 1
        except yaml.YAMLError:
            _error("The was an error writing the output file")
            return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())