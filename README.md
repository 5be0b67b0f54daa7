# tbsim

A deterministic model of how an antibiotic binds to its target molecules inside
bacterial cells, and how the number of bound targets per cell stops replication
and drives killing. The population is split into compartments by the number of
bound targets per cell (0 through *n*). The free-drug level over time comes
from a plasma concentration profile read from a file and is interpolated
linearly between samples. The ODE system is integrated with SciPy and sampled on
a fixed time grid.

## Installation

```
pip install .
```

For the test suite:

```
pip install .[test]
pytest
```

## Command line

```
tbsim -i concentrations.txt -m compartments.txt -o results.yaml
```

`-i` is required. The input file holds free-drug concentrations (ng/mL), one
per time interval, separated by whitespace. At least `END / STEP` values
(rounded down) must be present. Each value is converted to molecules per cell
using the intracellular volume and the drug's molecular weight.

Main options (run `tbsim --help` for the full list and defaults):

| Option | Meaning |
| --- | --- |
| `-n, --targetMoleculeCount` | target molecules per cell |
| `-k, --killingThreshold` | bound targets at which killing starts |
| `-r, --replicationThreshold` | bound targets at which replication stops (default: killing threshold − 1) |
| `-R, --baselineReplicationRate` | replication rate (1/s) |
| `-K, --maximumKillingRate` | killing rate (1/s) |
| `-A, --targetAssociationRate` | association rate (L/mol/s) |
| `-D, --targetDissociationRate` | dissociation rate (1/s) |
| `-V, --intracellularVolume` | cell volume (L) |
| `-M, --molecularweight` | drug molecular weight (g/mol) |
| `-C, --carryingCapacity` | maximum population |
| `-p, --startingPopulation` | initial population |
| `-d, --startingAntibiotic` | initial dose |
| `-t, --time END:STEP` | simulation length and sampling interval in seconds |
| `-S, --steppingFunction` | integrator: rk2 (default), rk4, rkf45, rkck, msbdf, bsimp, msadams |
| `-i, --inputFile` | drug concentration profile |
| `-m, --outputFileM` | per-step compartment table |
| `-o, --outputFile` | YAML summary |
| `-v, --verbose` | print parameters, progress and final population |

Numeric option values are read from their leading number. A value with no
number in it, or an unknown stepping function name, leaves the default in
place. Parameters out of range are reported on standard error and the command
exits with status 1.

The stepping functions select SciPy `solve_ivp` methods: `rk2` uses RK23,
`rk4`, `rkf45` and `rkck` use RK45, `msbdf` uses BDF, `bsimp` uses Radau, and
`msadams` uses LSODA.

Each line of the compartment table lists the compartment values, then the time,
the total population, the plasma drug level and the free bound complex. The
column header (`L0 Li ... Ln tm BP An AT`) is printed to standard output and
appended as the last line of the table.

## Library use

```python
from tbsim.model import ModelParameters
from tbsim.simulation import Stepper, hypergeometric_matrix, initial_state, run_simulation
```

- `tbsim.model.ModelParameters` holds the model parameters.
  `free_antibiotic(time)` interpolates the concentration profile.
  `problems()` lists out-of-range parameters, and `validate()` raises
  `ParameterError` when there are any. `derivative(time, state, params)`
  returns the right-hand side of the ODE system.
- `tbsim.simulation.run_simulation(stepper, params, end_time, interval, state,
  matrix_out=None, verbose=False)` returns a `SimulationResults` with the time
  points, total population and plasma concentration at each step, and the final
  state. It raises `SimulationError` if the integrator fails.
  `Stepper.from_name` turns a command-line name into a stepper.
- `tbsim.report.write_results_yaml(sim_params, stream)` writes the YAML summary.
  `header_line(n)` builds the compartment table header.

`tbsim.argparser` provides the POSIX/GNU-style option parser that the command
uses (`parse_arguments`, `parse_single`, `option_name`, `Option`, `HasArg`).
It raises `ArgumentError` on a bad option. `tbsim-argdemo` is a small command
that shows how the parser splits a command line:

```
tbsim-argdemo -a --block=x file.txt
```

## Limitations

- The YAML summary written with `-o` holds only the starting population and
  starting antibiotic under `simulation-parameters`. It does not hold the
  per-step results. Those go to the compartment table written with `-m`.
- The free-drug level always comes from the input profile. There is no built-in
  dosing or pharmacokinetic model, and non-specific binding and membrane
  permeability are stored but not used in the equations.