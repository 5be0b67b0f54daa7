"""Formatting helpers and the YAML results report of a simulation run."""

from __future__ import annotations

from collections.abc import Iterator
from typing import TextIO

import yaml

from tbsim.simulation import SimulationParameters

__all__ = [
    "VERSION_MAJOR",
    "VERSION_MINOR",
    "VERSION_STRING",
    "format_g",
    "header_line",
    "results_document",
    "write_results_yaml",
]

VERSION_MAJOR = 0
VERSION_MINOR = 1
VERSION_STRING = f"{VERSION_MAJOR}.{VERSION_MINOR}"

_YAML_VERSION = (1, 1)


def format_g(value: float) -> str:
    """Format ``value`` in the shortest general notation, six significant digits."""
    return f"{value:g}"


def header_line(target_molecule_count: int) -> str:
    """Column header for the per-compartment matrix output.

    One column per compartment (``L0``, ``Li`` ..., ``Ln``), followed by
    time, population, antibiotic and bound-complex columns.  Every column
    name is followed by a space.
    """
    if target_molecule_count < 0:
        raise ValueError("target molecule count must not be negative")
    names = ["L0 "] + ["Li "] * target_molecule_count
    names[target_molecule_count] = "Ln "
    names += ["tm ", "BP ", "An ", "AT "]
    return "".join(names)


def results_document(sim_params: SimulationParameters) -> dict[str, dict[str, str]]:
    """The report as a mapping; numbers are kept in their printed form."""
    return {
        "simulation-parameters": {
            "starting-population": format_g(sim_params.starting_population),
            "starting-antibiotic": format_g(sim_params.starting_antibiotic),
        }
    }


def _scalar(text: str) -> yaml.ScalarEvent:
    return yaml.ScalarEvent(anchor=None, tag=None, implicit=(True, True), value=text)


def _mapping_events(mapping: dict) -> Iterator[yaml.Event]:
    yield yaml.MappingStartEvent(anchor=None, tag=None, implicit=True, flow_style=False)
    for key, value in mapping.items():
        yield _scalar(key)
        if isinstance(value, dict):
            yield from _mapping_events(value)
        else:
            yield _scalar(value)
    yield yaml.MappingEndEvent()


def _document_events(sim_params: SimulationParameters) -> Iterator[yaml.Event]:
    yield yaml.StreamStartEvent()
    yield yaml.DocumentStartEvent(explicit=True, version=_YAML_VERSION, tags=None)
    yield from _mapping_events(results_document(sim_params))
    yield yaml.DocumentEndEvent(explicit=True)
    yield yaml.StreamEndEvent()


def write_results_yaml(sim_params: SimulationParameters, stream: TextIO) -> str:
    """Write the YAML report to ``stream`` and return the text written."""
    text = yaml.emit(_document_events(sim_params), allow_unicode=True)
    stream.write(text)
    return text