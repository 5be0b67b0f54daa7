"""Deterministic simulation of antibiotic target binding and bacterial population dynamics."""

__version__ = "0.1.0"