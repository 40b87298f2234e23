"""Rollup settlement layer — block commitments, proof verification, finality."""

__version__ = "0.1.0"
