"""Collect infrastructure from several inventory sources into one model."""

__version__ = "0.1.0"