"""Agent-backed resume tailoring with streamed progress and project reconciliation."""

__version__ = "0.1.0"
