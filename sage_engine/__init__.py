"""Sage Codex engine: streaming tool-call pipeline and cross-section propagation."""

__version__ = "0.1.0"
