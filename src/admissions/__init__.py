"""Admission workflow core: assessment scoring, invoicing and step tracking."""

__version__ = "0.1.0"
