"""Asynchronous medication usage report generation."""
