"""Opik tracing and metric helpers."""
