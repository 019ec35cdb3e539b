"""Lineup backend and timeline client."""
