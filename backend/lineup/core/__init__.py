"""Configuration, logging, security and shared utilities."""
