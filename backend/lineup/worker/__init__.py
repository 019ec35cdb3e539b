"""Background worker entrypoints."""
