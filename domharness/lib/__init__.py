"""Backend independent helpers: comparison, waits, navigation and HTTP."""
