"""FastAPI boundary for the performance test engine."""
