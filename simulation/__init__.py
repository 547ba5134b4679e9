"""Synchronous load simulation."""
from .engine import LoadSimulationEngine

__all__ = ["LoadSimulationEngine"]
