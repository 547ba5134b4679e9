"""Performance test engine: test lifecycle registry, background runner and load simulator."""

__version__ = "1.0.0"
