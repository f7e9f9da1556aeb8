"""
Fantasy football league engine: scheduling, match simulation, standings,
player condition and transfers on top of a SQLite document store.
"""

__version__ = "0.1.0"
