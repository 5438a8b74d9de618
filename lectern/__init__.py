"""
Lectern - scripture lookup by free-form reference over a local,
normalized verse cache.
"""

__version__ = "0.1.0"
