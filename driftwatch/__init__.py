"""
Driftwatch - behavioral drift monitor with a calming overload intervention
"""

__version__ = "0.3.0"
