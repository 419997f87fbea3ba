"""
portraitbg: heuristic background replacement for CV portraits
"""

__version__ = "0.1.0"
