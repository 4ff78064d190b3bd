"""
fitm: snapshot-based state store for alternating client/server fuzzing
"""

__version__ = "0.1.0"
__author__ = "fitm Development Team"
