"""Ruleta -- a decision wheel for when two people can't pick."""

__version__ = "0.1.0"
