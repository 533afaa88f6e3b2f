"""Shared utilities."""

from .units import UnitFormatter

__all__ = ['UnitFormatter']
