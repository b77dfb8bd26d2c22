"""
Utils: geometry and joint-angle helpers.
"""

from .angle_calculator import (
    AngleCalculator,
    angle,
    midpoint,
    norm,
    scale_divide,
    subtract,
)

__all__ = [
    'AngleCalculator',
    'angle',
    'midpoint',
    'norm',
    'scale_divide',
    'subtract',
]
