"""
Angle Calculator Utility
Vector arithmetic and joint angles for normalized pose coordinates.
"""

import numpy as np
from typing import Dict, Mapping, Optional, Sequence


def subtract(a: Sequence[float], b: Sequence[float]) -> np.ndarray:
    """Component-wise a - b."""
    return np.asarray(a, dtype=np.float64) - np.asarray(b, dtype=np.float64)


def scale_divide(v: Sequence[float], s: float) -> np.ndarray:
    """Divide every component of v by s. Callers guard against s == 0."""
    return np.asarray(v, dtype=np.float64) / s


def norm(v: Sequence[float]) -> float:
    """Euclidean length."""
    return float(np.linalg.norm(np.asarray(v, dtype=np.float64)))


def midpoint(a: Sequence[float], b: Sequence[float]) -> np.ndarray:
    return (np.asarray(a, dtype=np.float64) + np.asarray(b, dtype=np.float64)) / 2.0


def angle(
    point_a: Sequence[float],
    vertex: Sequence[float],
    point_b: Sequence[float]
) -> float:
    """
    Calculate angle at vertex between point_a and point_b.

    Args:
        point_a: First point (x, y, z)
        vertex: Vertex point where angle is measured
        point_b: Second point (x, y, z)

    Returns:
        Angle in degrees [0, 180], or 0.0 if either ray has zero length
    """
    va = subtract(point_a, vertex)
    vb = subtract(point_b, vertex)

    norm_a = np.linalg.norm(va)
    norm_b = np.linalg.norm(vb)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    cos_angle = np.dot(va, vb) / (norm_a * norm_b)
    cos_angle = np.clip(cos_angle, -1.0, 1.0)

    return float(np.degrees(np.arccos(cos_angle)))


class AngleCalculator:
    """
    Calculate the nine plank joint angles from normalized coordinates.

    - left_elbow, right_elbow       (shoulder - elbow - wrist)
    - left_shoulder, right_shoulder (hip - shoulder - elbow)
    - left_hip, right_hip           (shoulder - hip - knee)
    - left_knee, right_knee         (hip - knee - ankle)
    - back                          (left shoulder - left hip - left ankle)
    """

    # Angle definitions: (point_a, vertex, point_b)
    ANGLE_DEFINITIONS = {
        'left_elbow': ('left_shoulder', 'left_elbow', 'left_wrist'),
        'right_elbow': ('right_shoulder', 'right_elbow', 'right_wrist'),
        'left_shoulder': ('left_hip', 'left_shoulder', 'left_elbow'),
        'right_shoulder': ('right_hip', 'right_shoulder', 'right_elbow'),
        'left_hip': ('left_shoulder', 'left_hip', 'left_knee'),
        'right_hip': ('right_shoulder', 'right_hip', 'right_knee'),
        'left_knee': ('left_hip', 'left_knee', 'left_ankle'),
        'right_knee': ('right_hip', 'right_knee', 'right_ankle'),
        'back': ('left_shoulder', 'left_hip', 'left_ankle'),
    }

    # Order of angles in the feature vector
    ANGLE_ORDER = [
        'left_elbow', 'right_elbow',
        'left_shoulder', 'right_shoulder',
        'left_hip', 'right_hip',
        'left_knee', 'right_knee',
        'back'
    ]

    @classmethod
    def calculate_all_angles(
        cls,
        coords: Mapping[str, Optional[Sequence[float]]]
    ) -> Dict[str, float]:
        """
        Calculate all nine angles, in ANGLE_ORDER.

        A definition that references a missing joint yields 0.0.
        """
        angles = {}
        for angle_name in cls.ANGLE_ORDER:
            pt_a_name, vertex_name, pt_b_name = cls.ANGLE_DEFINITIONS[angle_name]
            pt_a = coords.get(pt_a_name)
            vertex = coords.get(vertex_name)
            pt_b = coords.get(pt_b_name)

            if pt_a is None or vertex is None or pt_b is None:
                angles[angle_name] = 0.0
                continue

            angles[angle_name] = angle(pt_a, vertex, pt_b)

        return angles
