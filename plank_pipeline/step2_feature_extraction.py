"""
Step 2: Feature Extraction
==========================
Converts one detected pose into the feature vector the plank model expects.

Two normalization strategies:
- TORSO_RELATIVE: hip-centered, torso-scaled (x, y, z) for 17 joints + 9 angles = 60
- PIXEL_RELATIVE: frame-relative (x, y, z, visibility) for 17 joints = 68
"""

import numpy as np
from enum import Enum
from typing import Dict, Optional, Tuple

from . import config
from .step1_pose_source import Pose, REQUIRED_LANDMARKS, TRACKED_LANDMARKS
from .utils.angle_calculator import AngleCalculator, midpoint, norm, scale_divide, subtract


class Normalization(Enum):
    """Coordinate normalization applied before classification."""
    PIXEL_RELATIVE = "pixel_relative"
    TORSO_RELATIVE = "torso_relative"


TORSO_FEATURE_SIZE = len(TRACKED_LANDMARKS) * 3 + len(AngleCalculator.ANGLE_ORDER)  # 60
PIXEL_FEATURE_SIZE = len(TRACKED_LANDMARKS) * 4  # 68


class FeatureExtractor:
    """
    Build a fixed-length feature vector from a Pose.

    The torso-relative vector is invariant to where the subject stands in
    the frame and to camera distance, which is the geometry the plank
    model was trained on.
    """

    def __init__(
        self,
        normalization: Normalization = Normalization(config.NORMALIZATION),
        torso_epsilon: float = config.TORSO_EPSILON
    ):
        self.normalization = Normalization(normalization)
        self.torso_epsilon = torso_epsilon

    @property
    def feature_size(self) -> int:
        if self.normalization is Normalization.PIXEL_RELATIVE:
            return PIXEL_FEATURE_SIZE
        return TORSO_FEATURE_SIZE

    def extract(
        self,
        pose: Pose,
        frame_size: Optional[Tuple[float, float]] = None,
        rotation: int = 0
    ) -> Optional[np.ndarray]:
        """
        Extract the feature vector for one pose.

        Args:
            pose: Dict joint name -> Landmark
            frame_size: (width, height), required for PIXEL_RELATIVE
            rotation: Frame rotation in degrees (0, 90, 180, 270)

        Returns:
            float32 array of length feature_size, or None when the pose
            cannot be normalized (missing torso joints, degenerate torso)
        """
        if self.normalization is Normalization.PIXEL_RELATIVE:
            return self._extract_pixel_relative(pose, frame_size, rotation)

        coords = self.normalize_coordinates(pose)
        if coords is None:
            return None

        features = []
        for name in TRACKED_LANDMARKS:
            point = coords.get(name)
            if point is None:
                features.extend([0.0, 0.0, 0.0])
            else:
                features.extend(point.tolist())

        angles = AngleCalculator.calculate_all_angles(coords)
        features.extend(angles[name] for name in AngleCalculator.ANGLE_ORDER)

        return np.array(features, dtype=np.float32)

    def normalize_coordinates(self, pose: Pose) -> Optional[Dict[str, np.ndarray]]:
        """
        Translate to the hip midpoint and scale by torso size.

        Returns:
            Dict joint name -> normalized (x, y, z), or None if the pose
            lacks a required joint or the torso size is below epsilon
        """
        if any(pose.get(name) is None for name in REQUIRED_LANDMARKS):
            return None

        raw = {
            name: np.array([lm.x, lm.y, lm.z], dtype=np.float64)
            for name, lm in pose.items()
            if lm is not None
        }

        hip_center = midpoint(raw['left_hip'], raw['right_hip'])
        translated = {name: subtract(point, hip_center) for name, point in raw.items()}

        shoulder_center = midpoint(translated['left_shoulder'], translated['right_shoulder'])
        torso_size = norm(shoulder_center)
        if torso_size < self.torso_epsilon:
            return None

        return {name: scale_divide(point, torso_size) for name, point in translated.items()}

    def joint_angles(self, pose: Pose) -> Optional[Dict[str, float]]:
        """The nine joint angles (degrees) on normalized coordinates."""
        coords = self.normalize_coordinates(pose)
        if coords is None:
            return None
        return AngleCalculator.calculate_all_angles(coords)

    def _extract_pixel_relative(
        self,
        pose: Pose,
        frame_size: Optional[Tuple[float, float]],
        rotation: int
    ) -> np.ndarray:
        if frame_size is None:
            raise ValueError("frame_size is required for pixel-relative normalization")
        width, height = frame_size
        if width <= 0 or height <= 0:
            raise ValueError(f"Invalid frame size: {frame_size}")

        # Portrait frames (90/270) report x and y swapped
        swap_axes = rotation % 180 == 90

        features = []
        for name in TRACKED_LANDMARKS:
            lm = pose.get(name)
            if lm is None:
                features.extend([0.0, 0.0, 0.0, 0.0])
                continue

            if swap_axes:
                x, y = lm.y / height, lm.x / width
            else:
                x, y = lm.x / width, lm.y / height
            features.extend([x, y, lm.z, lm.visibility])

        return np.array(features, dtype=np.float32)
