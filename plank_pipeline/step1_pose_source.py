"""
Step 1: Pose Source
Landmark types and a MediaPipe adapter that turns RGB frames into poses.
"""

import cv2
import numpy as np
from typing import Dict, List
from dataclasses import dataclass

from . import config


@dataclass(frozen=True)
class Landmark:
    """Single pose landmark."""
    x: float  # Pixel space
    y: float  # Pixel space
    z: float  # Depth, relative to hip center
    visibility: float  # Confidence [0, 1]


# One detected subject in one frame: joint name -> Landmark
Pose = Dict[str, Landmark]


# Canonical joint order used by the feature vector (17 joints)
TRACKED_LANDMARKS = [
    'nose',
    'left_shoulder', 'right_shoulder',
    'left_elbow', 'right_elbow',
    'left_wrist', 'right_wrist',
    'left_hip', 'right_hip',
    'left_knee', 'right_knee',
    'left_ankle', 'right_ankle',
    'left_heel', 'right_heel',
    'left_foot_index', 'right_foot_index',
]

# Joints required for torso normalization
REQUIRED_LANDMARKS = ['left_hip', 'right_hip', 'left_shoulder', 'right_shoulder']


class MediaPipePoseSource:
    """
    Detect poses with MediaPipe and emit pixel-space landmarks.

    Only the tracked joints are kept. Landmarks below `min_visibility`
    are dropped so downstream code sees them as missing.
    """

    # MediaPipe Pose landmark indices
    MEDIAPIPE_INDICES = {
        'nose': 0,
        'left_shoulder': 11,
        'right_shoulder': 12,
        'left_elbow': 13,
        'right_elbow': 14,
        'left_wrist': 15,
        'right_wrist': 16,
        'left_hip': 23,
        'right_hip': 24,
        'left_knee': 25,
        'right_knee': 26,
        'left_ankle': 27,
        'right_ankle': 28,
        'left_heel': 29,
        'right_heel': 30,
        'left_foot_index': 31,
        'right_foot_index': 32,
    }

    def __init__(self,
                 min_detection_confidence: float = config.MIN_DETECTION_CONFIDENCE,
                 min_tracking_confidence: float = config.MIN_TRACKING_CONFIDENCE,
                 model_complexity: int = config.MODEL_COMPLEXITY,
                 min_visibility: float = 0.0):
        """
        Initialize MediaPipe Pose.

        Args:
            min_detection_confidence: Detection confidence threshold
            min_tracking_confidence: Tracking confidence threshold
            model_complexity: MediaPipe model complexity (0, 1, 2)
            min_visibility: Landmarks below this visibility are dropped
        """
        import mediapipe as mp

        self.min_visibility = min_visibility
        self.pose = mp.solutions.pose.Pose(
            static_image_mode=False,  # Video mode for better tracking
            model_complexity=model_complexity,
            enable_segmentation=False,
            min_detection_confidence=min_detection_confidence,
            min_tracking_confidence=min_tracking_confidence
        )

    def process(self, rgb_frame: np.ndarray) -> List[Pose]:
        """
        Detect poses on an RGB frame.

        Returns:
            List with zero or one Pose (MediaPipe Pose tracks one subject)
        """
        h, w = rgb_frame.shape[:2]

        rgb_frame.flags.writeable = False
        results = self.pose.process(rgb_frame)
        rgb_frame.flags.writeable = True

        if not results.pose_landmarks:
            return []

        return [self.to_pose(results.pose_landmarks.landmark, w, h)]

    def process_bgr(self, frame: np.ndarray) -> List[Pose]:
        """Same as process() for BGR frames (OpenCV capture order)."""
        return self.process(cv2.cvtColor(frame, cv2.COLOR_BGR2RGB))

    def to_pose(self, raw_landmarks, frame_width: int, frame_height: int) -> Pose:
        """Convert MediaPipe normalized landmarks into a pixel-space Pose."""
        pose = {}
        for name, idx in self.MEDIAPIPE_INDICES.items():
            if idx >= len(raw_landmarks):
                continue
            lm = raw_landmarks[idx]
            visibility = float(getattr(lm, 'visibility', 0.0) or 0.0)
            if visibility < self.min_visibility:
                continue
            pose[name] = Landmark(
                x=float(lm.x) * frame_width,
                y=float(lm.y) * frame_height,
                z=float(lm.z) * frame_width,
                visibility=visibility
            )
        return pose

    def close(self) -> None:
        """Release resources."""
        self.pose.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

