import unittest

import numpy as np

from plank_pipeline.step1_pose_source import Landmark, REQUIRED_LANDMARKS, TRACKED_LANDMARKS
from plank_pipeline.step2_feature_extraction import (
    PIXEL_FEATURE_SIZE,
    TORSO_FEATURE_SIZE,
    FeatureExtractor,
    Normalization,
)
from plank_pipeline.utils.angle_calculator import AngleCalculator
from tests.support import make_plank_pose


def coord_slice(name):
    i = TRACKED_LANDMARKS.index(name) * 3
    return slice(i, i + 3)


class TestTorsoRelativeExtraction(unittest.TestCase):
    """Hip-centered, torso-scaled feature vector"""

    def setUp(self):
        self.extractor = FeatureExtractor(Normalization.TORSO_RELATIVE)

    def test_feature_size(self):
        self.assertEqual(TORSO_FEATURE_SIZE, 60)
        features = self.extractor.extract(make_plank_pose())
        self.assertEqual(features.shape, (60,))
        self.assertEqual(features.dtype, np.float32)

    def test_length_constant_for_landmark_subsets(self):
        subsets = [
            (),
            ('nose',),
            ('left_wrist', 'right_wrist', 'left_heel', 'right_heel'),
            tuple(n for n in TRACKED_LANDMARKS if n not in REQUIRED_LANDMARKS),
        ]
        for drop in subsets:
            features = self.extractor.extract(make_plank_pose(drop=drop))
            self.assertEqual(len(features), 60, drop)

    def test_missing_required_landmark_returns_none(self):
        for name in REQUIRED_LANDMARKS:
            self.assertIsNone(self.extractor.extract(make_plank_pose(drop=(name,))), name)

    def test_degenerate_torso_returns_none(self):
        pose = make_plank_pose()
        pose['left_shoulder'] = Landmark(400, 310, -10, 0.9)
        pose['right_shoulder'] = Landmark(405, 310, 10, 0.9)
        self.assertIsNone(self.extractor.extract(pose))

    def test_hip_midpoint_is_origin_and_torso_is_unit(self):
        features = self.extractor.extract(make_plank_pose())

        hip_mid = (features[coord_slice('left_hip')] + features[coord_slice('right_hip')]) / 2
        np.testing.assert_allclose(hip_mid, [0, 0, 0], atol=1e-6)

        shoulder_mid = (features[coord_slice('left_shoulder')] + features[coord_slice('right_shoulder')]) / 2
        self.assertAlmostEqual(float(np.linalg.norm(shoulder_mid)), 1.0, places=5)

    def test_missing_joint_is_zero_filled(self):
        features = self.extractor.extract(make_plank_pose(drop=('nose', 'left_wrist')))

        np.testing.assert_array_equal(features[coord_slice('nose')], [0, 0, 0])
        np.testing.assert_array_equal(features[coord_slice('left_wrist')], [0, 0, 0])
        # left elbow angle needs the left wrist
        self.assertEqual(features[51 + AngleCalculator.ANGLE_ORDER.index('left_elbow')], 0.0)
        self.assertGreater(features[51 + AngleCalculator.ANGLE_ORDER.index('right_elbow')], 0.0)

    def test_invariant_to_translation_and_scale(self):
        base = self.extractor.extract(make_plank_pose())
        moved = self.extractor.extract(make_plank_pose(offset=(120.0, -45.0, 3.0), scale=2.5))
        np.testing.assert_allclose(moved, base, atol=1e-4)

    def test_angles_follow_coordinates(self):
        pose = make_plank_pose()
        features = self.extractor.extract(pose)
        angles = self.extractor.joint_angles(pose)

        expected = [angles[name] for name in AngleCalculator.ANGLE_ORDER]
        np.testing.assert_allclose(features[51:], expected, rtol=1e-5)
        # Straight plank: back and knees near 180, elbows near 90
        self.assertGreater(angles['back'], 170.0)
        self.assertGreater(angles['left_knee'], 170.0)
        self.assertAlmostEqual(angles['left_elbow'], 90.0, delta=1.0)

    def test_joint_angles_insufficient_pose(self):
        self.assertIsNone(self.extractor.joint_angles(make_plank_pose(drop=('left_hip',))))


class TestPixelRelativeExtraction(unittest.TestCase):
    """Frame-relative (x, y, z, visibility) feature vector"""

    def setUp(self):
        self.extractor = FeatureExtractor(Normalization.PIXEL_RELATIVE)
        self.frame_size = (800, 600)

    def test_feature_size(self):
        self.assertEqual(self.extractor.feature_size, PIXEL_FEATURE_SIZE)
        features = self.extractor.extract(make_plank_pose(), self.frame_size)
        self.assertEqual(features.shape, (68,))

    def test_landscape_coordinates(self):
        features = self.extractor.extract(make_plank_pose(), self.frame_size, rotation=0)
        i = TRACKED_LANDMARKS.index('left_shoulder') * 4
        np.testing.assert_allclose(features[i:i + 4], [0.25, 0.5, -10.0, 0.9], rtol=1e-6)

    def test_portrait_rotation_swaps_axes(self):
        i = TRACKED_LANDMARKS.index('left_shoulder') * 4
        for rotation in (90, 270):
            features = self.extractor.extract(make_plank_pose(), self.frame_size, rotation=rotation)
            np.testing.assert_allclose(features[i:i + 2], [0.5, 0.25], rtol=1e-6)

    def test_missing_landmarks_zero_filled(self):
        features = self.extractor.extract({}, self.frame_size)
        self.assertEqual(len(features), 68)
        self.assertFalse(features.any())

    def test_requires_frame_size(self):
        with self.assertRaises(ValueError):
            self.extractor.extract(make_plank_pose())
        with self.assertRaises(ValueError):
            self.extractor.extract(make_plank_pose(), (0, 600))


if __name__ == '__main__':
    unittest.main()
