"""Shared fixtures for the plank pipeline tests."""

import numpy as np

from plank_pipeline.step1_pose_source import Landmark
from plank_pipeline.step3_classifier import InferenceEngine

CORRECT = [0.9, 0.05, 0.05]
LOW_BACK = [0.1, 0.8, 0.1]
HIGH_BACK = [0.1, 0.1, 0.8]
UNSURE = [0.4, 0.3, 0.3]


def make_plank_pose(offset=(0.0, 0.0, 0.0), scale=1.0, drop=()):
    """Side-view plank in pixel coordinates (y grows downward)."""
    points = {
        'nose': (150, 290, 0),
        'left_shoulder': (200, 300, -10),
        'right_shoulder': (205, 300, 10),
        'left_elbow': (200, 400, -10),
        'right_elbow': (205, 400, 10),
        'left_wrist': (250, 400, -10),
        'right_wrist': (255, 400, 10),
        'left_hip': (400, 310, -10),
        'right_hip': (405, 310, 10),
        'left_knee': (500, 315, -10),
        'right_knee': (505, 315, 10),
        'left_ankle': (600, 320, -10),
        'right_ankle': (605, 320, 10),
        'left_heel': (610, 320, -10),
        'right_heel': (615, 320, 10),
        'left_foot_index': (620, 330, -10),
        'right_foot_index': (625, 330, 10),
    }
    pose = {}
    for name, (x, y, z) in points.items():
        if name in drop:
            continue
        pose[name] = Landmark(
            x=x * scale + offset[0],
            y=y * scale + offset[1],
            z=z * scale + offset[2],
            visibility=0.9
        )
    return pose


class ScriptedEngine(InferenceEngine):
    """Inference engine that replays a list of score rows."""

    def __init__(self, outputs=None, output_width=3, classes=None, input_dim=None, dtype=np.float32):
        self.outputs = list(outputs or [CORRECT])
        self._output_width = output_width
        self.classes = classes
        self.input_dim = input_dim
        self.dtype = dtype
        self.batches = []
        self.close_count = 0

    def name(self) -> str:
        return "scripted"

    @property
    def output_width(self) -> int:
        return self._output_width

    def run(self, batch):
        self.batches.append(np.array(batch))
        # The last row repeats once the script is exhausted
        out = self.outputs.pop(0) if len(self.outputs) > 1 else self.outputs[0]
        if isinstance(out, Exception):
            raise out
        return np.asarray([out], dtype=self.dtype)

    def close(self) -> None:
        self.close_count += 1
