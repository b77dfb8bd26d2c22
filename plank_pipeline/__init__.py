"""
Plank Posture Pipeline

5-Step Pipeline:
1. Pose Source - Landmarks from MediaPipe Pose
2. Feature Extraction - Torso-normalized coordinates + joint angles
3. Classification - Plank posture model scores
4. Stage Evaluation - Stage label + error-entry logging
5. Plank Detector - Per-frame facade over steps 2-4
"""

from .errors import InferenceError, InitializationError, PlankPipelineError
from .step1_pose_source import Landmark, MediaPipePoseSource, Pose, TRACKED_LANDMARKS
from .step2_feature_extraction import FeatureExtractor, Normalization
from .step3_classifier import ClassifierAdapter, InferenceEngine, InputScaler, TorchInferenceEngine
from .step4_stage_evaluator import DetectionResult, ErrorEvent, EvaluatorState, StageLabels, evaluate
from .step5_plank_detector import PlankDetector

__all__ = [
    'InferenceError',
    'InitializationError',
    'PlankPipelineError',
    'Landmark',
    'MediaPipePoseSource',
    'Pose',
    'TRACKED_LANDMARKS',
    'FeatureExtractor',
    'Normalization',
    'ClassifierAdapter',
    'InferenceEngine',
    'InputScaler',
    'TorchInferenceEngine',
    'DetectionResult',
    'ErrorEvent',
    'EvaluatorState',
    'StageLabels',
    'evaluate',
    'PlankDetector',
]
