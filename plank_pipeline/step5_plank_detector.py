"""
Step 5: Plank Detector
======================
Per-frame facade: pose -> features -> scores -> stage / error decision.

Usage:
    with PlankDetector() as detector:
        result = detector.detect(poses, frame_bytes, timestamp_ms)

The detector processes one frame at a time; callers must not call
detect() again before the previous call returns.
"""

from typing import Optional, Sequence, Tuple

from . import config
from .errors import InitializationError
from .step1_pose_source import Pose
from .step2_feature_extraction import FeatureExtractor, Normalization
from .step3_classifier import ClassifierAdapter, InferenceEngine, InputScaler, TorchInferenceEngine
from .step4_stage_evaluator import (
    DetectionResult,
    ErrorEvent,
    EvaluatorState,
    StageLabels,
    evaluate,
)


class PlankDetector:
    """
    Classify plank posture frame by frame and log error-stage entries.

    The inference engine is acquired in initialize() and released once
    in dispose().
    """

    def __init__(
        self,
        model_path: str = config.MODEL_PATH,
        scaler_path: Optional[str] = config.SCALER_PATH,
        normalization: Normalization = Normalization(config.NORMALIZATION),
        labels: Optional[Sequence[str]] = None,
        threshold: float = config.PREDICTION_THRESHOLD,
        engine: Optional[InferenceEngine] = None,
        device: Optional[str] = config.MODEL_DEVICE
    ):
        """
        Args:
            model_path: Checkpoint loaded by initialize() when no engine is given
            scaler_path: Optional {"mean", "scale"} JSON for input standardization
            normalization: Feature normalization strategy
            labels: Index -> stage table; defaults to the checkpoint's classes,
                    then to config.STAGE_LABELS
            threshold: Minimum score for a confident stage
            engine: Pre-built inference engine (takes ownership)
            device: Torch device for the default engine
        """
        self.model_path = model_path
        self.scaler_path = scaler_path
        self.threshold = threshold
        self.device = device

        self.extractor = FeatureExtractor(normalization)
        self.classifier = ClassifierAdapter()
        self.labels = StageLabels(labels) if labels is not None else None

        self._engine = engine
        self._explicit_labels = labels is not None
        self._initialized = False
        self._disposed = False
        self._state = EvaluatorState()

    @property
    def state(self) -> EvaluatorState:
        return self._state

    @property
    def error_log(self) -> Tuple[ErrorEvent, ...]:
        return self._state.error_log

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def initialize(self) -> None:
        """
        Load the inference engine, label table and optional scaler.

        Raises:
            InitializationError: any asset fails to load or validate
        """
        if self._initialized:
            return
        if self._disposed:
            raise InitializationError("Detector has been disposed")

        try:
            if self._engine is None:
                self._engine = TorchInferenceEngine(self.model_path, device=self.device)

            if not self._explicit_labels:
                self.labels = StageLabels(self._engine.classes or config.STAGE_LABELS)
            self.labels.validate(self._engine.output_width)

            input_dim = self._engine.input_dim
            if input_dim is not None and input_dim != self.extractor.feature_size:
                raise InitializationError(
                    f"Model expects {input_dim} features, "
                    f"extractor produces {self.extractor.feature_size}"
                )

            scaler = None
            if self.scaler_path:
                scaler = InputScaler.from_json(self.scaler_path)
                if scaler.feature_size != self.extractor.feature_size:
                    raise InitializationError(
                        f"Scaler covers {scaler.feature_size} features, "
                        f"extractor produces {self.extractor.feature_size}"
                    )
        except Exception as e:
            self._release_engine()
            if isinstance(e, InitializationError):
                raise
            raise InitializationError(f"Error loading plank model: {e}") from e

        self.classifier = ClassifierAdapter(
            engine=self._engine,
            scaler=scaler,
            num_classes=len(self.labels)
        )
        self._initialized = True

    def detect(
        self,
        poses: Sequence[Pose],
        frame_image: bytes,
        timestamp: int,
        frame_size: Optional[Tuple[float, float]] = None,
        rotation: int = 0
    ) -> DetectionResult:
        """
        Classify the first pose of a frame.

        Args:
            poses: Poses detected in this frame
            frame_image: Frame bytes, kept with any new ErrorEvent
            timestamp: Frame timestamp (ms)
            frame_size: (width, height), used by pixel-relative features
            rotation: Frame rotation in degrees

        Returns:
            DetectionResult; failures come back as stage "error"
        """
        if not poses:
            return self._unknown_result()

        try:
            features = self.extractor.extract(poses[0], frame_size, rotation)
            if features is None:
                return self._unknown_result()

            scores = self.classifier.classify(features)

            result, new_state = evaluate(
                scores,
                frame_image,
                timestamp,
                self._state,
                labels=self.labels,
                threshold=self.threshold
            )
        except Exception as e:
            print(f"Plank detection failed: {e}")
            return DetectionResult(
                stage=config.ERROR_RESULT_STAGE,
                probability=0.0,
                has_error=False,
                error_log=self._state.error_log,
                error=str(e)
            )

        self._state = new_state
        return result

    def clear_results(self) -> None:
        """Reset stage history and the error log."""
        self._state = EvaluatorState()

    def dispose(self) -> None:
        """Release the inference engine. Safe to call more than once."""
        if self._disposed:
            return
        self._disposed = True
        self._initialized = False
        self._release_engine()

    def _release_engine(self) -> None:
        engine, self._engine = self._engine, None
        self.classifier = ClassifierAdapter()
        if engine is not None:
            engine.close()
            print(f"Released inference engine: {engine.name()}")

    def _unknown_result(self) -> DetectionResult:
        return DetectionResult(
            stage=config.UNKNOWN_STAGE,
            probability=0.0,
            has_error=False,
            error_log=self._state.error_log
        )

    def __enter__(self):
        self.initialize()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.dispose()
