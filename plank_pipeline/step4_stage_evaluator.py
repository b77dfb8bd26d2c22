"""
Step 4: Stage Evaluation
Maps class scores to a plank stage and tracks entries into error stages.

Logic:
- score >= threshold  -> stage from the label table
- otherwise           -> "unknown"
- entering "low back" / "high back" from another stage logs one ErrorEvent
"""

import numpy as np
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional, Sequence, Tuple

from . import config
from .errors import InferenceError, InitializationError


class StageLabels:
    """
    Ordered model-output-index -> stage-label table.

    The order is model-specific; validate it against the loaded model's
    output width before use.
    """

    def __init__(self,
                 labels: Sequence[str] = config.STAGE_LABELS,
                 error_stages: Sequence[str] = config.ERROR_STAGES):
        if not labels:
            raise ValueError("Label table must not be empty")
        if len(set(labels)) != len(labels):
            raise ValueError(f"Duplicate stage labels: {list(labels)}")

        self.labels = tuple(labels)
        self.error_stages = frozenset(error_stages)

    def __len__(self) -> int:
        return len(self.labels)

    def __getitem__(self, index: int) -> str:
        return self.labels[index]

    def __repr__(self) -> str:
        return f"StageLabels({list(self.labels)})"

    def is_error(self, stage: str) -> bool:
        return stage in self.error_stages

    def validate(self, output_width: int) -> None:
        """Raise InitializationError if the table does not cover the model output."""
        if len(self.labels) != output_width:
            raise InitializationError(
                f"Label table has {len(self.labels)} entries but model outputs {output_width} classes"
            )


@dataclass(frozen=True)
class ErrorEvent:
    """One corrective-feedback event."""
    stage: str
    image: bytes
    timestamp: int


@dataclass(frozen=True)
class EvaluatorState:
    """Stage history owned by one detector."""
    previous_stage: str = config.UNKNOWN_STAGE
    error_log: Tuple[ErrorEvent, ...] = ()
    has_error: bool = False


@dataclass(frozen=True)
class DetectionResult:
    """Per-frame detection result."""
    stage: str
    probability: float
    has_error: bool = False
    error_log: Tuple[ErrorEvent, ...] = field(default_factory=tuple)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Record layout used by the overlay and results-review screens."""
        record = {
            'stage': self.stage,
            'probability': self.probability,
            'hasError': self.has_error,
            'results': [
                {'stage': e.stage, 'imageBytes': e.image, 'timestamp': e.timestamp}
                for e in self.error_log
            ],
        }
        if self.error is not None:
            record['error'] = self.error
        return record


def evaluate(
    scores: Sequence[float],
    frame_image: bytes,
    timestamp: int,
    state: EvaluatorState,
    labels: StageLabels = StageLabels(),
    threshold: float = config.PREDICTION_THRESHOLD
) -> Tuple[DetectionResult, EvaluatorState]:
    """
    Evaluate one score vector against the previous state.

    Args:
        scores: Class scores in model order
        frame_image: Frame bytes stored with a new ErrorEvent
        timestamp: Frame timestamp (ms)
        state: State after the previous frame
        labels: Index -> stage table
        threshold: Minimum score for a confident stage

    Returns:
        (DetectionResult, new EvaluatorState)
    """
    scores = np.asarray(scores, dtype=np.float64).ravel()
    if scores.size == 0:
        raise InferenceError("Empty score vector")
    if scores.size != len(labels):
        raise InferenceError(f"Got {scores.size} scores for {len(labels)} labels")

    # argmax keeps the first index on ties
    max_index = int(np.argmax(scores))
    max_prob = float(scores[max_index])

    if max_prob >= threshold:
        current_stage = labels[max_index]
    else:
        current_stage = config.UNKNOWN_STAGE

    error_log = state.error_log
    if labels.is_error(current_stage):
        has_error = current_stage != state.previous_stage
        if has_error:
            error_log = error_log + (ErrorEvent(current_stage, frame_image, timestamp),)
    else:
        has_error = False

    new_state = replace(
        state,
        previous_stage=current_stage,
        error_log=error_log,
        has_error=has_error
    )

    result = DetectionResult(
        stage=current_stage,
        probability=max_prob,
        has_error=has_error,
        error_log=error_log
    )
    return result, new_state
