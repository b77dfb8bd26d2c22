"""
Plank Pose AI Configuration
===========================

Central configuration file for all pipeline parameters.
"""

from pathlib import Path

PACKAGE_DIR = Path(__file__).parent

# =============================================================================
# Model Assets
# =============================================================================
MODEL_PATH = str(PACKAGE_DIR / "models" / "plank_model_norm_60.pth")
SCALER_PATH = None  # e.g. str(PACKAGE_DIR / "models" / "plank_input_scaler.json")

# MLP layout used when a checkpoint does not declare its own dimensions
MODEL_INPUT_DIM = 60
MODEL_HIDDEN_SIZES = (256, 128, 64)
MODEL_DROPOUT = 0.3
MODEL_DEVICE = None  # None=auto-detect, "cuda" or "cpu"

# =============================================================================
# Feature Extraction Settings
# =============================================================================
NORMALIZATION = "torso_relative"  # Options: "torso_relative", "pixel_relative"
TORSO_EPSILON = 1e-6              # Minimum torso size for scale normalization

# =============================================================================
# Stage Evaluation Settings
# =============================================================================
PREDICTION_THRESHOLD = 0.6

# Model output index -> stage label
STAGE_LABELS = ("correct", "low back", "high back")
ERROR_STAGES = ("low back", "high back")

UNKNOWN_STAGE = "unknown"
ERROR_RESULT_STAGE = "error"

# =============================================================================
# MediaPipe Pose Source Settings
# =============================================================================
MIN_DETECTION_CONFIDENCE = 0.5
MIN_TRACKING_CONFIDENCE = 0.5
MODEL_COMPLEXITY = 1
