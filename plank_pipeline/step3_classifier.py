"""
Step 3: Plank Classifier
========================
Runs the plank posture model on one feature vector.

Input:  Vector (60,) torso-normalized features (or (68,) pixel-relative)
Output: Score vector (3,) - one score per stage class, model order
"""

import json
import numpy as np
import torch
import torch.nn as nn
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Sequence

from sklearn.preprocessing import StandardScaler

from . import config
from .errors import InferenceError


class MLPModel(nn.Module):
    """MLP model for plank posture classification."""

    def __init__(self,
                 input_size: int = config.MODEL_INPUT_DIM,
                 num_classes: int = len(config.STAGE_LABELS),
                 hidden_sizes: Sequence[int] = config.MODEL_HIDDEN_SIZES,
                 dropout: float = config.MODEL_DROPOUT):
        super().__init__()
        layers = []
        in_dim = input_size
        for i, out_dim in enumerate(hidden_sizes):
            layers.extend([nn.Linear(in_dim, out_dim), nn.ReLU()])
            if i < len(hidden_sizes) - 1:
                layers.extend([nn.BatchNorm1d(out_dim), nn.Dropout(dropout)])
            in_dim = out_dim
        layers.append(nn.Linear(in_dim, num_classes))
        self.model = nn.Sequential(*layers)

    def forward(self, x):
        return self.model(x)


class InferenceEngine(ABC):
    """
    Model adapter interface.

    Implementations take a (N, input_dim) float32 batch and return
    (N, output_width) class scores.
    """

    # Checkpoint-declared class names, if any
    classes: Optional[List[str]] = None
    # Expected feature width, None when the engine does not declare one
    input_dim: Optional[int] = None

    @abstractmethod
    def name(self) -> str: ...

    @property
    @abstractmethod
    def output_width(self) -> int: ...

    @abstractmethod
    def run(self, batch: np.ndarray) -> np.ndarray: ...

    @abstractmethod
    def close(self) -> None: ...


class TorchInferenceEngine(InferenceEngine):
    """
    PyTorch MLP loaded from a .pth checkpoint.

    Accepted checkpoint layouts:
    - {'state_dict': ..., 'input_dim': int, 'n_classes': int,
       'hidden_sizes': [...], 'classes': [...]}  (all keys but state_dict optional)
    - a bare state dict
    """

    def __init__(self, model_path: str, device: Optional[str] = None, apply_softmax: bool = True):
        """
        Load model weights.

        Args:
            model_path: Path to checkpoint (.pth)
            device: 'cpu', 'cuda', or None (auto-detect)
            apply_softmax: Convert logits to probabilities
        """
        if device is None:
            device = 'cuda' if torch.cuda.is_available() else 'cpu'
        self.device = device
        self.apply_softmax = apply_softmax
        self.model_path = model_path

        if not Path(model_path).exists():
            raise FileNotFoundError(f"Model checkpoint not found: {model_path}")

        ckpt = torch.load(model_path, map_location=device)
        if isinstance(ckpt, dict) and 'state_dict' in ckpt:
            state_dict = ckpt['state_dict']
        else:
            ckpt, state_dict = {}, ckpt

        # Dimensions come from the first and last Linear weights unless declared
        linear_weights = [v for k, v in state_dict.items() if k.endswith('.weight') and v.dim() == 2]
        if not linear_weights:
            raise ValueError(f"No linear layers found in checkpoint: {model_path}")

        self.input_dim = int(ckpt.get('input_dim', linear_weights[0].shape[1]))
        self._output_width = int(ckpt.get('n_classes', linear_weights[-1].shape[0]))
        hidden_sizes = ckpt.get('hidden_sizes') or [int(w.shape[0]) for w in linear_weights[:-1]]
        self.classes = list(ckpt['classes']) if ckpt.get('classes') else None

        self.model = MLPModel(
            input_size=self.input_dim,
            num_classes=self._output_width,
            hidden_sizes=hidden_sizes
        )
        self.model.load_state_dict(state_dict)
        self.model = self.model.to(device)
        self.model.eval()

        print(f"Loaded model from {model_path}")
        print(f"  Device: {device}")
        print(f"  Input dim: {self.input_dim}, classes: {self._output_width}")

    def name(self) -> str:
        return "torch_mlp"

    @property
    def output_width(self) -> int:
        return self._output_width

    def run(self, batch: np.ndarray) -> np.ndarray:
        if self.model is None:
            raise InferenceError("Model has been released")
        with torch.no_grad():
            x = torch.from_numpy(np.ascontiguousarray(batch, dtype=np.float32)).to(self.device)
            logits = self.model(x)  # (N, num_classes)
            if self.apply_softmax:
                logits = torch.softmax(logits, dim=1)
        return logits.cpu().numpy()

    def close(self) -> None:
        self.model = None


class InputScaler:
    """
    Feature standardization: (x - mean) / scale.

    Wraps a StandardScaler rebuilt from exported mean/scale arrays.
    Features with scale == 0 are only mean-centered.
    """

    def __init__(self, mean: Sequence[float], scale: Sequence[float]):
        mean = np.asarray(mean, dtype=np.float64)
        scale = np.asarray(scale, dtype=np.float64)
        if mean.ndim != 1 or mean.shape != scale.shape:
            raise ValueError(
                f"Scaler mean/scale must be flat and equal length, got {mean.shape} and {scale.shape}"
            )

        safe_scale = np.where(scale == 0, 1.0, scale)
        # Fitted attributes come from exported training statistics, not fit()
        self._scaler = StandardScaler(with_mean=True, with_std=True)
        self._scaler.mean_ = mean
        self._scaler.scale_ = safe_scale
        self._scaler.var_ = safe_scale ** 2
        self._scaler.n_features_in_ = mean.shape[0]
        self._scaler.n_samples_seen_ = 0

    @classmethod
    def from_json(cls, path: str) -> "InputScaler":
        """Load {"mean": [...], "scale": [...]} exported from training."""
        scaler_path = Path(path)
        if not scaler_path.exists():
            raise FileNotFoundError(f"Scaler not found: {path}")

        with open(scaler_path, 'r') as f:
            data = json.load(f)

        try:
            return cls(data['mean'], data['scale'])
        except (KeyError, TypeError) as e:
            raise ValueError(f"Scaler file {path} must contain 'mean' and 'scale'") from e

    @property
    def feature_size(self) -> int:
        return int(self._scaler.n_features_in_)

    def transform(self, batch: np.ndarray) -> np.ndarray:
        scaled = self._scaler.transform(np.asarray(batch, dtype=np.float64))
        return scaled.astype(np.float32)


class ClassifierAdapter:
    """Package features as a one-row batch, run the engine, unpack the scores."""

    def __init__(self,
                 engine: Optional[InferenceEngine] = None,
                 scaler: Optional[InputScaler] = None,
                 num_classes: int = len(config.STAGE_LABELS)):
        self.engine = engine
        self.scaler = scaler
        self.num_classes = num_classes

    def classify(self, features: Sequence[float]) -> np.ndarray:
        """
        Score one feature vector.

        Returns:
            numpy array shape (num_classes,)

        Raises:
            InferenceError: engine missing, engine failure, or bad output shape
        """
        if self.engine is None:
            raise InferenceError("Inference engine is not initialized")

        batch = np.asarray(features, dtype=np.float32).reshape(1, -1)  # (1, n_features)

        if self.scaler is not None:
            if batch.shape[1] != self.scaler.feature_size:
                raise InferenceError(
                    f"Feature size {batch.shape[1]} does not match scaler size {self.scaler.feature_size}"
                )
            batch = self.scaler.transform(batch)

        try:
            output = self.engine.run(batch)
        except InferenceError:
            raise
        except Exception as e:
            raise InferenceError(f"Inference failed: {e}") from e

        output = np.asarray(output, dtype=np.float64)
        expected = (1, self.num_classes)
        if output.shape != expected:
            raise InferenceError(f"Unexpected output shape {output.shape}, expected {expected}")

        return output[0]
