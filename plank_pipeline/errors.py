"""
Exception types raised by the plank pipeline.
"""


class PlankPipelineError(RuntimeError):
    """Base class for all pipeline failures."""


class InferenceError(PlankPipelineError):
    """The inference engine could not produce a score vector."""


class InitializationError(PlankPipelineError):
    """A model or scaler asset failed to load or validate."""
