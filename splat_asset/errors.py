"""Exceptions raised while turning a point cloud into a splat asset."""

from typing import Optional


class SplatAssetError(ValueError):
    """Base class. `stage` is the pipeline stage that was running, if known."""

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        self.stage = stage

    def __str__(self) -> str:
        msg = super().__str__()
        if self.stage:
            return f"[{self.stage}] {msg}"
        return msg


class InputError(SplatAssetError):
    """Input point cloud (or cameras file) is missing or could not be parsed."""

    def __init__(self, message: str, path: Optional[str] = None, stage: Optional[str] = None):
        super().__init__(message, stage)
        self.path = path


class EmptyInputError(InputError):
    pass


class FormatRangeError(SplatAssetError):
    """A format value the encoders do not know how to produce."""
