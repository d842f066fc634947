"""Pipeline configuration.

All settings live in one dataclass so CLIs, JSON files and tests build the
pipeline the same way.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Optional

DEFAULT_DETECTOR_MODEL = "pose_detection.onnx"

# Tried in order when no landmarker model is given
LANDMARKER_CANDIDATES = (
    "pose_landmarks_detector_full.onnx",
    "pose_landmarks_detector_heavy.onnx",
    "pose_landmarks_detector_lite.onnx",
)


class ConfigError(ValueError):
    """Invalid or incomplete pipeline configuration."""


@dataclass
class PipelineConfig:
    """Settings for the two-stage pose pipeline and the live loop.

    Attributes:
        detector_model: Path to the pose detector ONNX model.
        landmarker_model: Path to the pose landmarker ONNX model.
        anchors_path: Anchor CSV. Anchors are generated when unset.
        num_anchors: Detector output channels.
        num_keypoints: Landmarks per pose.
        detector_input_size: Detector input side length.
        landmarker_input_size: Landmarker input side length.
        score_threshold: Minimum detector score to run the landmark stage.
        box_dilation: Crop radius multiplier on the keypoint distance.
        provider_priority: ONNX Runtime provider preset or shorthand.
        camera_index: OpenCV camera device index.
        camera_width: Requested capture width.
        camera_height: Requested capture height.
        camera_fps: Requested capture frame rate.
        camera_timeout: Seconds to wait for the first frame.
    """

    detector_model: str = f"models/{DEFAULT_DETECTOR_MODEL}"
    landmarker_model: str = f"models/{LANDMARKER_CANDIDATES[0]}"
    anchors_path: Optional[str] = None

    num_anchors: int = 2254
    num_keypoints: int = 33
    detector_input_size: int = 224
    landmarker_input_size: int = 256

    score_threshold: float = 0.75
    box_dilation: float = 1.25

    provider_priority: str = "auto"

    camera_index: int = 0
    camera_width: int = 640
    camera_height: int = 480
    camera_fps: int = 30
    camera_timeout: float = 5.0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PipelineConfig:
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")
        return cls(**data)

    @classmethod
    def from_json(cls, path: str | Path) -> PipelineConfig:
        """Load a config from JSON. Missing keys keep their defaults."""
        with open(path) as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ConfigError(f"{path}: expected a JSON object")
        return cls.from_dict(data)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def validate(self) -> None:
        """Check model files and numeric settings.

        Raises:
            ConfigError: Listing every problem found.
        """
        problems = []
        if not Path(self.detector_model).is_file():
            problems.append(f"detector model not found: {self.detector_model}")
        if not Path(self.landmarker_model).is_file():
            problems.append(f"landmarker model not found: {self.landmarker_model}")
        if self.anchors_path is not None and not Path(self.anchors_path).is_file():
            problems.append(f"anchors file not found: {self.anchors_path}")
        if not 0.0 <= self.score_threshold <= 1.0:
            problems.append(f"score_threshold must be in [0, 1], got {self.score_threshold}")
        for name in ("num_anchors", "num_keypoints", "detector_input_size", "landmarker_input_size"):
            if getattr(self, name) <= 0:
                problems.append(f"{name} must be positive, got {getattr(self, name)}")
        if self.camera_timeout <= 0:
            problems.append(f"camera_timeout must be positive, got {self.camera_timeout}")

        if problems:
            raise ConfigError("Invalid pipeline config:\n  " + "\n  ".join(problems))


def find_landmarker_model(models_dir: str | Path) -> Optional[Path]:
    """Return the first known landmarker model present in models_dir."""
    models_dir = Path(models_dir)
    for name in LANDMARKER_CANDIDATES:
        candidate = models_dir / name
        if candidate.is_file():
            return candidate
    return None


def config_from_models_dir(models_dir: str | Path, **overrides: Any) -> PipelineConfig:
    """Build a config pointing at the standard model files in models_dir."""
    models_dir = Path(models_dir)
    landmarker = find_landmarker_model(models_dir)
    if landmarker is None:
        raise ConfigError(
            f"No landmarker model in {models_dir} (looked for {', '.join(LANDMARKER_CANDIDATES)})"
        )
    settings: dict[str, Any] = {
        "detector_model": str(models_dir / DEFAULT_DETECTOR_MODEL),
        "landmarker_model": str(landmarker),
    }
    anchors = models_dir / "anchors.csv"
    if anchors.is_file():
        settings["anchors_path"] = str(anchors)
    settings.update(overrides)
    return PipelineConfig.from_dict(settings)
