"""Data models for the text classifier."""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .errors import InvalidArgumentError

DEFAULT_SMOOTHING_FACTOR = 1.0

# Sentinel label returned when no input token is in the vocabulary.
UNKNOWN_LABEL = "unknown"


class Phase(str, Enum):
    """Lifecycle phases of a classifier instance."""

    FRESH = "fresh"
    LEARNING = "learning"
    CONSOLIDATED = "consolidated"
    EVALUATED = "evaluated"


def _coerce_smoothing_factor(value: Any) -> float:
    if value is None:
        return DEFAULT_SMOOTHING_FACTOR
    if isinstance(value, bool):
        raise InvalidArgumentError(
            f"smoothingFactor must be a number, instead found: {value!r}"
        )
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise InvalidArgumentError(
            f"smoothingFactor must be a number, instead found: {value!r}"
        ) from e
    if not math.isfinite(number):
        raise InvalidArgumentError(
            f"smoothingFactor must be a finite number, instead found: {value!r}"
        )
    return max(0.0, min(number, 1.0))


@dataclass(frozen=True)
class ClassifierConfig:
    """Counting mode and smoothing of a classifier.

    Attributes:
        consider_only_presence: Count each token at most once per example
            (Bernoulli style) instead of using raw frequencies.
        smoothing_factor: Additive smoothing constant in ``[0, 1]``. With
            ``0`` unseen tokens carry no evidence at all.
    """

    consider_only_presence: bool = False
    smoothing_factor: float = DEFAULT_SMOOTHING_FACTOR

    @classmethod
    def from_mapping(cls, data: Any) -> "ClassifierConfig":
        """Build a config from a loosely typed mapping.

        Accepts the camelCase keys of the serialized format as well as
        snake_case keys. ``considerOnlyPresence`` is ``True`` only when it
        is exactly ``True``; ``smoothingFactor`` defaults to ``1`` and is
        clamped into ``[0, 1]``.

        Raises:
            InvalidArgumentError: If ``data`` is not a mapping or the
                smoothing factor is not a number.
        """
        if isinstance(data, cls):
            return data
        if not isinstance(data, Mapping):
            raise InvalidArgumentError(
                f"config must be a mapping, instead found: {type(data).__name__}"
            )
        presence = data.get("considerOnlyPresence", data.get("consider_only_presence"))
        smoothing = data.get("smoothingFactor", data.get("smoothing_factor"))
        return cls(
            consider_only_presence=presence is True,
            smoothing_factor=_coerce_smoothing_factor(smoothing),
        )

    def to_dict(self) -> dict:
        return {
            "considerOnlyPresence": self.consider_only_presence,
            "smoothingFactor": self.smoothing_factor,
        }


@dataclass
class LearningStats:
    """Snapshot of what has been learned so far."""

    label_wise_samples: dict[str, int] = field(default_factory=dict)
    label_wise_words: dict[str, int] = field(default_factory=dict)
    vocabulary: int = 0

    @property
    def total_samples(self) -> int:
        return sum(self.label_wise_samples.values())

    def to_dict(self) -> dict:
        return {
            "label_wise_samples": dict(self.label_wise_samples),
            "label_wise_words": dict(self.label_wise_words),
            "vocabulary": self.vocabulary,
        }


@dataclass
class MetricsDetails:
    """Confusion matrix and the per-label scores behind the averages."""

    confusion_matrix: dict[str, dict[str, int]] = field(default_factory=dict)
    precision: dict[str, float] = field(default_factory=dict)
    recall: dict[str, float] = field(default_factory=dict)
    fmeasure: dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "confusion_matrix": {
                row: dict(cols) for row, cols in self.confusion_matrix.items()
            },
            "precision": dict(self.precision),
            "recall": dict(self.recall),
            "fmeasure": dict(self.fmeasure),
        }


@dataclass
class ClassificationMetrics:
    """Macro-averaged evaluation metrics.

    Attributes:
        avg_precision: Unweighted mean precision across labels.
        avg_recall: Unweighted mean recall across labels.
        avg_f_measure: Unweighted mean F-measure across labels.
        details: Confusion matrix and per-label breakdown.
    """

    avg_precision: float = 0.0
    avg_recall: float = 0.0
    avg_f_measure: float = 0.0
    details: MetricsDetails = field(default_factory=MetricsDetails)

    def to_dict(self) -> dict:
        return {
            "avg_precision": self.avg_precision,
            "avg_recall": self.avg_recall,
            "avg_f_measure": self.avg_f_measure,
            "details": self.details.to_dict(),
        }
