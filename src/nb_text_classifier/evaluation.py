"""Confusion matrix, evaluation metrics, and cross-validation.

The confusion matrix follows a fixed, asymmetric update rule: a correct
prediction increments the diagonal cell of its label, while a wrong one
increments ``cm[predicted][actual]``. Precision for a label is therefore
its diagonal over its row sum and recall its diagonal over its column sum.
"""

from __future__ import annotations

import logging
import random
from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .errors import InvalidArgumentError
from .models import ClassificationMetrics, MetricsDetails

if TYPE_CHECKING:
    from .classifier import NaiveBayesTextClassifier

logger = logging.getLogger(__name__)

_PRECISION_DIGITS = 4


# ---------------------------------------------------------------------------
# Confusion Matrix
# ---------------------------------------------------------------------------

class ConfusionMatrix:
    """Square ``label x label`` count grid, all zero at creation.

    Args:
        labels: Labels in the order they should appear in rows and columns.
    """

    def __init__(self, labels: Iterable[str] = ()) -> None:
        self._labels: tuple[str, ...] = tuple(labels)
        self._cells: dict[str, dict[str, int]] = {
            row: {col: 0 for col in self._labels} for row in self._labels
        }

    @property
    def labels(self) -> tuple[str, ...]:
        return self._labels

    def record(self, actual: str, predicted: str) -> None:
        """Count one evaluated example.

        Raises:
            InvalidArgumentError: If either label is not in the matrix.
        """
        for label in (actual, predicted):
            if label not in self._cells:
                raise InvalidArgumentError(f"label not in confusion matrix: {label!r}")
        if predicted == actual:
            self._cells[actual][actual] += 1
        else:
            self._cells[predicted][actual] += 1

    def cell(self, row: str, col: str) -> int:
        return self._cells[row][col]

    def row_sum(self, label: str) -> int:
        return sum(self._cells[label].values())

    def column_sum(self, label: str) -> int:
        return sum(self._cells[row][label] for row in self._labels)

    def to_dict(self) -> dict[str, dict[str, int]]:
        """Return a deep copy of the cells."""
        return {row: dict(cols) for row, cols in self._cells.items()}


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------

def _ratio(numerator: float, denominator: float) -> float:
    # 0/0 and friends count as 0.
    if denominator == 0:
        return 0.0
    return numerator / denominator


def compute_metrics(cm: ConfusionMatrix) -> ClassificationMetrics:
    """Compute per-label and macro-averaged precision, recall, F-measure.

    Per-label values are rounded to 4 digits before being averaged, and the
    averages are rounded again. Labels that never appear in the matrix score
    0 and still count towards the averages.

    Args:
        cm: A populated confusion matrix.

    Returns:
        ClassificationMetrics with the averages and a copy of the matrix.
    """
    labels = cm.labels
    precision: dict[str, float] = {}
    recall: dict[str, float] = {}
    fmeasure: dict[str, float] = {}

    for label in labels:
        n = cm.cell(label, label)
        p = round(_ratio(n, cm.row_sum(label)), _PRECISION_DIGITS)
        r = round(_ratio(n, cm.column_sum(label)), _PRECISION_DIGITS)
        precision[label] = p
        recall[label] = r
        fmeasure[label] = round(_ratio(2 * p * r, p + r), _PRECISION_DIGITS)

    count = len(labels)
    avg_p = sum(precision.values()) / count if count else 0.0
    avg_r = sum(recall.values()) / count if count else 0.0
    avg_f = sum(fmeasure.values()) / count if count else 0.0

    return ClassificationMetrics(
        avg_precision=round(avg_p, _PRECISION_DIGITS),
        avg_recall=round(avg_r, _PRECISION_DIGITS),
        avg_f_measure=round(avg_f, _PRECISION_DIGITS),
        details=MetricsDetails(
            confusion_matrix=cm.to_dict(),
            precision=precision,
            recall=recall,
            fmeasure=fmeasure,
        ),
    )


# ---------------------------------------------------------------------------
# Cross-Validation
# ---------------------------------------------------------------------------

def stratified_k_fold(
    labels: Sequence[str],
    k: int = 5,
    seed: int = 42,
) -> list[tuple[list[int], list[int]]]:
    """Generate stratified k-fold train/test index splits.

    Indices of each label are shuffled and dealt round-robin into folds, so
    every fold keeps roughly the label distribution of the whole set.

    Args:
        labels: Label of every example.
        k: Number of folds (at least 2).
        seed: Random seed for reproducibility.

    Returns:
        List of ``(train_indices, test_indices)`` tuples, one per fold.

    Raises:
        InvalidArgumentError: If ``k`` is below 2.
    """
    if k < 2:
        raise InvalidArgumentError(f"k must be at least 2, instead found: {k}")

    rng = random.Random(seed)

    label_indices: dict[str, list[int]] = defaultdict(list)
    for idx, label in enumerate(labels):
        label_indices[label].append(idx)

    fold_assignments: list[int] = [0] * len(labels)
    for indices in label_indices.values():
        rng.shuffle(indices)
        for i, idx in enumerate(indices):
            fold_assignments[idx] = i % k

    folds: list[tuple[list[int], list[int]]] = []
    for fold_idx in range(k):
        test_indices = [i for i, f in enumerate(fold_assignments) if f == fold_idx]
        train_indices = [i for i, f in enumerate(fold_assignments) if f != fold_idx]
        folds.append((train_indices, test_indices))

    return folds


@dataclass
class CrossValidationResult:
    """Per-fold metrics of a cross-validation run.

    Attributes:
        folds: Metrics of every fold that had at least one scored example.
        skipped_folds: Indices of folds where nothing could be scored.
    """

    folds: list[ClassificationMetrics] = field(default_factory=list)
    skipped_folds: list[int] = field(default_factory=list)

    def _mean(self, attr: str) -> float:
        if not self.folds:
            return 0.0
        return round(
            sum(getattr(m, attr) for m in self.folds) / len(self.folds),
            _PRECISION_DIGITS,
        )

    @property
    def avg_precision(self) -> float:
        return self._mean("avg_precision")

    @property
    def avg_recall(self) -> float:
        return self._mean("avg_recall")

    @property
    def avg_f_measure(self) -> float:
        return self._mean("avg_f_measure")

    def to_dict(self) -> dict:
        return {
            "avg_precision": self.avg_precision,
            "avg_recall": self.avg_recall,
            "avg_f_measure": self.avg_f_measure,
            "folds": [m.to_dict() for m in self.folds],
            "skipped_folds": list(self.skipped_folds),
        }


def cross_validate(
    classifier: "NaiveBayesTextClassifier",
    examples: Sequence[tuple[object, str]],
    k: int = 5,
    seed: int = 42,
) -> CrossValidationResult:
    """Run stratified k-fold cross-validation on one classifier instance.

    The classifier's prep tasks and config are kept; its learnings are
    reset before every fold. Each fold learns the training part,
    consolidates, evaluates the held-out part, and collects ``metrics()``.

    Args:
        classifier: Classifier with prep tasks (and config) already defined.
        examples: ``(input, label)`` pairs.
        k: Number of folds.
        seed: Random seed for fold generation.

    Returns:
        CrossValidationResult with one entry per scored fold.

    Raises:
        InsufficientDataError: If a fold's training part cannot be
            consolidated. The classifier is reset even then.
    """
    folds = stratified_k_fold([label for _, label in examples], k=k, seed=seed)
    result = CrossValidationResult()

    try:
        for fold_idx, (train_idx, test_idx) in enumerate(folds):
            classifier.reset()
            for i in train_idx:
                classifier.learn(*examples[i])
            classifier.consolidate()

            for i in test_idx:
                text, label = examples[i]
                if label not in classifier.labels:
                    logger.debug("Fold %d: label %r absent from training part", fold_idx, label)
                    continue
                classifier.evaluate(text, label)

            if not classifier.evaluated:
                logger.warning("Fold %d: no held-out example could be scored, skipping", fold_idx)
                result.skipped_folds.append(fold_idx)
                continue

            metrics = classifier.metrics()
            logger.info(
                "Fold %d: precision=%.4f recall=%.4f f-measure=%.4f",
                fold_idx, metrics.avg_precision, metrics.avg_recall, metrics.avg_f_measure,
            )
            result.folds.append(metrics)
    finally:
        # Learnings of a failed fold must not outlive the run.
        classifier.reset()

    return result
