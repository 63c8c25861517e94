"""Configurable Naive Bayes text classifier with cross-validation support.

Learns label-wise token counts from ``(input, label)`` examples and predicts
by comparing, for every label, the log likelihood of the input's tokens
under that label against their log likelihood under all other labels
combined (class-vs-rest log odds).

Lifecycle::

    fresh --learn--> learning --consolidate--> consolidated --evaluate--> evaluated
      ^                                                                      |
      +------------------------------- reset -------------------------------+

``import_json`` behaves like ``reset`` followed by learning, so the config
stays locked and ``consolidate`` must be called again before predicting.

Example::

    nbc = NaiveBayesTextClassifier()
    nbc.define_prep_tasks([str.lower, str.split])
    nbc.define_config({"considerOnlyPresence": True, "smoothingFactor": 0.5})

    nbc.learn("I want to prepay my loan", "prepay")
    nbc.learn("I need loan for a new car", "autoloan")
    ...
    nbc.consolidate()

    nbc.predict("I want to pay my car loan early")  # "prepay"
"""

from __future__ import annotations

import json
import logging
import math
from collections.abc import Mapping, Sequence
from typing import Any

from .errors import InsufficientDataError, InvalidArgumentError, InvalidStateError
from .evaluation import ConfusionMatrix, compute_metrics
from .models import (
    UNKNOWN_LABEL,
    ClassificationMetrics,
    ClassifierConfig,
    LearningStats,
    Phase,
)
from .preprocessing import PrepPipeline, PrepTask

logger = logging.getLogger(__name__)

MIN_LABELS = 2
MIN_VOCABULARY = 10


def _is_count_map(value: Any) -> bool:
    """True for a ``{str: int}`` mapping of non-negative counts."""
    return isinstance(value, dict) and all(
        isinstance(k, str) and isinstance(v, int) and not isinstance(v, bool) and v >= 0
        for k, v in value.items()
    )


class NaiveBayesTextClassifier:
    """Naive Bayes text classifier with an explicit learning lifecycle.

    Each instance owns all of its state; instances share nothing, so one
    instance per fold or per concurrent caller is always safe.

    Args:
        prep_tasks: Optional prep stages, same as ``define_prep_tasks``.
        config: Optional config, same as ``define_config``.
    """

    def __init__(
        self,
        prep_tasks: Sequence[PrepTask] = (),
        config: Mapping[str, Any] | ClassifierConfig | None = None,
    ) -> None:
        self._pipeline = PrepPipeline(prep_tasks)
        self._config = ClassifierConfig()
        self._init_learnings()
        if config is not None:
            self.define_config(config)

    def _init_learnings(self) -> None:
        # Learning store.
        self._samples: dict[str, int] = {}
        self._words: dict[str, int] = {}
        self._count: dict[str, dict[str, int]] = {}
        self._vocabulary: set[str] = set()
        # Frozen at consolidation.
        self._labels: tuple[str, ...] = ()
        self._total_samples = 0
        # Evaluation store.
        self._cm = ConfusionMatrix()
        # Lifecycle flags.
        self._learned = False
        self._consolidated = False
        self._evaluated = False

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def config(self) -> ClassifierConfig:
        return self._config

    @property
    def labels(self) -> tuple[str, ...]:
        """Labels frozen at consolidation (empty before)."""
        return self._labels

    @property
    def learned(self) -> bool:
        return self._learned

    @property
    def consolidated(self) -> bool:
        return self._consolidated

    @property
    def evaluated(self) -> bool:
        return self._evaluated

    @property
    def phase(self) -> Phase:
        if self._evaluated:
            return Phase.EVALUATED
        if self._consolidated:
            return Phase.CONSOLIDATED
        if self._learned:
            return Phase.LEARNING
        return Phase.FRESH

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def define_config(self, config: Mapping[str, Any] | ClassifierConfig) -> bool:
        """Set the counting mode and smoothing factor.

        Args:
            config: A ``ClassifierConfig`` or a mapping with
                ``considerOnlyPresence`` and ``smoothingFactor`` keys.

        Returns:
            True.

        Raises:
            InvalidStateError: If learning has already started.
            InvalidArgumentError: If ``config`` is malformed.
        """
        if self._learned:
            raise InvalidStateError("config must be defined before learning starts")
        self._config = ClassifierConfig.from_mapping(config)
        logger.info(
            "Config defined (consider_only_presence=%s, smoothing_factor=%s)",
            self._config.consider_only_presence,
            self._config.smoothing_factor,
        )
        return True

    def define_prep_tasks(self, tasks: Sequence[PrepTask]) -> int:
        """Define the pipeline that turns every input into tokens.

        Args:
            tasks: Ordered sequence of unary callables; the last one must
                return a sequence of string tokens.

        Returns:
            Number of stages in the pipeline.

        Raises:
            InvalidArgumentError: If ``tasks`` is not a sequence of callables.
        """
        self._pipeline = PrepPipeline(tasks)
        return len(self._pipeline)

    # ------------------------------------------------------------------
    # Learning
    # ------------------------------------------------------------------

    def learn(self, input: Any, label: str) -> bool:
        """Learn from one example.

        Returns:
            True.

        Raises:
            InvalidStateError: If the learnings have been consolidated.
        """
        if self._consolidated:
            raise InvalidStateError("post consolidation learning is not possible")

        tokens = self._pipeline(input)
        if self._config.consider_only_presence:
            tokens = list(dict.fromkeys(tokens))

        self._learned = True
        self._samples[label] = self._samples.get(label, 0) + 1
        label_count = self._count.setdefault(label, {})
        self._words[label] = self._words.get(label, 0) + len(tokens)
        for token in tokens:
            label_count[token] = label_count.get(token, 0) + 1
            self._vocabulary.add(token)

        logger.debug("Learned %d tokens under %r", len(tokens), label)
        return True

    def consolidate(self) -> bool:
        """Freeze labels and vocabulary and unlock prediction.

        Re-initializes the confusion matrix to zeros, so calling it again
        simply discards any evaluation done so far.

        Returns:
            True.

        Raises:
            InsufficientDataError: With fewer than 2 labels or fewer than
                10 distinct tokens.
        """
        labels = tuple(self._samples)
        if len(labels) < MIN_LABELS:
            raise InsufficientDataError(
                "can not consolidate as classification requires 2 or more labels"
            )
        if len(self._vocabulary) < MIN_VOCABULARY:
            raise InsufficientDataError(
                "vocabulary is too small to learn meaningful classification"
            )

        total = sum(self._samples.values())

        self._labels = labels
        self._total_samples = total
        self._cm = ConfusionMatrix(labels)
        self._consolidated = True
        self._evaluated = False

        logger.info(
            "Consolidated %d labels, %d samples, vocabulary of %d",
            len(labels), self._total_samples, len(self._vocabulary),
        )
        return True

    def reset(self) -> bool:
        """Forget all learnings and evaluations; keep prep tasks and config.

        Returns:
            True.
        """
        self._init_learnings()
        logger.info("Classifier reset")
        return True

    def stats(self) -> LearningStats:
        """Samples and words per label plus the vocabulary size."""
        return LearningStats(
            label_wise_samples=dict(self._samples),
            label_wise_words=dict(self._words),
            vocabulary=len(self._vocabulary),
        )

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    def _require_consolidated(self, action: str) -> None:
        if not self._consolidated:
            raise InvalidStateError(f"{action} is not possible unless learnings are consolidated")

    def log_likelihood(self, token: str, label: str) -> float:
        """Smoothed ``log2 P(token | label)``.

        With a zero smoothing factor, a token outside the vocabulary or one
        never seen under ``label`` carries no evidence and scores exactly 0;
        other tokens fall back to add-one smoothing.
        """
        self._require_consolidated("scoring")
        return self._log_likelihood(token, label)

    def inverse_log_likelihood(self, token: str, label: str) -> float:
        """Smoothed ``log2 P(token | not label)`` over all other labels."""
        self._require_consolidated("scoring")
        return self._inverse_log_likelihood(token, label)

    def _log_likelihood(self, token: str, label: str) -> float:
        s = self._config.smoothing_factor
        count = self._count.get(label, {}).get(token, 0)
        words = self._words.get(label, 0)
        voc_size = len(self._vocabulary)
        if s > 0:
            return math.log2((count + s) / (words + voc_size * s))
        if token not in self._vocabulary or count == 0:
            return 0.0
        return math.log2((count + 1) / (words + voc_size))

    def _inverse_log_likelihood(self, token: str, label: str) -> float:
        s = self._config.smoothing_factor or 1
        count = 0
        words = 0
        for other in self._labels:
            if other != label:
                words += self._words.get(other, 0)
                count += self._count.get(other, {}).get(token, 0)
        return math.log2((count + s) / (words + len(self._vocabulary) * s))

    def _odds(self, tokens: Sequence[str], label: str) -> float:
        known = [t for t in tokens if t in self._vocabulary]
        if not known:
            return 0.0

        lh = 0.0
        ilh = 0.0
        for token in known:
            token_lh = self._log_likelihood(token, label)
            # An uninformative token contributes no inverse term either.
            if token_lh == 0:
                continue
            lh += token_lh
            ilh += self._inverse_log_likelihood(token, label)

        if lh != 0:
            in_label = self._samples[label]
            lh += math.log2(in_label / self._total_samples)
            ilh += math.log2((self._total_samples - in_label) / self._total_samples)

        return lh - ilh

    def compute_odds(self, input: Any) -> list[tuple[str, float]]:
        """Rank every label by its log odds for ``input``.

        Returns:
            ``(label, odds)`` pairs sorted by descending odds, ties kept in
            label encounter order. ``[("unknown", 0)]`` when the top odds
            are exactly 0, i.e. nothing in the input was learned.

        Raises:
            InvalidStateError: If the learnings have not been consolidated.
        """
        self._require_consolidated("prediction")
        tokens = self._pipeline(input)
        all_odds = [(label, self._odds(tokens, label)) for label in self._labels]
        all_odds.sort(key=lambda pair: pair[1], reverse=True)
        if all_odds[0][1] == 0:
            return [(UNKNOWN_LABEL, 0)]
        return all_odds

    def predict(self, input: Any) -> str:
        """Return the best label for ``input``, or ``"unknown"``.

        Raises:
            InvalidStateError: If the learnings have not been consolidated.
        """
        return self.compute_odds(input)[0][0]

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def evaluate(self, input: Any, label: str) -> bool:
        """Score one held-out example into the confusion matrix.

        Returns:
            False if the prediction is ``"unknown"`` (matrix untouched),
            True otherwise.

        Raises:
            InvalidStateError: If the learnings have not been consolidated.
            InvalidArgumentError: If ``label`` was never learned.
        """
        self._require_consolidated("evaluation")
        if label not in self._samples:
            raise InvalidArgumentError(
                f"can not evaluate, unknown label encountered: {label!r}"
            )
        prediction, odds = self.compute_odds(input)[0]
        if odds == 0:
            logger.debug("Evaluation skipped, unknown prediction for %r", label)
            return False
        self._cm.record(label, prediction)
        self._evaluated = True
        return True

    def metrics(self) -> ClassificationMetrics:
        """Macro-averaged precision, recall, and F-measure.

        Raises:
            InvalidStateError: If nothing has been evaluated yet.
        """
        if not self._evaluated:
            raise InvalidStateError("metrics can not be computed before evaluation")
        return compute_metrics(self._cm)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def export_json(self) -> str:
        """Serialize the config and learnings (not evaluations).

        Returns:
            JSON text of ``[config, samples, count, words, vocabulary]``.
        """
        return json.dumps([
            self._config.to_dict(),
            self._samples,
            self._count,
            self._words,
            sorted(self._vocabulary),
        ])

    def import_json(self, doc: str) -> bool:
        """Replace all learnings with an exported model.

        The classifier is reset first and stays locked against config
        changes; call ``consolidate`` before predicting.

        Returns:
            True.

        Raises:
            InvalidArgumentError: If ``doc`` is empty or is not a valid
                exported model.
        """
        if not doc:
            raise InvalidArgumentError("undefined or empty JSON encountered, import failed")
        try:
            parsed = json.loads(doc)
        except (TypeError, ValueError) as e:
            raise InvalidArgumentError("invalid JSON encountered, can not import") from e

        expected = (dict, dict, dict, dict, list)
        if not isinstance(parsed, list) or len(parsed) != len(expected):
            raise InvalidArgumentError("invalid JSON encountered, can not import")
        for part, kind in zip(parsed, expected):
            if not isinstance(part, kind):
                raise InvalidArgumentError("invalid JSON encountered, can not import")

        config = ClassifierConfig.from_mapping(parsed[0])
        samples, count, words, vocabulary = parsed[1:]
        if not (
            _is_count_map(samples)
            and _is_count_map(words)
            and all(
                isinstance(label, str) and _is_count_map(counts)
                for label, counts in count.items()
            )
            and all(isinstance(token, str) for token in vocabulary)
        ):
            raise InvalidArgumentError("invalid learnings encountered, can not import")

        self.reset()
        self._learned = True
        self._config = config
        self._samples = samples
        self._count = count
        self._words = words
        self._vocabulary = set(vocabulary)

        logger.info(
            "Imported %d labels with a vocabulary of %d",
            len(self._samples), len(self._vocabulary),
        )
        return True
