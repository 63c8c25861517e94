"""Tests for the Naive Bayes text classifier.

Covers configuration, prep tasks, learning, consolidation, scoring,
prediction, evaluation, metrics, serialization, and the lifecycle rules
that gate them. Uses a tiny loan-intent corpus with two labels.
"""

from __future__ import annotations

import json
import math

import pytest

from conftest import AUTOLOAN_QUERY, PREPAY_QUERY, whitespace_prep_tasks
from nb_text_classifier import (
    UNKNOWN_LABEL,
    ClassifierConfig,
    InsufficientDataError,
    InvalidArgumentError,
    InvalidStateError,
    NaiveBayesTextClassifier,
    Phase,
)


def _train(examples, config=None) -> NaiveBayesTextClassifier:
    nbc = NaiveBayesTextClassifier(prep_tasks=whitespace_prep_tasks(), config=config)
    for text, label in examples:
        nbc.learn(text, label)
    nbc.consolidate()
    return nbc


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

class TestDefineConfig:
    """Tests for define_config."""

    def test_returns_true(self):
        nbc = NaiveBayesTextClassifier()
        assert nbc.define_config({"considerOnlyPresence": True, "smoothingFactor": 0}) is True
        assert nbc.config == ClassifierConfig(consider_only_presence=True, smoothing_factor=0.0)

    def test_default_config(self):
        nbc = NaiveBayesTextClassifier()
        assert nbc.config.consider_only_presence is False
        assert nbc.config.smoothing_factor == 1.0

    def test_non_mapping_rejected(self):
        nbc = NaiveBayesTextClassifier()
        with pytest.raises(InvalidArgumentError):
            nbc.define_config(1)
        with pytest.raises(InvalidArgumentError):
            nbc.define_config([("smoothingFactor", 0.5)])

    def test_non_numeric_smoothing_rejected(self):
        nbc = NaiveBayesTextClassifier()
        with pytest.raises(InvalidArgumentError):
            nbc.define_config({"considerOnlyPresence": 1, "smoothingFactor": "x"})
        # Config unchanged after a failed call.
        assert nbc.config == ClassifierConfig()

    def test_smoothing_is_clamped(self):
        nbc = NaiveBayesTextClassifier()
        nbc.define_config({"smoothingFactor": 5})
        assert nbc.config.smoothing_factor == 1.0
        nbc.define_config({"smoothingFactor": -2})
        assert nbc.config.smoothing_factor == 0.0

    def test_accepts_config_instance(self):
        nbc = NaiveBayesTextClassifier()
        cfg = ClassifierConfig(consider_only_presence=True, smoothing_factor=0.25)
        nbc.define_config(cfg)
        assert nbc.config is cfg

    def test_locked_after_learning(self, learned_nbc):
        with pytest.raises(InvalidStateError):
            learned_nbc.define_config({"considerOnlyPresence": True})

    def test_unlocked_after_reset(self, learned_nbc):
        learned_nbc.reset()
        assert learned_nbc.define_config({"smoothingFactor": 0.5}) is True


# ---------------------------------------------------------------------------
# Prep tasks
# ---------------------------------------------------------------------------

class TestDefinePrepTasks:
    """Tests for define_prep_tasks."""

    def test_returns_stage_count(self):
        nbc = NaiveBayesTextClassifier()
        assert nbc.define_prep_tasks([str.lower, str.split]) == 2
        assert nbc.define_prep_tasks([]) == 0

    @pytest.mark.parametrize("tasks", [None, 1, {"a": 3}, "abc", [str.lower, None]])
    def test_invalid_tasks_rejected(self, tasks):
        nbc = NaiveBayesTextClassifier()
        with pytest.raises(InvalidArgumentError):
            nbc.define_prep_tasks(tasks)

    def test_pre_tokenized_input_with_empty_pipeline(self):
        nbc = NaiveBayesTextClassifier()
        nbc.define_prep_tasks([])
        assert nbc.learn(["buy", "car", "car"], "autoloan") is True
        assert nbc.stats().label_wise_words == {"autoloan": 3}

    def test_pipeline_ending_in_string_fails_atomically(self):
        nbc = NaiveBayesTextClassifier(prep_tasks=[str.lower])
        with pytest.raises(InvalidArgumentError):
            nbc.learn("Not tokenized", "x")
        assert nbc.phase is Phase.FRESH
        assert nbc.stats().vocabulary == 0


# ---------------------------------------------------------------------------
# Learning
# ---------------------------------------------------------------------------

class TestLearn:
    """Tests for learn, stats, and reset."""

    def test_stats_after_learning(self, learned_nbc):
        stats = learned_nbc.stats()
        assert stats.label_wise_samples == {"prepay": 4, "autoloan": 5}
        assert stats.label_wise_words == {"prepay": 26, "autoloan": 36}
        assert stats.vocabulary == 24
        assert stats.total_samples == 9

    def test_presence_counts_each_token_once(self, loan_examples):
        nbc = NaiveBayesTextClassifier(
            prep_tasks=whitespace_prep_tasks(),
            config={"considerOnlyPresence": True},
        )
        for text, label in loan_examples:
            nbc.learn(text, label)
        # "to" appears twice in one autoloan example.
        assert nbc.stats().label_wise_words == {"prepay": 26, "autoloan": 35}

    def test_learn_after_consolidation_fails(self, consolidated_nbc):
        with pytest.raises(InvalidStateError):
            consolidated_nbc.learn("i need a car loan", "autoloan")

    def test_reset_clears_learnings_keeps_pipeline(self, consolidated_nbc, loan_examples):
        assert consolidated_nbc.reset() is True
        assert consolidated_nbc.phase is Phase.FRESH
        assert consolidated_nbc.stats().vocabulary == 0
        assert consolidated_nbc.labels == ()
        # Prep tasks survive, so the same examples can be relearned.
        for text, label in loan_examples:
            consolidated_nbc.learn(text, label)
        assert consolidated_nbc.stats().vocabulary == 24

    def test_instances_share_nothing(self, learned_nbc):
        other = NaiveBayesTextClassifier(prep_tasks=whitespace_prep_tasks())
        other.learn("completely different words", "other")
        assert "other" not in learned_nbc.stats().label_wise_samples
        assert other.stats().vocabulary == 3


# ---------------------------------------------------------------------------
# Consolidation
# ---------------------------------------------------------------------------

class TestConsolidate:
    """Tests for consolidate and the lifecycle phases."""

    def test_requires_two_labels(self):
        nbc = NaiveBayesTextClassifier(prep_tasks=whitespace_prep_tasks())
        nbc.learn("Hi, good morning", "greet")
        with pytest.raises(InsufficientDataError):
            nbc.consolidate()
        assert nbc.consolidated is False

    def test_requires_vocabulary_of_ten(self):
        nbc = NaiveBayesTextClassifier(prep_tasks=whitespace_prep_tasks())
        nbc.learn("Hi, good morning", "greet")
        nbc.learn("See you soon", "bye")
        with pytest.raises(InsufficientDataError):
            nbc.consolidate()

    def test_small_vocabulary_fails_regardless_of_labels(self):
        nbc = NaiveBayesTextClassifier(prep_tasks=[])
        for i, label in enumerate("abcdef"):
            nbc.learn([f"t{i}"], label)
        with pytest.raises(InsufficientDataError):
            nbc.consolidate()

    def test_labels_in_encounter_order(self, consolidated_nbc):
        assert consolidated_nbc.labels == ("prepay", "autoloan")
        assert consolidated_nbc.phase is Phase.CONSOLIDATED

    def test_consolidate_twice_is_idempotent(self, consolidated_nbc):
        labels = consolidated_nbc.labels
        assert consolidated_nbc.consolidate() is True
        assert consolidated_nbc.labels == labels

        consolidated_nbc.evaluate("can i close my loan", "prepay")
        cm = consolidated_nbc.metrics().details.confusion_matrix
        assert sum(sum(row.values()) for row in cm.values()) == 1

    def test_reconsolidation_discards_evaluations(self, consolidated_nbc):
        consolidated_nbc.evaluate("can i close my loan", "prepay")
        assert consolidated_nbc.phase is Phase.EVALUATED
        consolidated_nbc.consolidate()
        assert consolidated_nbc.evaluated is False
        with pytest.raises(InvalidStateError):
            consolidated_nbc.metrics()


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------

class TestScoring:
    """Tests for log likelihoods and odds."""

    def test_log_likelihood_with_smoothing(self, consolidated_nbc):
        # (count + s) / (words + |voc| * s) with s = 1
        assert consolidated_nbc.log_likelihood("loan", "prepay") == pytest.approx(math.log2(5 / 50))
        assert consolidated_nbc.log_likelihood("prepay", "autoloan") == pytest.approx(
            math.log2(1 / 60)
        )

    def test_inverse_log_likelihood(self, consolidated_nbc):
        # Aggregated over every label but "prepay", i.e. autoloan.
        assert consolidated_nbc.inverse_log_likelihood("loan", "prepay") == pytest.approx(
            math.log2(4 / 60)
        )

    def test_zero_smoothing_zero_count_is_uninformative(self, loan_examples):
        nbc = _train(loan_examples, config={"smoothingFactor": 0})
        value = nbc.log_likelihood("prepay", "autoloan")
        assert value == 0
        assert not math.isinf(value) and not math.isnan(value)

    def test_zero_smoothing_unknown_token_is_zero(self, loan_examples):
        nbc = _train(loan_examples, config={"smoothingFactor": 0})
        assert nbc.log_likelihood("happy", "prepay") == 0

    def test_zero_smoothing_known_token_uses_add_one(self, loan_examples):
        nbc = _train(loan_examples, config={"smoothingFactor": 0})
        assert nbc.log_likelihood("loan", "prepay") == pytest.approx(math.log2(5 / 50))
        # The inverse term falls back to add-one as well.
        assert nbc.inverse_log_likelihood("loan", "prepay") == pytest.approx(math.log2(4 / 60))

    def test_scoring_requires_consolidation(self, learned_nbc):
        with pytest.raises(InvalidStateError):
            learned_nbc.log_likelihood("loan", "prepay")
        with pytest.raises(InvalidStateError):
            learned_nbc.inverse_log_likelihood("loan", "prepay")

    def test_binary_odds_are_antisymmetric(self, consolidated_nbc):
        odds = dict(consolidated_nbc.compute_odds(AUTOLOAN_QUERY))
        assert odds["autoloan"] > 0
        assert odds["autoloan"] == pytest.approx(-odds["prepay"])

    def test_compute_odds_sorted_descending(self, consolidated_nbc):
        ranked = consolidated_nbc.compute_odds(PREPAY_QUERY)
        assert [label for label, _ in ranked] == ["prepay", "autoloan"]
        assert ranked[0][1] > ranked[1][1]

    def test_compute_odds_ties_keep_label_order(self):
        # "beta" and "alpha" mirror each other, so "shared" scores them equally.
        nbc = _train([
            ("b1 b2 b3 b4 shared", "beta"),
            ("a1 a2 a3 a4 shared", "alpha"),
            ("g1 g2 g3 g4 g5", "gamma"),
        ])
        ranked = nbc.compute_odds("shared")

        assert [label for label, _ in ranked] == ["beta", "alpha", "gamma"]
        assert ranked[0][1] == ranked[1][1]
        assert ranked[0][1] != 0
        assert ranked[1][1] > ranked[2][1]

    @pytest.mark.parametrize("text", ["happy", "", "audi r8 new-york"])
    def test_compute_odds_unknown(self, consolidated_nbc, text):
        assert consolidated_nbc.compute_odds(text) == [(UNKNOWN_LABEL, 0)]

    def test_compute_odds_requires_consolidation(self, learned_nbc):
        with pytest.raises(InvalidStateError):
            learned_nbc.compute_odds(PREPAY_QUERY)


# ---------------------------------------------------------------------------
# Prediction
# ---------------------------------------------------------------------------

class TestPredict:
    """End-to-end predictions on the loan corpus."""

    def test_frequency_mode(self, consolidated_nbc):
        assert consolidated_nbc.predict(AUTOLOAN_QUERY) == "autoloan"
        assert consolidated_nbc.predict(PREPAY_QUERY) == "prepay"
        assert consolidated_nbc.predict("happy") == UNKNOWN_LABEL

    def test_presence_mode_zero_smoothing(self, loan_examples):
        nbc = _train(loan_examples, config={"considerOnlyPresence": True, "smoothingFactor": 0})
        assert nbc.predict(AUTOLOAN_QUERY) == "autoloan"
        assert nbc.predict(PREPAY_QUERY) == "prepay"
        assert nbc.predict("happy") == UNKNOWN_LABEL
        assert nbc.predict("") == UNKNOWN_LABEL

    def test_presence_mode_half_smoothing(self, loan_examples):
        nbc = _train(loan_examples, config={"considerOnlyPresence": True, "smoothingFactor": 0.5})
        assert nbc.predict(AUTOLOAN_QUERY) == "autoloan"
        assert nbc.predict(PREPAY_QUERY) == "prepay"

    def test_predict_requires_consolidation(self, learned_nbc):
        with pytest.raises(InvalidStateError):
            learned_nbc.predict(PREPAY_QUERY)


# ---------------------------------------------------------------------------
# Evaluation & metrics
# ---------------------------------------------------------------------------

class TestEvaluate:
    """Tests for evaluate and metrics."""

    def test_unknown_label_rejected(self, consolidated_nbc):
        with pytest.raises(InvalidArgumentError):
            consolidated_nbc.evaluate("some funny input", "fun")

    def test_out_of_vocabulary_input_not_scored(self, consolidated_nbc):
        assert consolidated_nbc.evaluate("some funny input", "prepay") is False
        assert consolidated_nbc.evaluated is False
        with pytest.raises(InvalidStateError):
            consolidated_nbc.metrics()

    def test_evaluate_requires_consolidation(self, learned_nbc):
        with pytest.raises(InvalidStateError):
            learned_nbc.evaluate("can i close my loan", "prepay")

    def test_metrics_require_evaluation(self, consolidated_nbc):
        with pytest.raises(InvalidStateError):
            consolidated_nbc.metrics()

    def test_single_correct_evaluation(self, consolidated_nbc):
        assert consolidated_nbc.evaluate("can i close my loan", "prepay") is True
        metrics = consolidated_nbc.metrics()

        assert metrics.details.confusion_matrix == {
            "prepay": {"prepay": 1, "autoloan": 0},
            "autoloan": {"prepay": 0, "autoloan": 0},
        }
        assert metrics.avg_precision == 0.5
        assert metrics.avg_recall == 0.5
        assert metrics.avg_f_measure == 0.5
        assert metrics.details.precision == {"prepay": 1.0, "autoloan": 0.0}

    def test_mismatch_updates_predicted_row(self, consolidated_nbc):
        consolidated_nbc.evaluate("can i close my loan", "prepay")
        # Predicted as prepay although labeled autoloan.
        consolidated_nbc.evaluate("i will use excess fund to close the loan", "autoloan")
        consolidated_nbc.evaluate("i need to buy a car on loan", "autoloan")
        metrics = consolidated_nbc.metrics()

        assert metrics.details.confusion_matrix == {
            "prepay": {"prepay": 1, "autoloan": 1},
            "autoloan": {"prepay": 0, "autoloan": 1},
        }
        assert metrics.details.precision == {"prepay": 0.5, "autoloan": 1.0}
        assert metrics.details.recall == {"prepay": 1.0, "autoloan": 0.5}
        assert metrics.details.fmeasure == {"prepay": 0.6667, "autoloan": 0.6667}
        assert metrics.avg_precision == 0.75
        assert metrics.avg_recall == 0.75
        assert metrics.avg_f_measure == 0.6667

    def test_metrics_details_are_a_copy(self, consolidated_nbc):
        consolidated_nbc.evaluate("can i close my loan", "prepay")
        first = consolidated_nbc.metrics()
        first.details.confusion_matrix["prepay"]["prepay"] = 99
        assert consolidated_nbc.metrics().details.confusion_matrix["prepay"]["prepay"] == 1


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------

class TestSerialization:
    """Tests for export_json and import_json."""

    def test_export_shape(self, learned_nbc):
        doc = json.loads(learned_nbc.export_json())
        assert len(doc) == 5
        config, samples, count, words, vocabulary = doc
        assert config == {"considerOnlyPresence": False, "smoothingFactor": 1.0}
        assert samples == {"prepay": 4, "autoloan": 5}
        assert count["prepay"]["loan"] == 4
        assert words == {"prepay": 26, "autoloan": 36}
        assert vocabulary == sorted(vocabulary)
        assert len(vocabulary) == 24

    def test_export_is_deterministic(self, learned_nbc):
        assert learned_nbc.export_json() == learned_nbc.export_json()

    def test_round_trip_reproduces_predictions(self, consolidated_nbc):
        other = NaiveBayesTextClassifier(prep_tasks=whitespace_prep_tasks())
        assert other.import_json(consolidated_nbc.export_json()) is True
        other.consolidate()

        for text in (AUTOLOAN_QUERY, PREPAY_QUERY, "happy", "can i close my loan"):
            assert other.predict(text) == consolidated_nbc.predict(text)
            for (l1, o1), (l2, o2) in zip(other.compute_odds(text), consolidated_nbc.compute_odds(text)):
                assert l1 == l2
                assert o1 == pytest.approx(o2)

    def test_import_restores_config_and_locks_it(self, loan_examples):
        source = _train(loan_examples, config={"considerOnlyPresence": True, "smoothingFactor": 0.5})
        target = NaiveBayesTextClassifier(prep_tasks=whitespace_prep_tasks())
        target.import_json(source.export_json())

        assert target.config == source.config
        assert target.phase is Phase.LEARNING
        with pytest.raises(InvalidStateError):
            target.define_config({"smoothingFactor": 1})

    def test_import_requires_reconsolidation(self, consolidated_nbc):
        doc = consolidated_nbc.export_json()
        consolidated_nbc.import_json(doc)
        with pytest.raises(InvalidStateError):
            consolidated_nbc.predict(PREPAY_QUERY)
        consolidated_nbc.consolidate()
        assert consolidated_nbc.predict(PREPAY_QUERY) == "prepay"

    @pytest.mark.parametrize("doc", [
        "",
        None,
        "not json",
        json.dumps({"a": 1}),
        json.dumps([1, 2]),
        json.dumps([[], {}, [], {}, []]),
        json.dumps([{"smoothingFactor": "x"}, {}, {}, {}, []]),
        json.dumps([{}, {"a": "1", "b": "2"}, {}, {}, []]),
        json.dumps([{}, {"a": 1}, {"a": {"x": "1"}}, {"a": 1}, ["x"]]),
        json.dumps([{}, {"a": 1}, {"a": {"x": 1}}, {"a": True}, ["x"]]),
        json.dumps([{}, {"a": 1}, {"a": {"x": 1}}, {"a": 1}, [3]]),
        json.dumps([{}, {"a": -1}, {"a": {"x": 1}}, {"a": 1}, ["x"]]),
    ])
    def test_invalid_documents_rejected(self, learned_nbc, doc):
        before = learned_nbc.stats()
        with pytest.raises(InvalidArgumentError):
            learned_nbc.import_json(doc)
        # A failed import changes nothing.
        assert learned_nbc.stats() == before
