"""Naive Bayes text classifier -- configurable NB with cross-validation support."""

__version__ = "0.1.0"

from .classifier import NaiveBayesTextClassifier
from .datasets import load_examples
from .errors import (
    ClassifierError,
    InsufficientDataError,
    InvalidArgumentError,
    InvalidStateError,
)
from .evaluation import (
    ConfusionMatrix,
    CrossValidationResult,
    compute_metrics,
    cross_validate,
    stratified_k_fold,
)
from .models import (
    UNKNOWN_LABEL,
    ClassificationMetrics,
    ClassifierConfig,
    LearningStats,
    MetricsDetails,
    Phase,
)
from .preprocessing import (
    PrepPipeline,
    add_bigrams,
    build_prep_tasks,
    lower_case,
    mark_numbers,
    remove_stop_words,
    tokenize,
    whitespace_tokenize,
)

__all__ = [
    # Core
    "NaiveBayesTextClassifier",
    "ClassifierConfig",
    "LearningStats",
    "Phase",
    "UNKNOWN_LABEL",
    # Errors
    "ClassifierError",
    "InvalidArgumentError",
    "InvalidStateError",
    "InsufficientDataError",
    # Evaluation
    "ConfusionMatrix",
    "ClassificationMetrics",
    "MetricsDetails",
    "CrossValidationResult",
    "compute_metrics",
    "cross_validate",
    "stratified_k_fold",
    # Preprocessing
    "PrepPipeline",
    "build_prep_tasks",
    "lower_case",
    "tokenize",
    "whitespace_tokenize",
    "remove_stop_words",
    "mark_numbers",
    "add_bigrams",
    # Datasets
    "load_examples",
]
