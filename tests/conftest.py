"""Shared test fixtures for nb-text-classifier tests."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from nb_text_classifier import NaiveBayesTextClassifier

# Nine loan-intent examples; "vehice" is a deliberate typo that stays in the
# vocabulary (24 distinct tokens in total).
LOAN_EXAMPLES: list[tuple[str, str]] = [
    ("i want to prepay my loan", "prepay"),
    ("i want to close my loan", "prepay"),
    ("i want to foreclose my loan", "prepay"),
    ("i would like to pay the loan balance", "prepay"),
    ("i would like to borrow money to buy a vehice", "autoloan"),
    ("i need loan for car", "autoloan"),
    ("i need loan for a new vehicle", "autoloan"),
    ("i need loan for a new mobike", "autoloan"),
    ("i need money for a new car", "autoloan"),
]

AUTOLOAN_QUERY = "I would like to borrow 50000 to buy a new audi r8 in new york"
PREPAY_QUERY = "I want to pay my car loan early"


def whitespace_prep_tasks() -> list:
    """Lowercase, then split on whitespace."""
    return [str.lower, str.split]


@pytest.fixture
def loan_examples() -> list[tuple[str, str]]:
    return list(LOAN_EXAMPLES)


@pytest.fixture
def learned_nbc(loan_examples) -> NaiveBayesTextClassifier:
    """Classifier that has learned the loan examples (not consolidated)."""
    nbc = NaiveBayesTextClassifier()
    nbc.define_prep_tasks(whitespace_prep_tasks())
    for text, label in loan_examples:
        nbc.learn(text, label)
    return nbc


@pytest.fixture
def consolidated_nbc(learned_nbc: NaiveBayesTextClassifier) -> NaiveBayesTextClassifier:
    """Loan classifier with default config, ready to predict."""
    learned_nbc.consolidate()
    return learned_nbc


@pytest.fixture
def loan_json_file(tmp_path: Path, loan_examples) -> Path:
    """Loan examples written as a JSON array of [text, label] pairs."""
    file = tmp_path / "loans.json"
    file.write_text(json.dumps([list(e) for e in loan_examples]), encoding="utf-8")
    return file
