"""Input preparation pipeline and a handful of stock prep stages.

A prep pipeline is an ordered sequence of unary callables. Each stage takes
the previous stage's output; the last stage must produce a sequence of
string tokens, which the classifier uses as its features. The classifier
only checks that every stage is callable, so any function with the right
shape works, e.g. ``[str.lower, str.split]``.

The stock stages below cover the common cases without any NLP dependency:

- ``lower_case`` / ``tokenize`` / ``whitespace_tokenize`` turn text into tokens
- ``remove_stop_words`` drops common English function words
- ``mark_numbers`` folds every number into a single ``$number`` token
- ``add_bigrams`` appends ``first_second`` tokens for adjacent pairs
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Sequence
from typing import Any

from .errors import InvalidArgumentError

PrepTask = Callable[[Any], Any]

NUMBER_TOKEN = "$number"

_TOKEN_RE = re.compile(r"[a-zA-Z0-9]+(?:['-][a-zA-Z0-9]+)*")
_NUMBER_RE = re.compile(r"^\d+(?:[.,]\d+)*$")

STOP_WORDS: frozenset[str] = frozenset({
    "a", "an", "the", "and", "or", "but", "in", "on", "at", "to", "for",
    "of", "with", "by", "from", "as", "is", "was", "are", "were", "be",
    "been", "being", "have", "has", "had", "do", "does", "did", "will",
    "would", "could", "should", "may", "might", "shall", "can", "must",
    "so", "if", "then", "than", "that", "this", "these", "those", "it",
    "its", "he", "she", "they", "them", "their", "his", "her", "our",
    "your", "we", "you", "i", "me", "my", "who", "whom", "which", "what",
    "where", "when", "how", "all", "each", "every", "both", "few", "more",
    "most", "other", "some", "such", "any", "only", "own", "same", "too",
    "very", "just", "about", "above", "after", "again", "also", "because",
    "before", "between", "during", "into", "through", "under", "until",
    "up", "out", "over", "here", "there",
})


# ---------------------------------------------------------------------------
# Stock stages
# ---------------------------------------------------------------------------

def lower_case(text: str) -> str:
    """Lowercase the text."""
    return text.lower()


def tokenize(text: str) -> list[str]:
    """Extract word and number tokens, dropping punctuation."""
    return _TOKEN_RE.findall(text)


def whitespace_tokenize(text: str) -> list[str]:
    """Split on runs of whitespace only."""
    return text.split()


def remove_stop_words(tokens: Iterable[str]) -> list[str]:
    """Drop common English function words (case-insensitive)."""
    return [t for t in tokens if t.lower() not in STOP_WORDS]


def mark_numbers(tokens: Iterable[str]) -> list[str]:
    """Replace every numeric token with ``$number``."""
    return [NUMBER_TOKEN if _NUMBER_RE.match(t) else t for t in tokens]


def add_bigrams(tokens: Iterable[str]) -> list[str]:
    """Append a ``first_second`` token for each adjacent token pair."""
    tokens = list(tokens)
    bigrams = [f"{a}_{b}" for a, b in zip(tokens, tokens[1:])]
    return tokens + bigrams


def build_prep_tasks(
    stop_words: bool = False,
    numbers: bool = False,
    bigrams: bool = False,
) -> list[PrepTask]:
    """Assemble the default pipeline: lowercase then tokenize.

    Args:
        stop_words: Also remove stop words.
        numbers: Also fold numbers into ``$number``.
        bigrams: Also append bigram tokens (applied last).

    Returns:
        List of prep stages for ``define_prep_tasks``.
    """
    tasks: list[PrepTask] = [lower_case, tokenize]
    if stop_words:
        tasks.append(remove_stop_words)
    if numbers:
        tasks.append(mark_numbers)
    if bigrams:
        tasks.append(add_bigrams)
    return tasks


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

class PrepPipeline:
    """Validated, left-to-right composition of prep stages.

    Args:
        tasks: Ordered sequence of unary callables (may be empty, in which
            case inputs must already be token sequences).

    Raises:
        InvalidArgumentError: If ``tasks`` is not a sequence or any entry
            is not callable.
    """

    def __init__(self, tasks: Sequence[PrepTask] = ()) -> None:
        if isinstance(tasks, (str, bytes)) or not isinstance(tasks, Sequence):
            raise InvalidArgumentError(
                f"tasks should be a sequence, instead found: {tasks!r}"
            )
        for task in tasks:
            if not callable(task):
                raise InvalidArgumentError(
                    f"each task should be callable, instead found: {task!r}"
                )
        self._tasks: tuple[PrepTask, ...] = tuple(tasks)

    def __len__(self) -> int:
        return len(self._tasks)

    @property
    def tasks(self) -> tuple[PrepTask, ...]:
        return self._tasks

    def __call__(self, value: Any) -> list[str]:
        """Run ``value`` through every stage and return the tokens.

        Raises:
            InvalidArgumentError: If the final output is a bare string or
                is not iterable.
        """
        for task in self._tasks:
            value = task(value)
        if isinstance(value, (str, bytes)):
            raise InvalidArgumentError(
                "prep tasks must produce a sequence of tokens, instead found a string"
            )
        try:
            return list(value)
        except TypeError as e:
            raise InvalidArgumentError(
                f"prep tasks must produce a sequence of tokens, instead found: "
                f"{type(value).__name__}"
            ) from e
