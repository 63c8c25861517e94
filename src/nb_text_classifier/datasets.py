"""Loading labeled examples from disk.

Supported formats, picked by file extension:

- ``.json``: an array of ``[text, label]`` pairs or ``{"text", "label"}`` objects
- ``.jsonl``: one ``{"text", "label"}`` object per line
- ``.csv``: a header row with ``text`` and ``label`` columns
"""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Any

from .errors import InvalidArgumentError

Example = tuple[str, str]


def _to_example(row: Any, where: str) -> Example:
    if isinstance(row, dict):
        text, label = row.get("text"), row.get("label")
    elif isinstance(row, (list, tuple)) and len(row) == 2:
        text, label = row
    else:
        raise InvalidArgumentError(f"{where}: expected a [text, label] pair, found {row!r}")
    if not isinstance(text, str) or not isinstance(label, str):
        raise InvalidArgumentError(f"{where}: text and label must both be strings")
    return text, label


def _load_json(path: Path) -> list[Example]:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise InvalidArgumentError(f"{path.name}: top level must be an array")
    return [_to_example(row, f"{path.name}[{i}]") for i, row in enumerate(data)]


def _load_jsonl(path: Path) -> list[Example]:
    examples = []
    with open(path, "r", encoding="utf-8") as f:
        for lineno, line in enumerate(f, 1):
            if not line.strip():
                continue
            examples.append(_to_example(json.loads(line), f"{path.name}:{lineno}"))
    return examples


def _load_csv(path: Path) -> list[Example]:
    with open(path, "r", encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        if not reader.fieldnames or not {"text", "label"} <= set(reader.fieldnames):
            raise InvalidArgumentError(f"{path.name}: CSV needs 'text' and 'label' columns")
        return [
            _to_example(row, f"{path.name}:{lineno}")
            for lineno, row in enumerate(reader, 2)
        ]


_LOADERS = {
    ".json": _load_json,
    ".jsonl": _load_jsonl,
    ".csv": _load_csv,
}


def load_examples(path: str | Path) -> list[Example]:
    """Read ``(text, label)`` pairs from a dataset file.

    Args:
        path: Path to a ``.json``, ``.jsonl``, or ``.csv`` file.

    Returns:
        List of ``(text, label)`` tuples in file order.

    Raises:
        FileNotFoundError: If the file does not exist.
        InvalidArgumentError: If the format is unsupported or a row is
            malformed.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Dataset not found: {path}")

    loader = _LOADERS.get(path.suffix.lower())
    if loader is None:
        raise InvalidArgumentError(
            f"Unsupported dataset format: {path.suffix}. "
            f"Supported: {', '.join(sorted(_LOADERS))}"
        )
    try:
        return loader(path)
    except json.JSONDecodeError as e:
        raise InvalidArgumentError(f"{path.name}: invalid JSON ({e})") from e
