"""Command-line interface for the Naive Bayes text classifier.

Provides ``train``, ``predict``, ``evaluate``, and ``cross-validate``
commands with rich terminal output using the ``click`` and ``rich``
libraries. Every option can also be set through an ``NBTC_`` environment
variable, e.g. ``NBTC_TRAIN_SMOOTHING=0.1``.

Usage::

    nbtc train examples.json -o model.json
    nbtc predict model.json "I want to pay my car loan early"
    nbtc evaluate model.json held_out.csv
    nbtc cross-validate examples.json --folds 5
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any, NoReturn

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .classifier import NaiveBayesTextClassifier
from .datasets import load_examples
from .errors import ClassifierError
from .evaluation import CrossValidationResult, cross_validate
from .logging_config import configure_logging
from .models import UNKNOWN_LABEL, ClassificationMetrics, LearningStats
from .preprocessing import build_prep_tasks

console = Console()
logger = logging.getLogger(__name__)


def _prep_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Options that shape the prep pipeline; they must match at train and use time."""
    func = click.option("--bigrams", is_flag=True, default=False,
                        help="Add bigram tokens.")(func)
    func = click.option("--numbers", is_flag=True, default=False,
                        help="Fold every number into a single $number token.")(func)
    func = click.option("--stop-words/--keep-stop-words", default=False,
                        help="Remove common English stop words.")(func)
    return func


def _config_options(func: Callable[..., Any]) -> Callable[..., Any]:
    func = click.option("--smoothing", type=float, default=1.0, show_default=True,
                        help="Smoothing factor, clamped into [0, 1].")(func)
    func = click.option("--presence/--frequency", default=False,
                        help="Count token presence per example instead of frequency.")(func)
    return func


def _build_classifier(stop_words: bool, numbers: bool, bigrams: bool) -> NaiveBayesTextClassifier:
    return NaiveBayesTextClassifier(
        prep_tasks=build_prep_tasks(stop_words=stop_words, numbers=numbers, bigrams=bigrams),
    )


def _load_model(path: Path, nbc: NaiveBayesTextClassifier) -> None:
    nbc.import_json(path.read_text(encoding="utf-8"))
    nbc.consolidate()


def _fail(error: Exception) -> NoReturn:
    console.print(f"[bold red]Error:[/] {error}")
    sys.exit(1)


@click.group(context_settings={"auto_envvar_prefix": "NBTC"})
@click.version_option(package_name="nb-text-classifier")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log debug output.")
@click.option("--log-file", type=click.Path(path_type=Path), default=None,
              help="Also write detailed logs to this file.")
def main(verbose: bool, log_file: Path | None) -> None:
    """🧮 Naive Bayes text classifier with cross-validation support.

    Train a model from labeled text, predict labels, and measure
    precision, recall, and F-measure on held-out data.
    """
    configure_logging(
        level=logging.DEBUG if verbose else logging.WARNING,
        log_file=log_file,
    )


@main.command()
@click.argument("data", type=click.Path(exists=True, path_type=Path))
@click.option("--output", "-o", "model_path", type=click.Path(path_type=Path), required=True,
              help="Where to write the exported model JSON.")
@_config_options
@_prep_options
def train(
    data: Path,
    model_path: Path,
    presence: bool,
    smoothing: float,
    stop_words: bool,
    numbers: bool,
    bigrams: bool,
) -> None:
    """Learn every example in DATA and export the model.

    Example: nbtc train examples.json -o model.json --smoothing 0.5
    """
    nbc = _build_classifier(stop_words, numbers, bigrams)

    with console.status("[bold blue]Learning examples...", spinner="dots"):
        try:
            nbc.define_config({"considerOnlyPresence": presence, "smoothingFactor": smoothing})
            for text, label in load_examples(data):
                nbc.learn(text, label)
            # Fail early on data that could never be used for prediction.
            nbc.consolidate()
        except (ClassifierError, OSError) as e:
            _fail(e)

    model_path.parent.mkdir(parents=True, exist_ok=True)
    model_path.write_text(nbc.export_json(), encoding="utf-8")

    _render_stats(nbc.stats())
    console.print(f"[dim]Model saved to {model_path}[/]")


@main.command()
@click.argument("model", type=click.Path(exists=True, path_type=Path))
@click.argument("text")
@click.option("--odds", "show_odds", is_flag=True, default=False,
              help="Show the odds of every label.")
@click.option("--output", "-o", type=click.Choice(["rich", "json"]), default="rich",
              help="Output format.")
@_prep_options
def predict(
    model: Path,
    text: str,
    show_odds: bool,
    output: str,
    stop_words: bool,
    numbers: bool,
    bigrams: bool,
) -> None:
    """Predict the label of TEXT with a trained MODEL.

    Prep flags are not stored in the model; pass the same ones used to
    train it.

    Example: nbtc predict model.json "I want to pay my car loan early"
    """
    nbc = _build_classifier(stop_words, numbers, bigrams)
    try:
        _load_model(model, nbc)
        ranked = nbc.compute_odds(text)
    except (ClassifierError, OSError) as e:
        _fail(e)

    label = ranked[0][0]
    if output == "json":
        payload: dict[str, Any] = {"label": label}
        if show_odds:
            payload["odds"] = [[lbl, round(value, 4)] for lbl, value in ranked]
        click.echo(json.dumps(payload, indent=2))
        return

    style = "dim" if label == UNKNOWN_LABEL else "bold green"
    console.print(f"Prediction: [{style}]{label}[/]")
    if show_odds:
        _render_odds(ranked)


@main.command()
@click.argument("model", type=click.Path(exists=True, path_type=Path))
@click.argument("data", type=click.Path(exists=True, path_type=Path))
@click.option("--output", "-o", type=click.Choice(["rich", "json"]), default="rich",
              help="Output format.")
@_prep_options
def evaluate(
    model: Path,
    data: Path,
    output: str,
    stop_words: bool,
    numbers: bool,
    bigrams: bool,
) -> None:
    """Evaluate a trained MODEL against the labeled examples in DATA.

    Examples whose label the model never learned are skipped, as are
    examples with no known token.

    Prep flags are not stored in the model; pass the same ones used to
    train it.

    Example: nbtc evaluate model.json held_out.csv
    """
    nbc = _build_classifier(stop_words, numbers, bigrams)
    scored = 0
    skipped = 0

    with console.status("[bold blue]Evaluating...", spinner="dots"):
        try:
            _load_model(model, nbc)
            for text, label in load_examples(data):
                if label not in nbc.labels:
                    logger.warning("Skipping example with unlearned label %r", label)
                    skipped += 1
                    continue
                if nbc.evaluate(text, label):
                    scored += 1
                else:
                    skipped += 1
            metrics = nbc.metrics()
        except (ClassifierError, OSError) as e:
            _fail(e)

    if output == "json":
        result = metrics.to_dict()
        result["scored"] = scored
        result["skipped"] = skipped
        click.echo(json.dumps(result, indent=2))
    else:
        _render_metrics(metrics, title=f"Evaluation: {data.name}")
        console.print(f"[dim]Scored {scored} examples, skipped {skipped}.[/]")


@main.command("cross-validate")
@click.argument("data", type=click.Path(exists=True, path_type=Path))
@click.option("--folds", "-k", type=click.IntRange(min=2), default=5, show_default=True,
              help="Number of folds.")
@click.option("--seed", type=int, default=42, show_default=True,
              help="Random seed for fold assignment.")
@click.option("--output", "-o", type=click.Choice(["rich", "json"]), default="rich",
              help="Output format.")
@_config_options
@_prep_options
def cross_validate_command(
    data: Path,
    folds: int,
    seed: int,
    output: str,
    presence: bool,
    smoothing: float,
    stop_words: bool,
    numbers: bool,
    bigrams: bool,
) -> None:
    """Run stratified k-fold cross-validation on DATA.

    Example: nbtc cross-validate examples.json --folds 5 --presence
    """
    nbc = _build_classifier(stop_words, numbers, bigrams)

    with console.status("[bold blue]Cross-validating...", spinner="dots"):
        try:
            nbc.define_config({"considerOnlyPresence": presence, "smoothingFactor": smoothing})
            result = cross_validate(nbc, load_examples(data), k=folds, seed=seed)
        except (ClassifierError, OSError) as e:
            _fail(e)

    if output == "json":
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        _render_cross_validation(result)


# ------------------------------------------------------------------
# Rich rendering helpers
# ------------------------------------------------------------------

def _render_stats(stats: LearningStats) -> None:
    """Render learning stats as a rich table."""
    table = Table(title=f"Learnings (vocabulary: {stats.vocabulary})")
    table.add_column("Label", style="cyan")
    table.add_column("Samples", justify="right")
    table.add_column("Words", justify="right")

    for label, samples in stats.label_wise_samples.items():
        table.add_row(label, str(samples), str(stats.label_wise_words.get(label, 0)))

    console.print(table)


def _render_odds(ranked: list[tuple[str, float]]) -> None:
    table = Table(title="Odds")
    table.add_column("Label", style="cyan")
    table.add_column("Log odds", justify="right")
    for label, value in ranked:
        table.add_row(label, f"{value:.4f}")
    console.print(table)


def _render_metrics(metrics: ClassificationMetrics, title: str) -> None:
    """Render averages, per-label scores, and the confusion matrix."""
    details = metrics.details

    console.print()
    console.print(Panel(
        f"Precision: [bold]{metrics.avg_precision:.4f}[/] | "
        f"Recall: [bold]{metrics.avg_recall:.4f}[/] | "
        f"F-measure: [bold]{metrics.avg_f_measure:.4f}[/]",
        title=title,
        border_style="blue",
    ))

    table = Table(title="Per-label metrics")
    table.add_column("Label", style="cyan")
    table.add_column("Precision", justify="right")
    table.add_column("Recall", justify="right")
    table.add_column("F-measure", justify="right")
    for label in details.precision:
        table.add_row(
            label,
            f"{details.precision[label]:.4f}",
            f"{details.recall[label]:.4f}",
            f"{details.fmeasure[label]:.4f}",
        )
    console.print(table)

    labels = list(details.confusion_matrix)
    cm_table = Table(title="Confusion matrix (rows: predicted, columns: actual)")
    cm_table.add_column("", style="cyan")
    for label in labels:
        cm_table.add_column(label, justify="right")
    for row in labels:
        cm_table.add_row(row, *(str(details.confusion_matrix[row][col]) for col in labels))
    console.print(cm_table)
    console.print()


def _render_cross_validation(result: CrossValidationResult) -> None:
    table = Table(title="Cross-validation", show_lines=False)
    table.add_column("Fold", justify="right")
    table.add_column("Precision", justify="right")
    table.add_column("Recall", justify="right")
    table.add_column("F-measure", justify="right")

    for i, metrics in enumerate(result.folds, 1):
        table.add_row(
            str(i),
            f"{metrics.avg_precision:.4f}",
            f"{metrics.avg_recall:.4f}",
            f"{metrics.avg_f_measure:.4f}",
        )
    table.add_row(
        "[bold]mean[/]",
        f"[bold]{result.avg_precision:.4f}[/]",
        f"[bold]{result.avg_recall:.4f}[/]",
        f"[bold]{result.avg_f_measure:.4f}[/]",
    )

    console.print(table)
    if result.skipped_folds:
        console.print(f"[yellow]Skipped folds with nothing to score: {result.skipped_folds}[/]")


if __name__ == "__main__":
    main()
