"""threadcheck validate - check a summary against the thread it summarizes.

Exit codes:
  0  summary passed
  1  summary did not pass
  2  system fault (missing/bad input file, bad config, embedding failure)
"""

from __future__ import annotations

import logging
import warnings
from datetime import date, datetime
from pathlib import Path
from typing import Annotated, Any

import typer
import yaml
from rich.console import Console
from rich.logging import RichHandler

from threadcheck.cli.errors import (
    err_bad_thread_file,
    err_config,
    err_embedding_failed,
    err_file_not_found,
    err_no_api_key,
    err_validation_cancelled,
)
from threadcheck.config import ConfigError, load_config
from threadcheck.models import Post
from threadcheck.rag.embedder import (
    Embedder,
    HashEmbedder,
    LiteLLMEmbedder,
    provider_of,
    validate_api_key,
)
from threadcheck.report import render_report, to_json
from threadcheck.validator import (
    EmbeddingError,
    ValidationCancelled,
    validate_thread_summary,
)

console = Console()
_log_console = Console(stderr=True)

EXIT_PASS = 0
EXIT_FAIL = 1
EXIT_FAULT = 2


def validate_cmd(
    thread: Annotated[
        Path,
        typer.Option("--thread", "-t", help="Thread file (YAML or JSON with a 'posts:' list)."),
    ],
    summary: Annotated[
        Path,
        typer.Option("--summary", "-s", help="Text file containing the summary to check."),
    ],
    model: Annotated[
        str | None,
        typer.Option("--model", help="Embedding model override (LiteLLM provider/model)."),
    ] = None,
    offline: Annotated[
        bool,
        typer.Option("--offline", help="Use the local hash embedder (no API calls)."),
    ] = False,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Print the result as JSON instead of a report."),
    ] = False,
    timeout: Annotated[
        float | None,
        typer.Option("--timeout", min=0.1, help="Seconds allowed for the embedding call."),
    ] = None,
    config_dir: Annotated[
        Path | None,
        typer.Option("--config-dir", help="Directory containing threadcheck.yaml (default: CWD)."),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log per-sentence verdicts."),
    ] = False,
) -> None:
    """Validate that every sentence of a summary is grounded in the thread."""
    _configure_logging(verbose)

    for path, what in ((thread, "Thread"), (summary, "Summary")):
        if not path.is_file():
            console.print(err_file_not_found(str(path), what))
            raise typer.Exit(EXIT_FAULT)

    try:
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            cfg = load_config(config_dir)
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(EXIT_FAULT)
    for w in caught:
        console.print(f"[yellow]Warning:[/] {w.message}")

    try:
        posts = load_posts(thread)
    except ValueError as exc:
        console.print(err_bad_thread_file(str(thread), str(exc)))
        raise typer.Exit(EXIT_FAULT)

    embedding_model = model or cfg.embedding.model
    embedder: Embedder
    if offline:
        embedder = HashEmbedder(cfg.embedding.dimensions)
    else:
        try:
            validate_api_key(embedding_model)
        except EnvironmentError:
            console.print(err_no_api_key(provider_of(embedding_model)))
            raise typer.Exit(EXIT_FAULT)
        embedder = LiteLLMEmbedder(
            embedding_model,
            num_retries=cfg.embedding.num_retries,
            check_api_key=False,
        )

    try:
        result = validate_thread_summary(
            summary.read_text(encoding="utf-8"),
            posts,
            embedder,
            cfg.validation_thresholds(),
            cfg.validator_options(),
            timeout=timeout,
        )
    except EmbeddingError as exc:
        console.print(err_embedding_failed(embedder.model_version(), str(exc)))
        raise typer.Exit(EXIT_FAULT)
    except ValidationCancelled as exc:
        console.print(err_validation_cancelled(str(exc)))
        raise typer.Exit(EXIT_FAULT)

    if json_output:
        typer.echo(to_json(result))
    else:
        render_report(result, console)

    raise typer.Exit(EXIT_PASS if result.passed else EXIT_FAIL)


# ---------------------------------------------------------------------------
# Thread file loading
# ---------------------------------------------------------------------------


def load_posts(path: Path) -> list[Post]:
    """Read a thread file into posts.

    Accepts YAML or JSON (JSON is valid YAML) shaped as ``{posts: [...]}`` or
    a bare list of posts.

    Raises:
        ValueError: If the file cannot be parsed or a post is malformed.
    """
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ValueError(f"not valid YAML/JSON ({exc})") from exc

    if isinstance(data, dict):
        data = data.get("posts")
    if not isinstance(data, list):
        raise ValueError("no 'posts' list found")

    return [_post_from_dict(raw, i) for i, raw in enumerate(data)]


def _post_from_dict(raw: Any, position: int) -> Post:
    if not isinstance(raw, dict):
        raise ValueError(f"post #{position + 1} is not a mapping")
    missing = [k for k in ("id", "author", "text") if k not in raw]
    if missing:
        raise ValueError(f"post #{position + 1} is missing {', '.join(missing)}")

    timestamp = raw.get("timestamp")
    if isinstance(timestamp, str):
        try:
            timestamp = datetime.fromisoformat(timestamp)
        except ValueError as exc:
            raise ValueError(f"post #{position + 1} has a bad timestamp: {timestamp!r}") from exc
    elif isinstance(timestamp, date) and not isinstance(timestamp, datetime):
        timestamp = datetime.combine(timestamp, datetime.min.time())
    elif timestamp is not None and not isinstance(timestamp, datetime):
        raise ValueError(f"post #{position + 1} has a bad timestamp: {timestamp!r}")

    reply_to = raw.get("reply_to")
    return Post(
        id=str(raw["id"]),
        author=str(raw["author"]),
        text=str(raw["text"] or ""),
        timestamp=timestamp,
        reply_to=str(reply_to) if reply_to is not None else None,
    )


def _configure_logging(verbose: bool) -> None:
    logger = logging.getLogger("threadcheck")
    if verbose and not any(isinstance(h, RichHandler) for h in logger.handlers):
        logger.addHandler(RichHandler(console=_log_console, show_path=False))
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
