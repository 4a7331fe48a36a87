"""Rendering a ValidationResult for humans (rich) and machines (JSON)."""

from __future__ import annotations

import json

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from threadcheck.models import ValidationResult, ValidationStatus

_STATUS_STYLE = {
    ValidationStatus.GROUNDED: "[green]✓ grounded[/]",
    ValidationStatus.MARGINAL: "[yellow]~ marginal[/]",
    ValidationStatus.UNGROUNDED: "[red]✗ ungrounded[/]",
}


def render_report(result: ValidationResult, console: Console) -> None:
    """Print a per-sentence table followed by the verdict panel."""
    if result.sentence_validations:
        table = Table(show_header=True, header_style="bold", padding=(0, 1))
        table.add_column("#", style="dim", justify="right")
        table.add_column("Status")
        table.add_column("Best", justify="right")
        table.add_column("Failed checks", style="dim")
        table.add_column("Sentence")

        for sv in result.sentence_validations:
            table.add_row(
                str(sv.index + 1),
                _STATUS_STYLE[sv.status],
                f"{sv.best_similarity:.2f}",
                ", ".join(sv.flags.failed_checks()) if sv.top_evidence else "no evidence",
                escape(sv.sentence),
            )
        console.print(table)

    verdict = "[bold green]PASS[/]" if result.passed else "[bold red]FAIL[/]"
    lines = [
        f"Verdict:          {verdict}",
        f"Grounding score:  {result.grounding_score:.2f}",
        f"Weighted score:   {result.weighted_score:.2f}",
        f"Sentences:        {result.grounded_count} grounded, "
        f"{result.marginal_count} marginal, {result.ungrounded_count} ungrounded",
    ]
    if result.fabricated_participants:
        lines.append(
            f"[red]Fabricated:[/]       {escape(', '.join(result.fabricated_participants))}"
        )
    if result.model_version:
        lines.append(f"[dim]Model:            {escape(result.model_version)}[/]")
    lines.append("")
    lines.append(escape(result.reasoning))

    console.print(
        Panel(
            "\n".join(lines),
            title="[bold]Grounding[/]",
            border_style="green" if result.passed else "red",
            expand=False,
        )
    )


def to_json(result: ValidationResult) -> str:
    """Serialize *result* as indented JSON (``ValidationResult.to_dict`` layout)."""
    return json.dumps(result.to_dict(), indent=2, ensure_ascii=False)
