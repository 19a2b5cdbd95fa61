"""Console reporter with environment detection for check output."""

import json
import os
import sys

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .models import DiffReport, Severity, Signature
from .output_config import OutputFormat
from .reporting import format_signature, render_text

_SEVERITY_STYLES = {
    Severity.NONE: "dim",
    Severity.NON_BREAKING: "yellow",
    Severity.BREAKING: "bold red",
}


class ConsoleReporter:
    """
    Console reporter that adapts to the environment.

    Automatically detects:
    - Interactive terminals (rich table and summary panel)
    - CI/CD environments (plain text lines)
    - Pipe/redirect scenarios (plain text lines)
    """

    def __init__(self, output_format: OutputFormat = OutputFormat.AUTO):
        self.output_format = output_format
        self._detect_environment()
        self.console = Console() if self.use_rich else None

    def _detect_environment(self) -> None:
        """Detect if we should use rich output or plain text."""
        if self.output_format == OutputFormat.RICH:
            self.use_rich = True
        elif self.output_format in (OutputFormat.PLAIN, OutputFormat.JSON):
            self.use_rich = False
        else:  # AUTO
            is_terminal = sys.stdout.isatty()
            is_ci = any([
                'CI' in os.environ,
                'JENKINS_HOME' in os.environ,
                'GITLAB_CI' in os.environ,
                'GITHUB_ACTIONS' in os.environ,
                'TRAVIS' in os.environ,
            ])
            self.use_rich = is_terminal and not is_ci

    def print_report(self, report: DiffReport, show_all: bool = False) -> None:
        """Display the diff results and the gate outcome."""
        if self.output_format == OutputFormat.JSON:
            print(json.dumps(report.as_serializable(), indent=2))
            return
        if self.use_rich:
            self._print_rich(report, show_all)
        else:
            self._print_plain(report, show_all)

    def _print_rich(self, report: DiffReport, show_all: bool) -> None:
        shown = [result for result in report.results if show_all or result.breaking]
        for result, line in zip(shown, render_text(shown, include_non_breaking=True)):
            self.console.print(Text(line, style=_SEVERITY_STYLES[result.severity]))
        if shown:
            self.console.print()

        table = Table(show_header=True, header_style="bold cyan")
        table.add_column("Kind", width=22)
        table.add_column("Operation", width=20)
        table.add_column("Baseline", width=40)
        table.add_column("Current", width=40)
        table.add_column("Detail")

        for result in report.results:
            if not (show_all or result.breaking):
                continue
            ignored = result.operation in report.policy.ignore
            style = "dim" if ignored else _SEVERITY_STYLES[result.severity]
            table.add_row(
                Text(result.kind.value, style=style),
                result.operation,
                _signature_text(result.baseline),
                _signature_text(result.current),
                (result.detail or "") + (" (ignored)" if ignored else ""),
            )

        if table.row_count:
            self.console.print(table)

        counts = report.counts()
        summary = Text()
        summary.append(f"Operations: {len(report.results)}  ", style="bold")
        for kind, count in counts.items():
            if count:
                summary.append(f"{kind}: {count}  ", style="bold cyan")

        passed = report.passed
        status = "✓ CONTRACT COMPATIBLE" if passed else "✗ BREAKING CHANGES DETECTED"
        self.console.print()
        self.console.print(Panel(
            summary,
            title=Text(status, style="bold green" if passed else "bold red"),
            border_style="green" if passed else "red",
        ))

    def _print_plain(self, report: DiffReport, show_all: bool) -> None:
        for line in render_text(report.results, include_non_breaking=show_all):
            print(line)
        counts = " | ".join(f"{kind}: {count}" for kind, count in report.counts().items() if count)
        print("-" * 80)
        print(f"Total: {len(report.results)} | {counts}" if counts else "Total: 0")
        if report.passed:
            print("✓ CONTRACT COMPATIBLE")
        else:
            print("✗ BREAKING CHANGES DETECTED")

    def print_info(self, message: str) -> None:
        """Print an info message."""
        if self.use_rich:
            self.console.print(f"[cyan]{message}[/]")
        elif self.output_format != OutputFormat.JSON:
            print(message)


def _signature_text(signature: Signature | None) -> Text:
    return Text(format_signature(signature), style="white" if signature else "dim")
