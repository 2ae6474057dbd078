"""Console output, annotations and workflow outputs for a pipeline run."""

import os
import uuid
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.markup import escape


class ActionConsole:
    """
    Rich console with GitHub Actions awareness.

    Inside a GitHub Actions runner (GITHUB_ACTIONS=true) warnings and errors are
    written as workflow commands so they surface as annotations, and outputs are
    appended to the $GITHUB_OUTPUT file. Outside a runner everything is printed
    with rich markup. Outputs are always kept in ``self.outputs``.
    """

    def __init__(
        self,
        console: Console | None = None,
        verbose: bool = False,
        environ: dict[str, str] | None = None,
    ):
        env = os.environ if environ is None else environ
        self.console = console or Console(highlight=False)
        self.in_actions = env.get("GITHUB_ACTIONS", "").lower() == "true"
        self.verbose = verbose or env.get("RUNNER_DEBUG") == "1"
        output_file = env.get("GITHUB_OUTPUT")
        self.output_file = Path(output_file) if output_file else None
        self.outputs: dict[str, str] = {}
        self.failure: str | None = None

    def info(self, message: str) -> None:
        self.console.print(escape(message))

    def debug(self, message: str) -> None:
        if not self.verbose:
            return
        if self.in_actions:
            self._command("debug", message)
        else:
            self.console.print(f"[dim]{escape(message)}[/dim]")

    def warning(self, message: str) -> None:
        if self.in_actions:
            self._command("warning", message)
        else:
            self.console.print(f"[yellow]Warning: {escape(message)}[/yellow]")

    def error(self, message: str) -> None:
        if self.in_actions:
            self._command("error", message)
        else:
            self.console.print(f"[red]Error: {escape(message)}[/red]")

    def set_output(self, name: str, value: Any) -> None:
        """Record a workflow output, mirroring it to $GITHUB_OUTPUT when present."""
        text = value if isinstance(value, str) else str(value)
        self.outputs[name] = text
        if self.output_file is None:
            self.debug(f"Output {name}={text}")
            return
        delimiter = f"ghadelimiter_{uuid.uuid4()}"
        with open(self.output_file, "a", encoding="utf-8") as f:
            f.write(f"{name}<<{delimiter}\n{text}\n{delimiter}\n")

    def set_failed(self, message: str) -> None:
        self.failure = message
        self.error(message)

    def _command(self, command: str, message: str) -> None:
        # Workflow commands must stay on one line
        data = message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")
        self.console.print(f"::{command}::{data}", markup=False, highlight=False, soft_wrap=True)
