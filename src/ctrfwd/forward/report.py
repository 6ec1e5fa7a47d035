"""User-facing progress and forwarding lines."""

from rich.console import Console

from ctrfwd.models.enums import OutputFormat
from ctrfwd.models.forwarding import Forwarding


class Reporter:
    """
    Writes forwarding lines and progress messages.

    Progress messages are suppressed in quiet mode and in JSON mode; the
    forwarding lines are always written, one per line.
    """

    def __init__(
        self,
        console: Console | None = None,
        quiet: bool = False,
        output_format: OutputFormat = OutputFormat.TEXT,
    ):
        self.console = console or Console(highlight=False)
        self.quiet = quiet
        self.output_format = output_format

    def status(self, message: str) -> None:
        if self.quiet or self.output_format == OutputFormat.JSON:
            return
        self.console.print(message, style="dim", markup=False, soft_wrap=True)

    def forwarding(self, fwd: Forwarding) -> None:
        if self.output_format == OutputFormat.JSON:
            line = fwd.to_json()
        else:
            line = fwd.describe()
        self.console.print(line, markup=False, highlight=False, soft_wrap=True)
