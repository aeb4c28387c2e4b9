"""Interactive single-choice prompt rendered with Rich."""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from rich.console import Console
from rich.markup import escape
from rich.prompt import Prompt
from rich.table import Table


class TerminalChooser:
    """Filterable numbered list on the terminal.

    Typing a number picks the matching row. Any other text narrows the list to
    options containing it (case-insensitive). An empty answer picks the only
    remaining option, or clears the filter when several remain.
    """

    def __init__(self, console: Optional[Console] = None) -> None:
        self._console = console or Console(stderr=True)

    def _render(self, title: str, visible: List[Tuple[int, str]], query: str) -> None:
        caption = f"filter: {escape(query)}" if query else None
        table = Table(title=title, caption=caption, show_header=False, box=None, pad_edge=False)
        table.add_column("#", style="cyan", justify="right", no_wrap=True)
        table.add_column("Option", style="white")
        for position, (_, option) in enumerate(visible, start=1):
            table.add_row(str(position), escape(option))
        self._console.print(table)

    def choose(self, title: str, options: Sequence[str]) -> Optional[int]:
        """Ask until the user picks an option.

        Returns:
            Index into ``options``, or ``None`` when there is nothing to pick
            or input ends.
        """
        if not options:
            return None

        query = ""
        while True:
            needle = query.lower()
            visible = [(index, option) for index, option in enumerate(options) if needle in option.lower()]
            self._render(title, visible, query)

            try:
                answer = Prompt.ask(
                    "Number or text to filter",
                    console=self._console,
                    default="",
                    show_default=False,
                ).strip()
            except EOFError:
                return None

            if answer.isdecimal():
                position = int(answer)
                if 1 <= position <= len(visible):
                    return visible[position - 1][0]
                self._console.print(f"[red]Enter a number between 1 and {len(visible)}.[/red]")
                continue

            if not answer:
                if len(visible) == 1:
                    return visible[0][0]
                query = ""
                continue

            if not any(answer.lower() in option.lower() for option in options):
                self._console.print(f"[yellow]Nothing matches '{escape(answer)}'.[/yellow]")
                continue
            query = answer
