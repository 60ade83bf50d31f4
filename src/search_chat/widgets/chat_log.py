"""
Chat transcript widget, redrawn from the conversation snapshot.
"""
from typing import Iterable

from rich.markup import escape
from textual.widgets import RichLog

from search_chat.models import SearchActivity, Turn

STAGE_LABELS = {
    'searching': 'Searching the web',
    'reading': 'Reading sources',
    'error': 'Search failed',
    'writing': 'Writing answer',
}


def format_search(info: SearchActivity) -> list[str]:
    lines = [f"[dim]• {STAGE_LABELS.get(stage, stage)}[/dim]" for stage in info.stages]
    if info.query:
        lines.append(f"[dim]  query: {escape(info.query)}[/dim]")
    for url in info.urls:
        lines.append(f"[dim]  - {escape(url)}[/dim]")
    if info.error:
        lines.append(f"[red]  {escape(info.error)}[/red]")
    return lines


def format_turn(turn: Turn) -> list[str]:
    if turn.is_user:
        return [f"[bold]user:[/bold] {escape(turn.content)}"]

    lines = []
    if turn.search_info is not None and turn.search_info.started:
        lines.extend(format_search(turn.search_info))
    if turn.loading:
        lines.append("[dim italic]assistant is thinking...[/dim italic]")
    else:
        lines.append(f"[bold green]assistant:[/bold green] {escape(turn.content)}")
    return lines


class ChatLog(RichLog):
    def render_turns(self, turns: Iterable[Turn]) -> None:
        self.clear()
        for turn in turns:
            for line in format_turn(turn):
                self.write(line)
