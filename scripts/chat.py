"""Interactive terminal front end for the grounded medical assistant.

Commands typed at the prompt:
    extract <text>   extract triples from <text> and use them as grounding facts
    facts            show the facts the next answer will be grounded on
    context          show the narrative behind the last answer
    help             list commands and suggested questions
    exit             quit
Anything else is sent as a question.

Usage:
    python scripts/chat.py [--config config/config.yaml] [--verbose]
"""

import argparse
import asyncio
import sys
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from medgraph.formatting.trial_formatter import TrialLinkToken
from medgraph.session import SUGGESTED_QUERIES, ChatTurn, Role, SessionOrchestrator, SubmissionStatus
from medgraph.utils.config import load_config
from medgraph.utils.logging_setup import setup_logging

console = Console()


class ChatInterface:
    """Read-eval loop over a :class:`SessionOrchestrator`."""

    def __init__(self, session: SessionOrchestrator) -> None:
        self.session = session

    async def run(self) -> None:
        console.print("\n[bold]Verified Medical Assistant[/bold]")
        console.print("Type a question, 'extract <text>', or 'help'.\n")

        while True:
            try:
                line = (await asyncio.to_thread(console.input, "[bold cyan]> [/bold cyan]")).strip()
            except (KeyboardInterrupt, EOFError):
                console.print()
                break

            if not line:
                continue
            command = line.lower()
            if command in ("exit", "quit", "q"):
                break
            if command == "help":
                self._show_help()
            elif command == "facts":
                self._show_facts()
            elif command == "context":
                self._show_context()
            elif command.startswith("extract "):
                await self._extract(line[len("extract ") :])
            else:
                await self._ask(line)

    async def _extract(self, text: str) -> None:
        with console.status("[bold yellow]Extracting triples...[/bold yellow]"):
            status = await self.session.submit_extraction(text)
        if status is SubmissionStatus.COMPLETED:
            console.print(f"[green]Extracted {len(self.session.facts)} triples.[/green]")
            self._show_facts()
        elif status is SubmissionStatus.FAILED:
            console.print(f"[bold red]Extraction failed:[/bold red] {self.session.last_extraction_error}")

    async def _ask(self, query: str) -> None:
        with console.status("[bold yellow]Synthesizing narrative...[/bold yellow]"):
            await self.session.submit_query(query)
        turn = self._last_assistant_turn()
        if turn is not None:
            console.print(Panel(self._render(turn), title="Assistant", border_style="blue"))
            if turn.hallucination_risk:
                console.print("[yellow]Warning: answer cites trials not found in the knowledge context.[/yellow]")

    def _render(self, turn: ChatTurn) -> Text:
        text = Text()
        for token in self.session.render_turn(turn):
            if isinstance(token, TrialLinkToken):
                text.append(token.identifier, style=f"bold underline link {token.href}")
            else:
                text.append(token.text)
        return text

    def _last_assistant_turn(self) -> Optional[ChatTurn]:
        for turn in reversed(self.session.transcript):
            if turn.role is Role.ASSISTANT:
                return turn
        return None

    def _show_facts(self) -> None:
        facts = self.session.grounding_facts()
        title = "Extracted Knowledge Base" if self.session.facts else "Default Knowledge Base"
        table = Table(title=title)
        table.add_column("Subject", style="cyan")
        table.add_column("Relation", style="bold magenta")
        table.add_column("Object", style="green")
        for fact in facts:
            table.add_row(
                f"{fact.subject} ({fact.subject_type.value})",
                fact.predicate.value.upper(),
                f"{fact.object} ({fact.object_type.value})",
            )
        console.print(table)

    def _show_context(self) -> None:
        turn = self._last_assistant_turn()
        if turn is None or not turn.grounding_context:
            console.print("[dim]No knowledge context available.[/dim]")
            return
        console.print(Panel(turn.grounding_context, title="Knowledge Context", style="dim"))

    def _show_help(self) -> None:
        console.print(__doc__.split("Usage:")[0].strip())
        console.print("\n[bold]Suggested questions:[/bold]")
        for query in SUGGESTED_QUERIES:
            console.print(f"  - {query}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Grounded medical Q&A in the terminal")
    parser.add_argument("--config", default="config/config.yaml", help="Path to config YAML")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    args = parser.parse_args()

    try:
        config = load_config(args.config)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Configuration error:[/bold red] {e}")
        sys.exit(1)

    setup_logging(config.logging, verbose=args.verbose)
    session = SessionOrchestrator.from_config(config)
    asyncio.run(ChatInterface(session).run())


if __name__ == "__main__":
    main()
