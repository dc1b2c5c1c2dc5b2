#!/usr/bin/env python3
"""Command-line entry point for the newsletter send pipeline."""

import argparse
import asyncio
import dataclasses
import sys
from pathlib import Path
from typing import List, Optional

# Load environment variables
from dotenv import load_dotenv
load_dotenv()

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from newsletter_pipeline.infrastructure.config import ApplicationConfig
from newsletter_pipeline.infrastructure.logging import get_logger, setup_logging
from newsletter_pipeline.services.email_preview import EmailPreviewService
from newsletter_pipeline.services.html_generator import generate_content_html
from newsletter_pipeline.services.status_machine import StatusOutcome
from newsletter_pipeline.workflows.send_pipeline import SendPipeline, create_send_pipeline

console = Console()
logger = get_logger(__name__)


class PipelineCLI:
    """Command-line interface for the send pipeline."""

    def __init__(self, config: ApplicationConfig):
        self.config = config
        self.pipeline: Optional[SendPipeline] = None

    def _ensure_pipeline(self) -> SendPipeline:
        """Lazy initialization of the pipeline."""
        if self.pipeline is None:
            with console.status("[bold blue]Initializing pipeline..."):
                self.pipeline = create_send_pipeline(self.config)
        return self.pipeline

    def _print_outcome(self, document_id: str, outcome: StatusOutcome) -> None:
        if outcome.success:
            console.print(
                f"[bold green]{outcome.action.value}:[/bold green] {document_id} "
                f"{outcome.message or ''} (sent={outcome.sent}, failed={outcome.failed})"
            )
        else:
            console.print(f"[bold red]Failed:[/bold red] {document_id} {outcome.error}")

    async def send(self, document_id: str, test: bool = False) -> bool:
        """Run one newsletter through the status machine."""
        pipeline = self._ensure_pipeline()
        status = self.config.status_test_trigger if test else self.config.status_ready_trigger

        if not self.config.is_email_configured:
            console.print(Panel.fit(
                "[yellow]Email API is not configured. Nothing will be delivered,\n"
                "but the newsletter status will still be advanced.[/yellow]",
                title="Email Disabled",
                border_style="yellow"
            ))

        with console.status(f"[bold green]Sending {'test ' if test else ''}newsletter..."):
            outcome = await pipeline.status_machine.handle(document_id, status)

        self._print_outcome(document_id, outcome)
        return outcome.success

    async def send_ready(self) -> bool:
        """Send every newsletter waiting in the ready status."""
        pipeline = self._ensure_pipeline()

        with console.status("[bold green]Sending ready newsletters..."):
            outcomes: List[StatusOutcome] = await pipeline.status_machine.send_ready()

        if not outcomes:
            console.print("[yellow]No newsletters are ready to send.[/yellow]")
            return True

        results_table = Table(title=f"Ready Newsletters ({len(outcomes)})")
        results_table.add_column("Action", style="cyan")
        results_table.add_column("Sent", style="green")
        results_table.add_column("Failed", style="red")
        results_table.add_column("Message", style="white")

        for outcome in outcomes:
            results_table.add_row(
                outcome.action.value,
                str(outcome.sent),
                str(outcome.failed),
                outcome.message or outcome.error or "",
            )

        console.print(results_table)
        return all(outcome.success for outcome in outcomes)

    async def preview(self, document_id: str, output: Optional[Path] = None) -> bool:
        """Render a newsletter to a local HTML file without sending it."""
        pipeline = self._ensure_pipeline()

        with console.status("[bold blue]Rendering preview..."):
            newsletter = await pipeline.store.fetch_newsletter(document_id)
            options = dataclasses.replace(pipeline.content_options, page_id=document_id)
            content_html = await generate_content_html(newsletter.blocks, options)
            rendered = EmailPreviewService().render(
                newsletter, content_html, recipient=self.config.test_recipient
            )

        output = output or Path(f"preview-{document_id}.html")
        output.write_text(rendered, encoding="utf-8")
        console.print(f"[bold green]Preview written:[/bold green] {output}")
        return True

    async def rewrite(self, document_id: str, markdown_file: Path) -> bool:
        """Replace a newsletter body with the contents of a markdown file."""
        pipeline = self._ensure_pipeline()
        markdown = markdown_file.read_text(encoding="utf-8")

        with console.status("[bold blue]Rewriting newsletter body..."):
            written = await pipeline.store.replace_body(document_id, markdown)

        console.print(f"[bold green]Body replaced:[/bold green] {written} blocks written")
        return True


def serve(config: ApplicationConfig) -> None:
    """Run the webhook server."""
    import uvicorn

    from newsletter_pipeline.api.webhook import create_app

    console.print(Panel.fit(
        f"[bold blue]Newsletter webhook[/bold blue]\n"
        f"Listening on {config.host}:{config.port}\n"
        f"Secret check: {'on' if config.webhook_secret else 'off'}",
        title="Server Started",
        border_style="blue"
    ))
    uvicorn.run(create_app(config), host=config.host, port=config.port, log_config=None)


def create_parser() -> argparse.ArgumentParser:
    """Create the command-line argument parser."""
    parser = argparse.ArgumentParser(
        description="Newsletter Send Pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  newsletter-pipeline serve
  newsletter-pipeline send <page-id> --test
  newsletter-pipeline send-ready
  newsletter-pipeline preview <page-id> -o preview.html
  newsletter-pipeline rewrite <page-id> draft.md
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("serve", help="Run the status webhook server")

    send_parser = subparsers.add_parser("send", help="Send one newsletter")
    send_parser.add_argument("page_id", help="Newsletter page ID")
    send_parser.add_argument(
        "--test",
        action="store_true",
        help="Send only to the test recipient"
    )

    subparsers.add_parser("send-ready", help="Send every newsletter in the ready status")

    preview_parser = subparsers.add_parser("preview", help="Render a newsletter to HTML")
    preview_parser.add_argument("page_id", help="Newsletter page ID")
    preview_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        help="Output file (default: preview-<page-id>.html)"
    )

    rewrite_parser = subparsers.add_parser("rewrite", help="Replace a newsletter body from markdown")
    rewrite_parser.add_argument("page_id", help="Newsletter page ID")
    rewrite_parser.add_argument("markdown_file", type=Path, help="Markdown file to write")

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging"
    )

    return parser


async def run(args: argparse.Namespace, config: ApplicationConfig) -> bool:
    cli = PipelineCLI(config)

    if args.command == "send":
        return await cli.send(args.page_id, test=args.test)
    if args.command == "send-ready":
        return await cli.send_ready()
    if args.command == "preview":
        return await cli.preview(args.page_id, args.output)
    if args.command == "rewrite":
        return await cli.rewrite(args.page_id, args.markdown_file)
    raise ValueError(f"Unknown command: {args.command}")


def main() -> None:
    """Main application entry point."""
    parser = create_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    config = ApplicationConfig()
    setup_logging(
        level="DEBUG" if args.verbose else config.log_level,
        format_type=config.log_format,
        log_file=config.log_file,
    )

    try:
        if args.command == "serve":
            serve(config)
            return

        success = asyncio.run(run(args, config))
        sys.exit(0 if success else 1)

    except KeyboardInterrupt:
        console.print("\n\n[yellow]Operation cancelled by user[/yellow]")
        sys.exit(1)
    except Exception as e:
        logger.error("Application error", error=str(e))
        console.print(f"[bold red]Unexpected error:[/bold red] {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
