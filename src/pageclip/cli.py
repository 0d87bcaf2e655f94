"""Command-line interface for pageclip."""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.table import Table

from . import __version__
from .core.embedder import ImageEmbedder
from .images.featured import extract_featured_url
from .logging_config import setup_logging
from .models.config import ClipperConfig
from .models.events import EmbedEvent, EventType
from .models.images import EmbedType, ProcessedImage


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI."""
    parser = argparse.ArgumentParser(
        prog="pageclip",
        description="Decide which article images to inline as data URLs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Smart embedding with default budgets
  pageclip article.html

  # Featured image taken from the full page's og:image
  pageclip article.html --page-html page.html

  # Inline everything, at most 5 images, JSON output
  pageclip article.html --preference always --max-embedded 5 --json

  # Read article HTML from stdin
  cat article.html | pageclip - --featured-url https://example.com/hero.jpg
        """,
    )

    parser.add_argument(
        "html",
        help="Article HTML file, or - for stdin",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=None,
        help="YAML configuration file",
    )

    # Featured image
    featured_group = parser.add_mutually_exclusive_group()
    featured_group.add_argument(
        "--featured-url",
        default=None,
        help="URL of the featured image",
    )
    featured_group.add_argument(
        "--page-html",
        type=Path,
        default=None,
        help="Full page HTML to read the og:image / twitter:image from",
    )

    # Image settings
    image_group = parser.add_argument_group("image settings")
    image_group.add_argument(
        "--preference",
        choices=["always", "smart", "never"],
        default=None,
        help="Embedding preference (default: smart)",
    )
    image_group.add_argument(
        "--size-threshold",
        default=None,
        help="Smart mode size threshold, e.g. 500kb (default: 512000 bytes)",
    )
    image_group.add_argument(
        "--max-embedded",
        type=int,
        default=None,
        help="Maximum images to inline (default: 20)",
    )
    image_group.add_argument(
        "--quality",
        type=int,
        default=None,
        help="WebP quality 0-100 (default: 85)",
    )
    image_group.add_argument(
        "--fetch-timeout",
        type=int,
        default=None,
        help="Per-image fetch timeout in milliseconds (default: 5000)",
    )

    # Network settings
    network_group = parser.add_argument_group("network settings")
    network_group.add_argument(
        "--proxy",
        default=None,
        help="HTTP/HTTPS proxy URL",
    )
    network_group.add_argument(
        "--user-agent",
        default=None,
        help="Custom User-Agent string",
    )

    # Output
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print results as JSON",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Verbose output",
    )
    parser.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="Minimal output",
    )

    return parser


def _read_text(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8", errors="replace")


def build_config(args: argparse.Namespace) -> ClipperConfig:
    """Merge the optional YAML config with command-line overrides."""
    base = ClipperConfig.from_yaml_file(args.config) if args.config else ClipperConfig()
    data = base.model_dump()

    image_overrides = {
        "preference": args.preference,
        "size_threshold_bytes": args.size_threshold,
        "max_embedded_images": args.max_embedded,
        "quality": args.quality,
        "fetch_timeout_ms": args.fetch_timeout,
    }
    data["images"].update({k: v for k, v in image_overrides.items() if v is not None})

    network_overrides = {"proxy": args.proxy, "user_agent": args.user_agent}
    data["network"].update({k: v for k, v in network_overrides.items() if v is not None})

    if args.verbose:
        data["log_level"] = "DEBUG"
    elif args.quiet:
        data["log_level"] = "ERROR"

    return ClipperConfig.model_validate(data)


def _results_table(results: list[ProcessedImage]) -> Table:
    table = Table(title="Images", show_lines=False)
    table.add_column("#", justify="right")
    table.add_column("URL", overflow="fold")
    table.add_column("Embed")
    table.add_column("Format")
    table.add_column("Size", justify="right")
    table.add_column("Time", justify="right")
    table.add_column("Note", overflow="fold")

    for index, image in enumerate(results, start=1):
        embed = "[green]base64[/green]" if image.embed_type == EmbedType.BASE64 else "external"
        size = f"{len(image.data_url):,}" if image.data_url else "-"
        elapsed = f"{image.processing_time_ms:.0f}ms" if image.processing_time_ms is not None else "-"
        note = f"[red]{image.error}[/red]" if image.error else ("featured" if image.is_featured else "")
        table.add_row(str(index), image.original_url, embed, image.format.value, size, elapsed, note)

    return table


def run_embedder(args: argparse.Namespace) -> int:
    """Run one embedding pass with the given arguments."""
    # Keep stdout clean for JSON output
    console = Console(stderr=args.json)

    try:
        config = build_config(args)
    except Exception as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        return 1

    setup_logging(config.log_level, log_file=str(config.log_file) if config.log_file else None, force=True)

    try:
        html = _read_text(args.html)
        featured_url = args.featured_url
        if args.page_html:
            featured_url = extract_featured_url(args.page_html.read_text(encoding="utf-8", errors="replace"))
    except OSError as e:
        console.print(f"[red]Error:[/red] {e}")
        return 1

    def on_event(event: EmbedEvent) -> None:
        if args.quiet or args.json:
            return
        if event.type == EventType.IMAGES_DETECTED:
            console.print(f"[cyan]{event.message}[/cyan]")
        elif event.type == EventType.IMAGE_STARTED and args.verbose and event.progress_percent is not None:
            console.print(f"  {event.progress_percent:5.1f}%  {event.url}", markup=False, highlight=False)
        elif event.type == EventType.IMAGE_FETCH_FAILED:
            console.print(f"[yellow]Fetch failed:[/yellow] {event.url} - {event.error}")

    async def run() -> list[ProcessedImage]:
        async with ImageEmbedder(config, on_event=on_event) as embedder:
            return await embedder.process(html, featured_url=featured_url)

    if not args.quiet and not args.json:
        console.print(f"[bold blue]pageclip[/bold blue] v{__version__}")
        console.print(f"Preference: {config.images.preference.value}")
        if featured_url:
            console.print(f"Featured: {featured_url}")
        console.print()

    results = asyncio.run(run())

    if args.json:
        print(json.dumps([image.to_dict() for image in results], indent=2))
        return 0

    if not args.quiet:
        console.print(_results_table(results))
        embedded = sum(1 for image in results if image.embed_type == EmbedType.BASE64)
        console.print()
        console.print("[bold]Results:[/bold]")
        console.print(f"  Images detected: {len(results)}")
        console.print(f"  Embedded: {embedded}")
        console.print(f"  External: {len(results) - embedded}")

    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)
    return run_embedder(args)


if __name__ == "__main__":
    sys.exit(main())
