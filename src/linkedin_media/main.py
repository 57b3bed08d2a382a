"""Main CLI entry point for LinkedIn Media."""

import asyncio
import logging
from pathlib import Path
from typing import Optional

import hydra
from omegaconf import DictConfig
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from .config import ExtractorConfig
from .downloader import DownloadedMedia, MediaDownloader, create_zip_buffer
from .errors import ErrorCode, ExtractionError
from .fetcher import GuardedFetcher
from .scraper import LinkedInScraper, PostExtractionResult
from .utils.formatting import human_readable_size, trim_text
from .validator import extract_first_url

console = Console()

ERROR_MESSAGES = {
    ErrorCode.INVALID_URL: "Send a public LinkedIn post URL (linkedin.com/posts/... or /feed/update/...).",
    ErrorCode.PRIVATE_OR_PROTECTED: "This post is private or LinkedIn asked for a login.",
    ErrorCode.SCRAPE_FAILED: "Could not load the post from LinkedIn. Try again later.",
    ErrorCode.TEXT_NOT_FOUND: "The post loaded but no text could be found in it.",
}


@hydra.main(version_base=None, config_path="../../conf", config_name="config")
def main(cfg: DictConfig) -> None:
    """Main entry point."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )
    console.print("[bold blue]LinkedIn Media[/bold blue]")
    console.print()

    asyncio.run(run_pipeline(cfg))


async def run_pipeline(cfg: DictConfig) -> Optional[PostExtractionResult]:
    """Extract one post and optionally download its media."""
    config = ExtractorConfig.from_omegaconf(cfg.get("extractor"))
    post_url = extract_first_url(str(cfg.post_url or ""))

    if not post_url:
        console.print(f"[red]{ERROR_MESSAGES[ErrorCode.INVALID_URL]}[/red]")
        return None

    console.print(f"[cyan]Post:[/cyan] {post_url}")
    console.print()

    async with GuardedFetcher(timeout=config.fetch_timeout) as fetcher:
        scraper = LinkedInScraper(config, fetcher)

        # Step 1: Extract
        console.print("[bold]Step 1: Extracting post[/bold]")
        try:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=console,
                transient=True,
            ) as progress:
                progress.add_task("Scraping...", total=None)
                result = await scraper.scrape(post_url)
        except ExtractionError as e:
            console.print(f"  [red]{ERROR_MESSAGES.get(e.code, str(e))}[/red]")
            return None

        show_result(result)

        if not cfg.get("download", True) or result.media_count == 0:
            return result

        # Step 2: Download
        console.print()
        console.print("[bold]Step 2: Downloading media[/bold]")
        downloader = MediaDownloader(fetcher, config)
        media = await downloader.download(result.media_candidates(), result.preferred_referer)
        console.print(f"  Downloaded [green]{len(media)}[/green] of {result.media_count} files")

    if media:
        save_media(media, Path(cfg.output.dir), config.media_group_limit)
        show_downloads(media)

    return result


def save_media(media: list[DownloadedMedia], output_dir: Path, group_limit: int) -> list[Path]:
    """
    Write downloaded files, or a single ZIP when there are too many to
    deliver one by one.
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    if len(media) > group_limit:
        archive_path = output_dir / "linkedin-media.zip"
        archive_path.write_bytes(create_zip_buffer(media))
        console.print(f"  Archived {len(media)} files to [cyan]{archive_path}[/cyan]")
        return [archive_path]

    paths = []
    for item in media:
        path = output_dir / item.filename
        path.write_bytes(item.buffer)
        paths.append(path)
    console.print(f"  Saved to [cyan]{output_dir}[/cyan]")
    return paths


def show_result(result: PostExtractionResult) -> None:
    """Display the extracted post."""
    console.print()
    console.print(trim_text(result.text, 1024), markup=False)
    console.print()

    table = Table(title="Resolved Media")
    table.add_column("Type", style="cyan")
    table.add_column("Count", style="green")

    table.add_row("Images", str(len(result.image_urls)))
    table.add_row("Videos", str(len(result.video_urls)))
    table.add_row("Documents", str(len(result.document_urls)))

    console.print(table)


def show_downloads(media: list[DownloadedMedia]) -> None:
    table = Table(title="Downloads")
    table.add_column("File", style="cyan")
    table.add_column("Type")
    table.add_column("MIME")
    table.add_column("Size", style="green")

    for item in media:
        table.add_row(item.filename, item.media_type, item.mime_type, human_readable_size(item.size))

    console.print(table)


if __name__ == "__main__":
    main()
