import argparse
import asyncio
import sys
from datetime import UTC, datetime

from rich.console import Console

from hn_quality.cache_utils import TimedCache
from hn_quality.client import AlgoliaClient
from hn_quality.config import get_settings, save_config
from hn_quality.errors import HNAPIError, RequestTimeoutError
from hn_quality.logging_config import configure_logging
from hn_quality.recency import format_time_ago, get_recency_status
from hn_quality.scoring import calculate_quality_score
from hn_quality.stories import StoryAggregator
from hn_quality.url_utils import extract_domain

console = Console()

STATUS_STYLES = {
    "hot": "bold red",
    "trending": "dark_orange",
    "recent": "blue",
    "aging": "grey50",
    "viral": "magenta",
    "classic": "yellow",
    "archive": "grey39",
}


async def main(args) -> int:
    settings = get_settings()
    page_size = args.page_size or settings.page_size

    async with AlgoliaClient(base_url=settings.base_url) as client:
        aggregator = StoryAggregator(
            client,
            TimedCache(settings.cache_ttl),
            list_deadline=settings.list_deadline,
            item_deadline=settings.item_deadline,
            comments_deadline=settings.comments_deadline,
        )
        try:
            with console.status(f"[cyan]Fetching page {args.page}..."):
                data = await aggregator.list_page(args.page - 1, page_size)
        except RequestTimeoutError:
            console.print("[red]Request timeout - please try again.[/]")
            return 1
        except HNAPIError as e:
            console.print(f"[red]Failed to fetch stories: {e}[/]")
            return 1

    console.print(
        f"\n[bold green]Page {args.page} of {data.nb_pages} (quality sorted)[/]\n"
    )

    now = datetime.now(UTC)
    for rank, story in enumerate(data.hits, start=1):
        quality = calculate_quality_score(story, now)
        status = get_recency_status(story, now)
        style = STATUS_STYLES.get(status.status.value, "white")

        console.print(
            f"{rank:2d}. [bold]{quality.total:6.1f}[/bold] "
            f"[{style}]{status.icon} {status.label}[/{style}] "
            f"[bold]{story.title or 'Untitled'}[/bold]"
        )
        domain = extract_domain(story.url)
        console.print(
            f"    [dim]{story.points or 0} points | {story.num_comments or 0} comments | "
            f"{story.author} | {format_time_ago(story.created_at, now)}"
            f"{' | ' + domain if domain else ''}[/]"
        )
        if args.breakdown:
            b = quality.breakdown
            console.print(
                f"    [dim italic]points {b.points} + comments {b.comments} + recency {b.recency}[/]"
            )
        console.print(
            f"    [dim blue]Discuss:[/] https://news.ycombinator.com/item?id={story.id}"
        )

    return 0


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Quality-ranked Hacker News")
    parser.add_argument(
        "--page", type=int, default=1, help="Page to show, 1-indexed (default: 1)"
    )
    parser.add_argument(
        "--page-size",
        type=int,
        default=0,
        help="Stories per page (default: from config, 20)",
    )
    parser.add_argument(
        "--breakdown", action="store_true", help="Show the score breakdown"
    )
    parser.add_argument(
        "--log-level", type=str, default=None, help="Log level (default: from config)"
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        default=None,
        help="Emit JSON logs (default: JSON unless stderr is a terminal)",
    )
    parser.add_argument(
        "--save-page-size",
        action="store_true",
        help="Remember --page-size in the config file",
    )
    args = parser.parse_args(argv)
    if args.page < 1:
        parser.error("--page must be >= 1")
    if args.page_size < 0:
        parser.error("--page-size must be >= 0 (0 = from config)")
    return args


if __name__ == "__main__":
    args = parse_args()
    configure_logging(
        args.log_level or get_settings().log_level, json_logs=args.json_logs
    )

    if args.save_page_size and args.page_size:
        save_config("page_size", args.page_size)

    sys.exit(asyncio.run(main(args)))
