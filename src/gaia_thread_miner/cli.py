"""CLI interface for Gaia Thread Miner."""

import asyncio
import logging
import sys
from typing import List, Optional

import click
import orjson
from tqdm import tqdm

from .fetch import REQUEST_TIMEOUT, PageFetcher
from .handler import dispatch
from .pipeline import GAIA_THREAD_URL_TEMPLATE, THREAD_URL_TEMPLATE, ThreadPipeline
from .response import Outcome
from .utils import write_json_atomic


def _configure_logging(verbose: bool):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        stream=sys.stderr,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
def main(verbose):
    """Gaia Thread Miner - Fetch thread details from the GaiaOnline forums."""
    _configure_logging(verbose)


@main.command()
@click.argument('thread_ids', nargs=-1, required=True)
@click.option(
    '--url-template',
    default=THREAD_URL_TEMPLATE,
    show_default=True,
    help='Thread page URL; "{id}" is replaced by the thread or page identifier'
)
@click.option(
    '--any-board',
    is_flag=True,
    help=f'Use the board-independent URL ({GAIA_THREAD_URL_TEMPLATE})'
)
@click.option(
    '--timeout',
    default=REQUEST_TIMEOUT,
    type=float,
    show_default=True,
    help='Request timeout in seconds'
)
@click.option(
    '--output',
    type=click.Path(dir_okay=False, writable=True),
    default=None,
    help='Write all outcomes to this JSON file instead of stdout'
)
def thread(thread_ids, url_template, any_board, timeout, output):
    """Get details for one or more threads by ID."""
    if any_board:
        url_template = GAIA_THREAD_URL_TEMPLATE

    outcomes = asyncio.run(_fetch_threads(list(thread_ids), url_template, timeout))

    if output:
        path = write_json_atomic(output, [o.to_dict() for o in outcomes])
        click.echo(f"Wrote {len(outcomes)} outcome(s) to {path}", err=True)
    else:
        for outcome in outcomes:
            click.echo(orjson.dumps(outcome.to_dict(), option=orjson.OPT_INDENT_2).decode())

    failed = sum(1 for o in outcomes if not o.success)
    if failed:
        click.echo(f"{failed}/{len(outcomes)} thread(s) failed", err=True)
        sys.exit(1)


async def _fetch_threads(
    thread_ids: List[str],
    url_template: str,
    timeout: float,
    fetcher: Optional[PageFetcher] = None,
) -> List[Outcome]:
    """Run the pipeline for each id in turn, sharing one HTTP client."""
    outcomes: List[Outcome] = []
    async with (fetcher or PageFetcher(timeout=timeout)) as active:
        pipeline = ThreadPipeline(active, url_template=url_template)
        with tqdm(total=len(thread_ids), desc="Fetching threads",
                  disable=len(thread_ids) < 2, file=sys.stderr) as pbar:
            for raw_id in thread_ids:
                outcome = await dispatch(
                    lambda raw_id=raw_id: pipeline.get_thread_details(raw_id),
                    job_id=f"getThread ({raw_id})",
                )
                outcomes.append(outcome)
                pbar.update(1)
    return outcomes


if __name__ == '__main__':
    main()
