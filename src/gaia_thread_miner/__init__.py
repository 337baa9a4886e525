"""
Gaia Thread Miner

This package fetches a GaiaOnline forum thread and summarises it: title,
page count, who started it, and who posted last and when.

Main components:
- ThreadPipeline: Fetches the first and last page and extracts the fields
- ApiResponse / Outcome: Accumulates data, errors and warnings into one result
- PageFetcher: Single-attempt async HTTP GET
- compute_page_identifier: Page number to the forum's page identifier

Usage:
    from gaia_thread_miner import fetch_thread_details
    import asyncio

    outcome = asyncio.run(fetch_thread_details("42"))
    print(outcome.to_dict())
"""

from .errors import (
    InternalError,
    NotFoundError,
    ThreadMinerError,
    UpstreamMalformedError,
    ValidationError,
)
from .fetch import FetchResult, PageFetcher
from .models import PageLocator, ThreadRecord
from .pagination import compute_page_identifier, page_locator, parse_page_tokens
from .pipeline import ThreadPipeline, fetch_thread_details
from .response import ApiResponse, Outcome

__all__ = [
    'ThreadPipeline',
    'fetch_thread_details',
    'ApiResponse',
    'Outcome',
    'PageFetcher',
    'FetchResult',
    'ThreadRecord',
    'PageLocator',
    'compute_page_identifier',
    'page_locator',
    'parse_page_tokens',
    'ThreadMinerError',
    'ValidationError',
    'NotFoundError',
    'UpstreamMalformedError',
    'InternalError',
]

__version__ = '1.0.0'
