"""
HTML field extraction.

A loaded page is wrapped in an immutable ``ParsedDocument`` handle and
queried with the pure ``query`` function. Nothing about a query is stored on
the handle, so consecutive extractions cannot see each other's selector or
scope.

``query`` distinguishes two kinds of "nothing":

- ``None``: the selector (or its scoping context) matched no element at all.
  The page is not shaped the way we expect.
- ``""``: elements matched but carry no text. The page is shaped correctly
  but the data is genuinely missing.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from bs4 import BeautifulSoup, Tag
from soupsieve import SelectorSyntaxError

from .errors import InternalError

logger = logging.getLogger(__name__)

# Parser handed to BeautifulSoup for every page
HTML_PARSER = "lxml"


@dataclass(frozen=True)
class ParsedDocument:
    """
    A parsed HTML page.

    Attributes:
        soup: The parsed tree. Treat as read-only.
        source: Label for log messages (usually the page identifier)
    """
    soup: BeautifulSoup
    source: str = ""


def load_document(html: str, source: str = "") -> ParsedDocument:
    """
    Parse raw HTML into a document handle.

    Raises:
        TypeError: If html is not a string
    """
    if not isinstance(html, str):
        raise TypeError(
            f"Cannot load data into parser; Expected str, received {type(html).__name__}"
        )

    logger.debug("Loading HTML for %s (%d chars)", source or "<unnamed>", len(html))
    return ParsedDocument(soup=BeautifulSoup(html, HTML_PARSER), source=source)


def _select(document: ParsedDocument, selector: str, context: Optional[str]) -> List[Tag]:
    try:
        if context is None:
            return document.soup.select(selector)

        scopes = document.soup.select(context)
        matches: List[Tag] = []
        seen = set()
        for scope in scopes:
            for element in scope.select(selector):
                # Nested scopes can match the same element twice
                if id(element) not in seen:
                    seen.add(id(element))
                    matches.append(element)
        return matches
    except SelectorSyntaxError as e:
        raise InternalError(f"Invalid selector {selector!r} (context {context!r}): {e}") from e


def query(
    document: ParsedDocument,
    selector: str,
    context: Optional[str] = None,
    last: bool = False,
) -> Optional[str]:
    """
    Extract text from a document.

    Args:
        document: Page to search
        selector: CSS selector of the elements to read
        context: Optional CSS selector scoping the search; only descendants
                 of matching elements are considered
        last: Read only the last matching element instead of all of them

    Returns:
        The concatenated, stripped text of the matched elements, "" when they
        hold no text, or None when nothing matched.

    Example:
        query(doc, "a", context="#thread_title")           # "Edge of Oblivion"
        query(doc, ".user_name", context="#content", last=True)  # "bob"
    """
    if context is None:
        logger.debug('Executing $("%s") on %s', selector, document.source)
    else:
        logger.debug('Executing $("%s", "%s") on %s', selector, context, document.source)

    matches = _select(document, selector, context)
    if not matches:
        return None

    if last:
        return matches[-1].get_text().strip()
    return "".join(element.get_text() for element in matches).strip()
