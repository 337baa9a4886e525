"""Shared HTML fixtures and a fake forum for pipeline tests."""

from typing import Dict, List, Tuple, Union

import httpx

FIRST_PAGE_HTML = """
<html>
<body>
<div id="thread_title"><h2><a href="/forum/t.42/">Edge of Oblivion</a></h2></div>
<div class="pagination_last">
  <a href="/forum/t.42/">1</a>
  <a href="/forum/t.42_16/">2</a>
  <a href="/forum/t.42_16/">&gt;</a>
</div>
<div id="content">
  <div id="post-1" class="post">
    <span class="user_name">alice</span>
    <span class="relative-timestamp">Apr 01, 2025 9:00 am</span>
  </div>
  <div id="post-2" class="post">
    <span class="user_name">carol</span>
    <span class="relative-timestamp">Apr 02, 2025 9:00 am</span>
  </div>
</div>
</body>
</html>
"""

LAST_PAGE_HTML = """
<html>
<body>
<div id="content">
  <div id="post-16" class="post">
    <span class="user_name">carol</span>
    <span class="relative-timestamp">Apr 10, 2025 9:00 am</span>
  </div>
  <div id="post-17" class="post">
    <span class="user_name">bob</span>
    <span class="relative-timestamp">Fri Apr 11, 2025 6:30 pm</span>
  </div>
</div>
</body>
</html>
"""


def first_page(title='<a href="/forum/t.42/">Edge of Oblivion</a>',
               pagination='<a>1</a><a>2</a><a>&gt;</a>',
               author='<span class="user_name">alice</span>'):
    """First-page HTML with replaceable fragments."""
    return f"""
    <html><body>
    <div id="thread_title">{title}</div>
    <div class="pagination_last">{pagination}</div>
    <div id="content"><div id="post-1">{author}</div></div>
    </body></html>
    """


class FakeForum:
    """
    Serves thread pages keyed by page identifier ("42", "42_16").

    Unknown pages answer 404. Pages given as bytes are served as-is, with no
    declared charset. Every requested page identifier is recorded
    in ``requested``.
    """

    def __init__(self, pages: Dict[str, Tuple[int, Union[str, bytes]]]):
        self.pages = pages
        self.requested: List[str] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        segment = request.url.path.rstrip("/").rsplit("/", 1)[-1]
        page_id = segment[2:] if segment.startswith("t.") else segment
        self.requested.append(page_id)
        status, html = self.pages.get(page_id, (404, "<html><body>Not here</body></html>"))
        if isinstance(html, bytes):
            return httpx.Response(status, content=html)
        return httpx.Response(status, text=html)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))
