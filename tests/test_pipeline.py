"""Tests for the thread details pipeline (network mocked with FakeForum)."""

import asyncio

import httpx
from bs4 import ParserRejectedMarkup

from gaia_thread_miner.fetch import PageFetcher
from gaia_thread_miner.pipeline import (
    GAIA_THREAD_URL_TEMPLATE,
    NO_PAGES_WARNING,
    ThreadPipeline,
    fetch_thread_details,
)

from helpers import FIRST_PAGE_HTML, LAST_PAGE_HTML, FakeForum, first_page


def run_pipeline(forum, raw_id="42", pipeline_cls=ThreadPipeline, **kwargs):
    async def run():
        async with forum.client() as client:
            async with PageFetcher(client=client) as fetcher:
                return await pipeline_cls(fetcher, **kwargs).get_thread_details(raw_id)

    return asyncio.run(run())


class TestEndToEnd:
    def test_success(self):
        forum = FakeForum({
            "42": (200, FIRST_PAGE_HTML),
            "42_16": (200, LAST_PAGE_HTML),
        })
        outcome = run_pipeline(forum)

        assert outcome.success is True
        assert outcome.status == 200
        assert outcome.errors == ()
        assert outcome.warnings == ()
        assert dict(outcome.data) == {
            "name": "Edge of Oblivion",
            "pageCount": 2,
            "createdBy": "alice",
            "lastUpdatedBy": "bob",
            "lastUpdatedOn": "2025-04-11T18:30:00.000Z",
        }
        assert forum.requested == ["42", "42_16"]

    def test_three_pages_fetches_third_page(self):
        forum = FakeForum({
            "42": (200, first_page(pagination="<a>1</a><a>2</a><a>3</a><a>&gt;</a>")),
            "42_31": (200, LAST_PAGE_HTML),
        })
        outcome = run_pipeline(forum)
        assert outcome.success is True
        assert outcome.data["pageCount"] == 3
        assert forum.requested == ["42", "42_31"]

    def test_single_page_without_delimiter(self):
        forum = FakeForum({
            "42": (200, first_page(pagination="<a>1</a>")),
            "42_1": (200, LAST_PAGE_HTML),
        })
        outcome = run_pipeline(forum)
        assert outcome.success is True
        assert outcome.data["pageCount"] == 1
        assert outcome.warnings == ()
        assert forum.requested == ["42", "42_1"]

    def test_iso_timestamp(self):
        last_page = LAST_PAGE_HTML.replace("Fri Apr 11, 2025 6:30 pm", "2025-04-11T20:30:00+02:00")
        forum = FakeForum({"42": (200, FIRST_PAGE_HTML), "42_16": (200, last_page)})
        outcome = run_pipeline(forum)
        assert outcome.data["lastUpdatedOn"] == "2025-04-11T18:30:00.000Z"

    def test_alternate_url_template(self):
        forum = FakeForum({"42": (200, FIRST_PAGE_HTML), "42_16": (200, LAST_PAGE_HTML)})
        outcome = run_pipeline(forum, url_template=GAIA_THREAD_URL_TEMPLATE)
        assert outcome.success is True

    def test_fetch_thread_details_wrapper(self):
        forum = FakeForum({"42": (200, FIRST_PAGE_HTML), "42_16": (200, LAST_PAGE_HTML)})

        async def run():
            async with forum.client() as client:
                return await fetch_thread_details("42", client=client)

        assert asyncio.run(run()).success is True

    def test_legacy_encoded_page(self):
        html = first_page(author='<span class="user_name">al\u00e9ce</span>')
        forum = FakeForum({
            "42": (200, html.encode("latin-1")),
            "42_16": (200, LAST_PAGE_HTML),
        })
        outcome = run_pipeline(forum)

        assert outcome.status == 200
        assert outcome.data["createdBy"] == "al\ufffdce"


class TestSoftFailure:
    def test_no_page_tokens_defaults_to_one_page(self):
        forum = FakeForum({
            "42": (200, first_page(pagination="<a>&gt;</a>")),
            "42_1": (200, LAST_PAGE_HTML),
        })
        outcome = run_pipeline(forum)

        assert outcome.success is True
        assert outcome.warnings == (NO_PAGES_WARNING,)
        assert outcome.errors == ()
        assert outcome.data["pageCount"] == 1
        assert forum.requested == ["42", "42_1"]

    def test_empty_pagination_links(self):
        forum = FakeForum({
            "42": (200, first_page(pagination="<a> </a>")),
            "42_1": (200, LAST_PAGE_HTML),
        })
        outcome = run_pipeline(forum)
        assert len(outcome.warnings) == 1
        assert forum.requested[-1] == "42_1"

    def test_pagination_control_missing(self):
        html = first_page().replace('class="pagination_last"', 'class="other"')
        forum = FakeForum({"42": (200, html), "42_1": (200, LAST_PAGE_HTML)})
        outcome = run_pipeline(forum)

        assert outcome.status == 200
        assert outcome.warnings == (NO_PAGES_WARNING,)
        assert outcome.data["pageCount"] == 1
        assert outcome.data["lastUpdatedBy"] == "bob"
        assert forum.requested == ["42", "42_1"]


class RecordingPipeline(ThreadPipeline):
    """Records which parse steps ran."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.steps = []

    def parse_title(self, *args):
        self.steps.append("title")
        return super().parse_title(*args)

    def parse_page_count(self, *args):
        self.steps.append("page_count")
        return super().parse_page_count(*args)

    def parse_created_by(self, *args):
        self.steps.append("created_by")
        return super().parse_created_by(*args)

    def parse_last_updated_by(self, *args):
        self.steps.append("last_updated_by")
        return super().parse_last_updated_by(*args)

    def parse_last_updated_on(self, *args):
        self.steps.append("last_updated_on")
        return super().parse_last_updated_on(*args)


class TestShortCircuit:
    def run_recorded(self, forum):
        pipelines = []

        def factory(*args, **kwargs):
            pipeline = RecordingPipeline(*args, **kwargs)
            pipelines.append(pipeline)
            return pipeline

        outcome = run_pipeline(forum, pipeline_cls=factory)
        return outcome, pipelines[0].steps

    def test_title_absent_stops_pipeline(self):
        forum = FakeForum({
            "42": (200, first_page(title="<span>no link</span>")),
            "42_16": (200, LAST_PAGE_HTML),
        })
        outcome, steps = self.run_recorded(forum)

        assert outcome.status == 500
        assert outcome.success is False
        assert outcome.errors == ("Unexpected Error parsing Title for Thread: 42",)
        assert dict(outcome.data) == {}
        assert "data" not in outcome.to_dict()
        assert steps == ["title"]
        assert forum.requested == ["42"]

    def test_title_empty_is_bad_gateway(self):
        forum = FakeForum({"42": (200, first_page(title="<a></a>"))})
        outcome, steps = self.run_recorded(forum)

        assert outcome.status == 502
        assert outcome.reason == "Bad Gateway"
        assert outcome.errors == ("Unable to determine Title for Thread: 42",)
        assert steps == ["title"]

    def test_created_by_failure_keeps_earlier_fields(self):
        forum = FakeForum({"42": (200, first_page(author='<span class="user_name"></span>'))})
        outcome, steps = self.run_recorded(forum)

        assert outcome.status == 502
        assert outcome.errors == ("Unable to determine Created By for Thread: 42",)
        assert dict(outcome.data) == {"name": "Edge of Oblivion", "pageCount": 2}
        assert steps == ["title", "page_count", "created_by"]
        assert forum.requested == ["42"]

    def test_last_updated_by_absent(self):
        forum = FakeForum({
            "42": (200, FIRST_PAGE_HTML),
            "42_16": (200, '<html><body><div id="content"></div></body></html>'),
        })
        outcome, steps = self.run_recorded(forum)

        assert outcome.status == 500
        assert outcome.errors == ("Unexpected Error parsing Last Updated By for Thread: 42",)
        assert "last_updated_on" not in steps
        assert "lastUpdatedBy" not in outcome.data


class TestFailures:
    def test_first_page_not_found(self):
        forum = FakeForum({})
        outcome = run_pipeline(forum)

        assert outcome.status == 404
        assert outcome.reason == "Not Found"
        assert outcome.success is False
        assert outcome.errors == ("No Thread found matching ID 42",)
        assert dict(outcome.data) == {}

    def test_last_page_not_found(self):
        forum = FakeForum({"42": (200, FIRST_PAGE_HTML)})
        outcome = run_pipeline(forum)

        assert outcome.status == 404
        assert outcome.errors == ("No Thread found matching ID 42_16",)
        assert outcome.data["createdBy"] == "alice"

    def test_upstream_error_status(self):
        forum = FakeForum({"42": (503, "<html>down</html>")})
        outcome = run_pipeline(forum)

        assert outcome.status == 502
        assert outcome.errors == ("Unexpected Error processing request for Thread: 42",)

    def test_invalid_id_never_fetches(self):
        forum = FakeForum({"42": (200, FIRST_PAGE_HTML)})
        outcome = run_pipeline(forum, raw_id="forty-two")

        assert outcome.status == 400
        assert outcome.reason == "Bad Request"
        assert len(outcome.errors) == 1
        assert forum.requested == []

    def test_transport_error_is_internal(self):
        def handler(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        async def run():
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
                async with PageFetcher(client=client) as fetcher:
                    return await ThreadPipeline(fetcher).get_thread_details("42")

        outcome = asyncio.run(run())
        assert outcome.status == 500
        assert outcome.errors[0].startswith("Request failed for Thread: 42")

    def test_rejected_markup_is_internal(self, monkeypatch):
        def reject(html, source=""):
            raise ParserRejectedMarkup("lxml could not parse the page")

        monkeypatch.setattr("gaia_thread_miner.pipeline.load_document", reject)
        forum = FakeForum({"42": (200, FIRST_PAGE_HTML)})
        outcome = run_pipeline(forum)

        assert outcome.status == 500
        assert outcome.errors[0].startswith("Error parsing response text for Thread: 42")
        assert forum.requested == ["42"]

    def test_disallowed_url_template(self):
        forum = FakeForum({"42": (200, FIRST_PAGE_HTML)})
        outcome = run_pipeline(forum, url_template="https://evil.com/t.{id}/")

        assert outcome.status == 500
        assert outcome.errors == ("Failed to get Thread URL for Thread: 42",)
        assert forum.requested == []

    def test_broken_url_template(self):
        forum = FakeForum({})
        outcome = run_pipeline(forum, url_template="https://www.gaiaonline.com/t.{thread}/")

        assert outcome.status == 500
        assert outcome.errors == ("Failed to get Thread URL for Thread: 42",)

    def test_non_numeric_last_page(self):
        forum = FakeForum({"42": (200, first_page(pagination="<a>1</a><a>…</a><a>&gt;</a>"))})
        outcome = run_pipeline(forum)

        assert outcome.status == 500
        assert "invalid page" in outcome.errors[0]
        assert forum.requested == ["42"]

    def test_ten_pages_ends_on_page_zero(self):
        # "12345678910" tokenizes per character, so the last token is "0"
        pagination = "".join(f"<a>{n}</a>" for n in range(1, 11)) + "<a>&gt;</a>"
        forum = FakeForum({"42": (200, first_page(pagination=pagination))})
        outcome = run_pipeline(forum)

        assert outcome.status == 500
        assert "invalid page '0'" in outcome.errors[0]
        assert outcome.data["pageCount"] == 11
        assert forum.requested == ["42"]

    def test_unparseable_timestamp(self):
        last_page = LAST_PAGE_HTML.replace("Fri Apr 11, 2025 6:30 pm", "a while ago")
        forum = FakeForum({"42": (200, FIRST_PAGE_HTML), "42_16": (200, last_page)})
        outcome = run_pipeline(forum)

        assert outcome.status == 500
        assert "Last Updated On" in outcome.errors[0]
        assert outcome.data["lastUpdatedBy"] == "bob"

    def test_each_run_gets_a_fresh_response(self):
        forum = FakeForum({"42": (200, FIRST_PAGE_HTML), "42_16": (200, LAST_PAGE_HTML)})

        async def run():
            async with forum.client() as client:
                async with PageFetcher(client=client) as fetcher:
                    pipeline = ThreadPipeline(fetcher)
                    bad = await pipeline.get_thread_details("7")
                    good = await pipeline.get_thread_details("42")
                    return bad, good

        bad, good = asyncio.run(run())
        assert bad.status == 404
        assert good.success is True
        assert good.errors == ()
