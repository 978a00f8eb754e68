"""Tests for url2cite.fetch module."""

import asyncio

import httpx
import pytest

from url2cite.errors import CardinalityError, FetchError
from url2cite.fetch import BibRecord, fetch_bibliographic_record

BIBTEX = """@misc{noauthor_example_nodate,
\ttitle = {Example {Domain}},
\turl = {https://example.org/x},
\turldate = {2024-01-31},
}"""

TWO_ENTRIES = BIBTEX + "\n" + BIBTEX.replace("noauthor", "other")


def run_fetch(handler, url="https://example.org/x", **kwargs):
    async def _run():
        transport = httpx.MockTransport(handler)
        async with httpx.AsyncClient(transport=transport) as client:
            return await fetch_bibliographic_record(url, client=client, **kwargs)
    return asyncio.run(_run())


class TestFetchBibliographicRecord:
    def test_success(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, text=BIBTEX)

        record = run_fetch(handler)
        assert requests[0].url.host == "en.wikipedia.org"
        assert requests[0].url.path == "/api/rest_v1/data/citation/bibtex/https://example.org/x"
        assert record.csl["id"] == "https://example.org/x"
        assert record.csl["title"] == "Example Domain"
        assert "_graph" not in record.csl

    def test_bibtex_stored_as_lines_without_tabs(self):
        record = run_fetch(lambda request: httpx.Response(200, text=BIBTEX))
        assert record.bibtex[0] == "@misc{noauthor_example_nodate,"
        assert record.bibtex[1] == "   title = {Example {Domain}},"
        assert all("\t" not in line for line in record.bibtex)

    def test_timestamp(self):
        record = run_fetch(lambda request: httpx.Response(200, text=BIBTEX))
        assert record.fetched.endswith("Z")
        assert record.fetched[10] == "T"

    def test_custom_api_url(self):
        hosts = []

        def handler(request):
            hosts.append(request.url.host)
            return httpx.Response(200, text=BIBTEX)

        run_fetch(handler, api_url="http://localhost:1969/bibtex/")
        assert hosts == ["localhost"]

    def test_non_success_status(self):
        with pytest.raises(FetchError) as exc:
            run_fetch(lambda request: httpx.Response(404, text="not found"))
        assert exc.value.status == 404
        assert "not found" in str(exc.value)

    def test_transport_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(FetchError) as exc:
            run_fetch(handler)
        assert exc.value.status == 0

    def test_multiple_entries(self):
        with pytest.raises(CardinalityError):
            run_fetch(lambda request: httpx.Response(200, text=TWO_ENTRIES))


class TestBibRecord:
    def test_json_round_trip(self):
        record = BibRecord("2024-01-01T00:00:00.000Z", ["@misc{x,", "}"], {"id": "u"})
        assert BibRecord.from_json(record.to_json()) == record

    def test_string_bibtex_rejected(self):
        with pytest.raises(TypeError):
            BibRecord.from_json({"fetched": "t", "bibtex": "@misc{x}", "csl": {"id": "u"}})

    def test_non_object_csl_rejected(self):
        with pytest.raises(TypeError):
            BibRecord.from_json({"fetched": "t", "bibtex": [], "csl": ["u"]})
