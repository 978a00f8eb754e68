"""Tests for url2cite.utils module."""

from datetime import datetime, timezone

from url2cite.utils import is_url, json_timestamp, title_has_token


class TestIsUrl:
    def test_absolute(self):
        assert is_url("https://example.org/x")
        assert is_url("http://localhost:8080")

    def test_relative(self):
        assert not is_url("./local.html")
        assert not is_url("/abs/path")
        assert not is_url("#section")

    def test_citekey(self):
        assert not is_url("doe2020")
        assert not is_url("doe:2020")

    def test_whitespace_and_empty(self):
        assert not is_url("")
        assert not is_url("https://example.org/a b")


class TestTitleHasToken:
    def test_standalone(self):
        assert title_has_token("url2cite", "url2cite")
        assert title_has_token("please url2cite this", "url2cite")

    def test_part_of_word(self):
        assert not title_has_token("url2citation", "url2cite")

    def test_opt_out_token(self):
        assert title_has_token("no-url2cite", "no-url2cite")
        assert not title_has_token("url2cite", "no-url2cite")


class TestJsonTimestamp:
    def test_format(self):
        when = datetime(2024, 1, 31, 12, 5, 9, 123456, tzinfo=timezone.utc)
        assert json_timestamp(when) == "2024-01-31T12:05:09.123Z"
