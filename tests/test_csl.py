"""Tests for url2cite.csl module."""

import pytest

from url2cite import csl
from url2cite.csl import bibtex_to_csl, parse_names
from url2cite.errors import CardinalityError, ParseError

ARTICLE = """@article{doe_study_2020,
\ttitle = {A {Study} of {Things}},
\tvolume = {12},
\tnumber = {3},
\tjournal = {Journal of Examples},
\tauthor = {Doe, Jane and Smith, John},
\tmonth = may,
\tyear = {2020},
\tpages = {10--20},
\tdoi = {10.1000/xyz--1},
}
"""

WEBPAGE = """@misc{noauthor_example_nodate,
\ttitle = {Example {Domain}},
\tauthor = {{Internet Assigned Numbers Authority}},
\turl = {https://example.com/a--b},
\turldate = {2024-01-31},
}
"""


class TestBibtexToCsl:
    def test_article(self):
        item = bibtex_to_csl(ARTICLE)
        assert item["type"] == "article-journal"
        assert item["title"] == "A Study of Things"
        assert item["container-title"] == "Journal of Examples"
        assert item["author"] == [
            {"family": "Doe", "given": "Jane"},
            {"family": "Smith", "given": "John"},
        ]
        assert item["issued"] == {"date-parts": [[2020, 5]]}
        assert item["volume"] == "12"
        assert item["issue"] == "3"
        assert item["page"] == "10-20"
        assert item["DOI"] == "10.1000/xyz--1"

    def test_webpage(self):
        item = bibtex_to_csl(WEBPAGE)
        assert item["type"] == "webpage"
        assert item["title"] == "Example Domain"
        assert item["URL"] == "https://example.com/a--b"
        assert item["accessed"] == {"date-parts": [[2024, 1, 31]]}
        assert item["author"] == [{"literal": "Internet Assigned Numbers Authority"}]
        assert "issued" not in item

    def test_keeps_entry_in_graph(self):
        item = bibtex_to_csl(WEBPAGE)
        assert item["_graph"][0]["data"]["ID"] == "noauthor_example_nodate"
        assert item["id"] == "noauthor_example_nodate"

    def test_textbar_replaced(self):
        item = bibtex_to_csl(
            "@misc{x,\n  title = {Home {\\textbar} Example},\n  url = {https://example.com},\n}\n"
        )
        assert "textbar" not in item["title"]
        assert item["title"].startswith("Home")

    def test_two_entries(self):
        with pytest.raises(CardinalityError) as exc:
            bibtex_to_csl(ARTICLE + "\n" + WEBPAGE)
        assert exc.value.count == 2

    def test_no_entries(self):
        with pytest.raises(CardinalityError) as exc:
            bibtex_to_csl("")
        assert exc.value.count == 0

    def test_parser_failure(self, monkeypatch):
        def broken(*args, **kwargs):
            raise ValueError("unexpected token")

        monkeypatch.setattr(csl.bibtexparser, "loads", broken)
        with pytest.raises(ParseError, match="unexpected token"):
            bibtex_to_csl(ARTICLE)

    @pytest.mark.parametrize("text", [
        "this is not bibtex at all",
        "<html><body>Not found</body></html>",
        "@misc{x,\n  title = {unclosed\n",
    ])
    def test_malformed_input(self, text):
        with pytest.raises(ParseError):
            bibtex_to_csl(text)

    def test_subtitle_appended_to_title(self):
        item = bibtex_to_csl(
            "@book{x,\n  title = {Main Title},\n  subtitle = {A {Subtitle}},\n}\n"
        )
        assert item["title"] == "Main Title: A Subtitle"
        assert "title-short" not in item

    def test_subtitle_without_title(self):
        item = bibtex_to_csl("@book{x,\n  subtitle = {Only Subtitle},\n}\n")
        assert item["title"] == "Only Subtitle"


class TestParseNames:
    def test_first_last(self):
        assert parse_names("Ada Lovelace") == [{"family": "Lovelace", "given": "Ada"}]

    def test_and_inside_braces_not_split(self):
        assert parse_names("{Barnes and Noble}") == [{"literal": "Barnes and Noble"}]

    def test_name_containing_and(self):
        assert parse_names("Sandy Anderson and Bo Li") == [
            {"family": "Anderson", "given": "Sandy"},
            {"family": "Li", "given": "Bo"},
        ]

    def test_single_word(self):
        assert parse_names("Plato") == [{"literal": "Plato"}]
