"""bibtex -> CSL-JSON conversion.

Citation services hand out bibtex; pandoc's citeproc wants CSL-JSON in the
``references`` metadata field. Only the fields citeproc actually renders are
mapped.
"""

from __future__ import annotations

import re
from typing import Any

import bibtexparser
from bibtexparser.bparser import BibTexParser
from bibtexparser.latexenc import latex_to_unicode

from url2cite.errors import CardinalityError, ParseError

ENTRY_TYPES = {
    "article": "article-journal",
    "book": "book",
    "booklet": "pamphlet",
    "conference": "paper-conference",
    "dataset": "dataset",
    "electronic": "webpage",
    "inbook": "chapter",
    "incollection": "chapter",
    "inproceedings": "paper-conference",
    "manual": "report",
    "mastersthesis": "thesis",
    "online": "webpage",
    "patent": "patent",
    "phdthesis": "thesis",
    "proceedings": "book",
    "software": "software",
    "techreport": "report",
    "thesis": "thesis",
    "unpublished": "manuscript",
    "www": "webpage",
}

# bibtex field -> CSL variable, copied as text
TEXT_FIELDS = {
    "title": "title",
    "publisher": "publisher",
    "address": "publisher-place",
    "location": "publisher-place",
    "edition": "edition",
    "series": "collection-title",
    "volume": "volume",
    "chapter": "chapter-number",
    "abstract": "abstract",
    "note": "note",
    "language": "language",
    "keywords": "keyword",
}

# identifiers, copied without latex decoding
VERBATIM_FIELDS = {
    "url": "URL",
    "doi": "DOI",
    "isbn": "ISBN",
    "issn": "ISSN",
}

MONTHS = {
    m: i for i, m in enumerate(
        ("jan", "feb", "mar", "apr", "may", "jun",
         "jul", "aug", "sep", "oct", "nov", "dec"),
        start=1,
    )
}

_AND = re.compile(r"\s+and\s+", re.IGNORECASE)
_URL_MACRO = re.compile(r"\\url\{([^}]*)\}")
_DATE = re.compile(r"^(\d{4})(?:-(\d{1,2}))?(?:-(\d{1,2}))?")
_ENTRY_HEADER = re.compile(r"^\s*@\s*(\w+)\s*[{(]", re.MULTILINE)
_NON_ENTRIES = {"comment", "string", "preamble"}


def parse_bibtex(bibtex: str) -> dict[str, str]:
    """Parse bibtex text that must hold exactly one entry."""
    # {\textbar} is not understood by the latex decoder
    bibtex = bibtex.replace("{\\textbar}", "--")
    parser = BibTexParser(common_strings=True, ignore_nonstandard_types=False)
    try:
        database = bibtexparser.loads(bibtex, parser=parser)
    except Exception as e:
        raise ParseError(f"could not parse bibtex: {e}", {"bibtex": bibtex}) from e

    # bibtexparser skips text it cannot read instead of failing
    headers = [h for h in _ENTRY_HEADER.findall(bibtex) if h.lower() not in _NON_ENTRIES]
    if bibtex.strip() and (not database.entries or len(database.entries) < len(headers)):
        raise ParseError("could not parse bibtex", {"bibtex": bibtex})

    if len(database.entries) != 1:
        raise CardinalityError(len(database.entries), bibtex)
    return database.entries[0]


def bibtex_to_csl(bibtex: str) -> dict[str, Any]:
    """Convert a single bibtex entry to a CSL-JSON item.

    The parsed entry is kept under ``_graph``; callers that persist the
    result should drop it.
    """
    entry = parse_bibtex(bibtex)
    return entry_to_csl(entry)


def entry_to_csl(entry: dict[str, str]) -> dict[str, Any]:
    fields = {k.lower(): v for k, v in entry.items()}
    entry_type = fields.pop("entrytype", "misc").lower()
    key = fields.pop("id", "")

    csl: dict[str, Any] = {"id": key, "type": _csl_type(entry_type, fields)}

    for name in ("author", "editor"):
        if fields.get(name):
            csl[name] = parse_names(fields[name])

    for field, variable in TEXT_FIELDS.items():
        value = fields.get(field)
        if value and variable not in csl:
            csl[variable] = _text(value)

    for field, variable in VERBATIM_FIELDS.items():
        if fields.get(field):
            csl[variable] = _verbatim(fields[field])

    if fields.get("subtitle"):
        subtitle = _text(fields["subtitle"])
        csl["title"] = f"{csl['title']}: {subtitle}" if "title" in csl else subtitle

    container = fields.get("journal") or fields.get("journaltitle") or fields.get("booktitle")
    if container:
        csl["container-title"] = _text(container)

    if "publisher" not in csl:
        for field in ("institution", "school", "organization"):
            if fields.get(field):
                csl["publisher"] = _text(fields[field])
                break

    if fields.get("number"):
        variable = "issue" if entry_type == "article" else "number"
        csl[variable] = _text(fields["number"])

    if fields.get("pages"):
        csl["page"] = re.sub(r"\s*-+\s*", "-", _text(fields["pages"]))

    if "URL" not in csl and fields.get("howpublished"):
        match = _URL_MACRO.search(fields["howpublished"])
        if match:
            csl["URL"] = _verbatim(match.group(1))
        else:
            csl["medium"] = _text(fields["howpublished"])

    issued = _issued(fields)
    if issued:
        csl["issued"] = issued
    if fields.get("urldate"):
        accessed = _date_parts(fields["urldate"])
        if accessed:
            csl["accessed"] = accessed

    csl["_graph"] = [{"type": "@bibtex/entry", "data": dict(entry)}]
    return csl


def parse_names(value: str) -> list[dict[str, str]]:
    """Split a bibtex name list into CSL name objects.

    ``{Wikimedia Foundation}`` (fully braced) becomes a literal name,
    ``Last, First`` and ``First Last`` become family/given pairs.
    """
    names = []
    for raw in _split_names(value):
        raw = raw.strip()
        if not raw:
            continue
        if raw.startswith("{") and raw.endswith("}") and _balanced(raw[1:-1]):
            names.append({"literal": _text(raw[1:-1])})
            continue
        name = _text(raw)
        if "," in name:
            family, given = (p.strip() for p in name.split(",", 1))
        elif " " in name:
            given, family = name.rsplit(" ", 1)
        else:
            names.append({"literal": name})
            continue
        person = {"family": family}
        if given:
            person["given"] = given
        names.append(person)
    return names


def _split_names(value: str) -> list[str]:
    """Split on ``and`` outside of braces."""
    parts, depth, start, i = [], 0, 0, 0
    while i < len(value):
        ch = value[i]
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
        elif depth == 0:
            match = _AND.match(value, i)
            if match:
                parts.append(value[start:i])
                start = i = match.end()
                continue
        i += 1
    parts.append(value[start:])
    return parts


def _balanced(value: str) -> bool:
    depth = 0
    for ch in value:
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth < 0:
                return False
    return depth == 0


def _text(value: str) -> str:
    text = latex_to_unicode(value)
    text = text.replace("{", "").replace("}", "")
    return re.sub(r"\s+", " ", text).strip()


def _verbatim(value: str) -> str:
    return value.replace("{", "").replace("}", "").strip()


def _csl_type(entry_type: str, fields: dict[str, str]) -> str:
    if entry_type == "misc":
        has_url = fields.get("url") or _URL_MACRO.search(fields.get("howpublished", ""))
        return "webpage" if has_url else "document"
    return ENTRY_TYPES.get(entry_type, "document")


def _issued(fields: dict[str, str]) -> dict | None:
    if fields.get("date"):
        return _date_parts(fields["date"])
    year = _text(fields.get("year", ""))
    if not year.isdigit():
        return None
    parts = [int(year)]
    month = _month(fields.get("month", ""))
    if month:
        parts.append(month)
        day = _text(fields.get("day", ""))
        if day.isdigit():
            parts.append(int(day))
    return {"date-parts": [parts]}


def _date_parts(value: str) -> dict | None:
    match = _DATE.match(_text(value))
    if not match:
        return None
    return {"date-parts": [[int(p) for p in match.groups() if p]]}


def _month(value: str) -> int | None:
    value = _text(value).lower()
    if value.isdigit() and 1 <= int(value) <= 12:
        return int(value)
    return MONTHS.get(value[:3])
