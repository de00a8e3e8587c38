from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from regwatch.adapters.sources import file_format, iter_delimited, parse_text, read_rows

if TYPE_CHECKING:
    from pathlib import Path


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("rows.csv", "csv"),
        ("rows.CSV", "csv"),
        ("rows.jsonl", "jsonl"),
        ("rows.ndjson", "jsonl"),
        ("rows.tsv", "tsv"),
        ("https://host/daily/OSHA/ita/rows.txt?sig=abc", "tsv"),
        ("rows", "csv"),
    ],
)
def test_file_format(name: str, expected: str) -> None:
    assert file_format(name) == expected


def test_delimited_rows_are_trimmed_and_padded() -> None:
    lines = [" City ,State,Zip\n", " Miami , FL \n", "Tampa,FL,33601,extra\n"]

    rows = list(iter_delimited(lines))

    assert rows == [
        {"City": "Miami", "State": "FL", "Zip": ""},
        {"City": "Tampa", "State": "FL", "Zip": "33601"},
    ]


def test_empty_delimited_input_yields_nothing() -> None:
    assert list(iter_delimited([])) == []


def test_parse_text_strips_byte_order_mark() -> None:
    rows = list(parse_text('\ufeffID,Employer\n1,"Acme, Inc."\n', name="rows.csv"))

    assert rows == [{"ID": "1", "Employer": "Acme, Inc."}]


def test_parse_text_reads_json_lines() -> None:
    text = '{"city": " Miami ", "count": 3}\n\n{"city": "Tampa"}\n'

    assert list(parse_text(text, name="rows.jsonl")) == [
        {"city": "Miami", "count": 3},
        {"city": "Tampa"},
    ]


def test_json_lines_must_hold_objects() -> None:
    with pytest.raises(ValueError, match="line 1"):
        list(parse_text("[1, 2]\n", name="rows.jsonl"))


def test_read_rows_from_tab_separated_file(tmp_path: Path) -> None:
    path = tmp_path / "rows.tsv"
    path.write_text("\ufeffCITY\tSTATE\nNEW YORK 10001\tNY\n", encoding="utf-8")

    assert list(read_rows(path)) == [{"CITY": "NEW YORK 10001", "STATE": "NY"}]
