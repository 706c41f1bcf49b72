from __future__ import annotations

from iaai_scraper.utils.export import format_table


def test_format_table_aligns_numbers_right() -> None:
    table = format_table([["IAAI", 12]], ["Site", "Pages"])

    assert table.splitlines() == [
        "+------+-------+",
        "| Site | Pages |",
        "+------+-------+",
        "| IAAI |     12|",
        "+------+-------+",
    ]


def test_format_table_without_rows() -> None:
    assert format_table([], ["Site"]) == "No data to display"
