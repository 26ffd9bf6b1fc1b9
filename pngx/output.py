"""Render API records as markdown tables or JSON."""

import json
from collections.abc import Sequence
from enum import StrEnum
from typing import Protocol

import click
from pydantic import BaseModel

from pngx.resolver import ResolvedDocument


class OutputFormat(StrEnum):
    MARKDOWN = "markdown"
    JSON = "json"


class Tabular(Protocol):
    table_headers: tuple[str, ...]

    def table_row(self) -> list[str]: ...


def _cell(value: str) -> str:
    return value.replace("|", "\\|").replace("\r\n", " ").replace("\n", " ")


def render_table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    """Render a padded markdown table."""
    header_cells = [_cell(h) for h in headers]
    body = [[_cell(c) for c in row] for row in rows]
    widths = [len(h) for h in header_cells]
    for row in body:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))

    def line(cells: Sequence[str]) -> str:
        return "| " + " | ".join(c.ljust(w) for c, w in zip(cells, widths)) + " |"

    lines = [line(header_cells), "|" + "|".join("-" * (w + 2) for w in widths) + "|"]
    lines.extend(line(row) for row in body)
    return "\n".join(lines)


def _to_json(data: object) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


def _dump(items: Sequence[BaseModel]) -> list[dict]:
    return [item.model_dump(mode="json") for item in items]


def format_list(fmt: OutputFormat, items: Sequence[BaseModel], model: type[Tabular]) -> str:
    if fmt == OutputFormat.JSON:
        return _to_json(_dump(items))
    return render_table(model.table_headers, [item.table_row() for item in items])


def format_detail(fmt: OutputFormat, doc: ResolvedDocument) -> str:
    if fmt == OutputFormat.JSON:
        return doc.model_dump_json(indent=2)
    return render_table(("Field", "Value"), doc.detail_fields())


def format_details(fmt: OutputFormat, docs: Sequence[ResolvedDocument]) -> str:
    """One detail table per document, or a single JSON array."""
    if len(docs) == 1:
        return format_detail(fmt, docs[0])
    if fmt == OutputFormat.JSON:
        return _to_json(_dump(docs))
    return "\n\n".join(format_detail(fmt, doc) for doc in docs)


def print_results(
    fmt: OutputFormat,
    items: Sequence[BaseModel],
    total: int,
    model: type[Tabular],
) -> None:
    """Print a possibly limited list, hinting on stderr when more exist."""
    if fmt == OutputFormat.JSON:
        click.echo(
            _to_json(
                {
                    "results": _dump(items),
                    "total_count": total,
                    "showing": len(items),
                    "has_more": len(items) < total,
                }
            )
        )
    else:
        click.echo(format_list(fmt, items, model))
    if len(items) < total:
        click.echo(
            f"Showing {len(items)} of {total} results "
            "(use -n to change limit or --all to fetch all)",
            err=True,
        )


def print_all(fmt: OutputFormat, items: Sequence[BaseModel], model: type[Tabular]) -> None:
    click.echo(format_list(fmt, items, model))
