"""
Catalog file parsing: delimited rows -> Product records.

Row layout (header line skipped):
    code, name, price, stock quantity, min order quantity, description[, ...]
Fields may be quoted so descriptions can contain the delimiter.
"""

import csv
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Iterable, Iterator, Mapping, NamedTuple, Optional

from pydantic import ValidationError

from catalog_engine.shared.config import (
    CATALOG_DELIMITER,
    CATEGORY_SEPARATOR,
    TAG_KEYWORDS,
    UNKNOWN_CATEGORY_NAME,
)
from catalog_engine.shared.errors import MalformedRecord
from catalog_engine.shared.schemas_pydantic import Category, Product

REQUIRED_FIELDS = 6


class RawRow(NamedTuple):
    """One data row as read from the file. problem is set when the row itself is unreadable."""
    line_number: int
    fields: list[str]
    problem: Optional[str] = None


def _decode_lines(raw_lines: Iterable[bytes], bad_lines: set[int]) -> Iterator[str]:
    # one undecodable line must not poison the rest of the file
    for number, raw in enumerate(raw_lines, start=1):
        try:
            yield raw.decode("utf-8")
        except UnicodeDecodeError:
            bad_lines.add(number)
            yield raw.decode("utf-8", errors="replace")


def iter_rows(path: Path, delimiter: str = CATALOG_DELIMITER) -> Iterator[RawRow]:
    """Yield a RawRow for every non-blank data row.

    Rows the csv module rejects, or that contain bytes that are not UTF-8, are
    yielded with a problem instead of fields so the caller can skip them.
    File-level failures (OSError) propagate.
    """
    bad_lines: set[int] = set()
    with open(path, "rb") as f:
        reader = csv.reader(_decode_lines(f, bad_lines), delimiter=delimiter, skipinitialspace=True)
        next(reader, None)  # header

        while True:
            first_line = reader.line_num + 1
            try:
                fields = next(reader)
            except StopIteration:
                return
            except csv.Error as e:
                yield RawRow(first_line, [], f"unparseable row: {e}")
                continue

            if any(n in bad_lines for n in range(first_line, reader.line_num + 1)):
                yield RawRow(first_line, [], "row is not valid UTF-8")
                continue
            if not any(field.strip() for field in fields):
                continue  # blank line
            yield RawRow(reader.line_num, [field.strip() for field in fields])


def derive_category(
    code: str,
    category_names: Mapping[str, str],
    separator: str = CATEGORY_SEPARATOR,
) -> Category:
    """Category from the code prefix: "DSK-0001" -> Category(code="DSK", name="Desks")."""
    prefix = code.split(separator, 1)[0] if separator else code
    return Category(
        code=prefix,
        name=category_names.get(prefix.upper(), UNKNOWN_CATEGORY_NAME),
    )


def extract_tags(name: str, description: str, keywords: tuple[str, ...] = TAG_KEYWORDS) -> frozenset[str]:
    text = f"{name} {description}".lower()
    return frozenset(word for word in keywords if word in text)


def _parse_decimal(raw: str, field: str, line_number: int) -> Decimal:
    try:
        value = Decimal(raw)
    except InvalidOperation:
        raise MalformedRecord(line_number, f"{field} is not numeric: {raw!r}") from None
    if not value.is_finite():
        raise MalformedRecord(line_number, f"{field} is not a finite number: {raw!r}")
    return value


def _parse_int(raw: str, field: str, line_number: int) -> int:
    try:
        return int(raw)
    except ValueError:
        raise MalformedRecord(line_number, f"{field} is not an integer: {raw!r}") from None


def parse_record(
    fields: list[str],
    line_number: int,
    category_names: Mapping[str, str],
    separator: str = CATEGORY_SEPARATOR,
    keywords: tuple[str, ...] = TAG_KEYWORDS,
) -> Product:
    """Build one Product from a row. Raises MalformedRecord on any bad field."""
    if len(fields) < REQUIRED_FIELDS:
        raise MalformedRecord(
            line_number, f"expected at least {REQUIRED_FIELDS} fields, got {len(fields)}"
        )

    code, name, price_raw, stock_raw, moq_raw, description = fields[:REQUIRED_FIELDS]
    if not code:
        raise MalformedRecord(line_number, "empty product code")

    price = _parse_decimal(price_raw, "price", line_number)
    stock = _parse_int(stock_raw, "stock quantity", line_number)
    moq = _parse_int(moq_raw, "min order quantity", line_number) if moq_raw else 1

    try:
        return Product(
            code=code,
            name=name,
            price=price,
            stock_quantity=stock,
            min_order_quantity=moq,
            description=description,
            category=derive_category(code, category_names, separator),
            tags=extract_tags(name, description, keywords),
        )
    except ValidationError as e:
        # negative price/stock, MOQ below 1
        reasons = "; ".join(f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in e.errors())
        raise MalformedRecord(line_number, reasons) from e
