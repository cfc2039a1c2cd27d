"""Seed elections read from a CSV file."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Union

import pandas as pd
from pydantic import ValidationError

from errors import SeedSourceError
from models import SeedElection

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("name", "date")
OPTIONAL_COLUMNS = ("state", "district", "description")


def _parse_seed_date(value: str, row_number: int):
    try:
        parsed = pd.to_datetime(value, errors="raise")
    except (ValueError, TypeError, OverflowError) as exc:
        raise SeedSourceError(
            f"Invalid date format in CSV row {row_number}: {value!r}. Expected format: YYYY-MM-DD"
        ) from exc
    if pd.isna(parsed):
        raise SeedSourceError(f"Invalid date format in CSV row {row_number}: {value!r}")
    return parsed.date()


def read_seed_elections_csv(path: Union[str, Path]) -> List[SeedElection]:
    """
    Read seed elections from a CSV file.

    Expected columns: ``name`` and ``date`` (required), ``state``,
    ``district`` and ``description`` (optional, default to the name).

    Raises:
        SeedSourceError: missing or empty file, missing columns, blank
            required cells or unparseable dates. Row numbers count data rows
            from 1.
    """
    csv_path = Path(path)
    logger.info(f"Reading elections from CSV file: {csv_path}")
    if not csv_path.is_file():
        raise SeedSourceError(f"CSV file not found: {csv_path}")

    try:
        frame = pd.read_csv(csv_path, dtype=str, keep_default_na=False, skip_blank_lines=True)
    except pd.errors.EmptyDataError as exc:
        raise SeedSourceError(f"CSV file is empty: {csv_path}") from exc
    except (pd.errors.ParserError, UnicodeDecodeError) as exc:
        raise SeedSourceError(f"Failed to parse CSV file {csv_path}: {exc}") from exc

    frame.columns = [str(column).strip().lower() for column in frame.columns]
    missing = [column for column in REQUIRED_COLUMNS if column not in frame.columns]
    if missing:
        raise SeedSourceError(
            f"CSV file must have 'name' and 'date' columns. Found columns: {', '.join(frame.columns)}"
        )
    if frame.empty:
        raise SeedSourceError(f"CSV file contains no data rows: {csv_path}")

    seeds: List[SeedElection] = []
    for row_number, row in enumerate(frame.to_dict(orient="records"), start=1):
        name = (row.get("name") or "").strip()
        date_text = (row.get("date") or "").strip()
        if not name or not date_text:
            raise SeedSourceError(f"CSV row {row_number} missing required fields: name and date are required")

        extras = {column: (row.get(column) or "").strip() or name for column in OPTIONAL_COLUMNS}
        try:
            seeds.append(SeedElection(name=name, date=_parse_seed_date(date_text, row_number), **extras))
        except ValidationError as exc:
            raise SeedSourceError(f"CSV row {row_number} is not a valid election: {exc}") from exc

    logger.info(f"Successfully read {len(seeds)} elections from CSV file")
    return seeds
