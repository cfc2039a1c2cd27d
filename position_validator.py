"""Validation of the "positions up for election" research reply."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from models import DetailedPosition, ElectionType, Empty, ParseResult, SeedElection
from response_parser import (
    FieldRule,
    apply_rules,
    coerce_date,
    coerce_election_type,
    coerce_seat_count,
    coerce_text,
    parse_array,
)

logger = logging.getLogger(__name__)

POSITION_ARRAY_KEYS = ("positions_up_for_election", "positions")

POSITION_RULES: Dict[str, FieldRule] = {
    "position_name": FieldRule(("position_name", "positionName", "name", "position"), coerce_text, required=True,
                               rationale="candidate research is keyed by the position name"),
    "election_date": FieldRule(("election_date", "date"), coerce_date, lambda seed: seed.date,
                               rationale="positions inherit the seed date"),
    "city": FieldRule(("city",), coerce_text, ""),
    "state": FieldRule(("state",), coerce_text, ""),
    "description": FieldRule(("description",), coerce_text, lambda seed: f"Position for {seed.name}"),
    "type": FieldRule(("position_type", "type"), coerce_election_type, ElectionType.LOCAL,
                      rationale="unknown categories are treated as local races"),
    "seats": FieldRule(("positions", "seats", "seat_count"), coerce_seat_count, 1),
}


def build_position(raw: Any, seed: SeedElection, notes: Optional[List[str]] = None) -> DetailedPosition:
    return DetailedPosition(**apply_rules(raw, POSITION_RULES, seed, notes))


def validate_positions(raw_text: str, seed: SeedElection) -> ParseResult:
    """Turn the research reply into validated positions.

    An ``Empty`` result means no candidate research should be attempted for
    this seed.
    """
    logger.info(f"Validating position information for election: {seed.name}")
    result = parse_array(
        raw_text,
        POSITION_ARRAY_KEYS,
        lambda raw, notes: build_position(raw, seed, notes),
        "positions",
    )
    if isinstance(result, Empty):
        logger.warning(f"No valid positions found for election: {seed.name} ({result.reason})")
    else:
        logger.info(f"Validated {len(result.items)} positions for election: {seed.name}")
    return result
