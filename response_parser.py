"""
Response Parser

Boundary between free-text model replies and the typed data model. Every
reply goes through ``load_payload`` (isolate and parse the embedded JSON
object) and ``parse_array`` (walk a named array, coercing each element
through a field rule table). Nothing in here raises on bad model output:
malformed replies become ``Empty`` results, bad elements are dropped with a
warning and bad fields fall back to the defaults documented in the tables.
"""

from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple
from urllib.parse import urlparse

from pydantic import ValidationError

from config import ElectionSourceConfig
from errors import MalformedResponseError, SchemaViolation
from models import (
    Candidate,
    CandidatePolicy,
    DetailedElection,
    ElectionType,
    Empty,
    Parsed,
    ParseResult,
    PartiallyParsed,
    SeedElection,
)

logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"
NOT_AVAILABLE = "Information Not Available"
NO_SOURCES = "No sources found"
DEFAULT_POLICY = CandidatePolicy(title="Policy", description="No specific policies mentioned")

_ELECTION_TYPE_SYNONYMS = {
    "LOCAL": ElectionType.LOCAL,
    "STATE": ElectionType.STATE,
    "NATIONAL": ElectionType.NATIONAL,
    "FEDERAL": ElectionType.NATIONAL,
    "UNIVERSITY": ElectionType.UNIVERSITY,
}
_URL_PLACEHOLDERS = {"n/a", "na", "none", "null", "unknown", "not available", "#", "-"}
_LEADING_INT = re.compile(r"^\s*[+]?(\d+)")
_DATE_FORMATS = ["%Y-%m-%d", "%m/%d/%Y", "%B %d, %Y", "%b %d, %Y", "%d %B %Y", "%Y/%m/%d"]

# Raised while building one element; the element is dropped, siblings kept
ELEMENT_ERRORS = (SchemaViolation, ValidationError, ValueError, OverflowError)


def preview(text: str, limit: int = ElectionSourceConfig.RESPONSE_PREVIEW_CHARS) -> str:
    text = text or ""
    return text[:limit] + ("..." if len(text) > limit else "")


# ---------------------------------------------------------------------------
# JSON isolation


def extract_json_object(text: str) -> Dict[str, Any]:
    """Return the JSON object spanning the first '{' to the last '}'."""
    if not isinstance(text, str):
        raise MalformedResponseError("Response is not text")
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        raise MalformedResponseError("No JSON object found")
    try:
        payload = json.loads(text[start:end + 1])
    except (ValueError, RecursionError) as exc:
        # Deeply nested arrays overflow the decoder
        raise MalformedResponseError(f"Invalid JSON: {type(exc).__name__}: {exc}") from exc
    if not isinstance(payload, dict):
        raise MalformedResponseError("Top-level JSON value is not an object")
    return payload


def load_payload(text: str, label: str) -> Optional[Dict[str, Any]]:
    try:
        return extract_json_object(text)
    except MalformedResponseError as exc:
        logger.error(f"Could not parse {label} response: {exc} | preview: {preview(text)!r}")
        return None


# ---------------------------------------------------------------------------
# Field coercions. Each takes (value, default, notes) and never raises.


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def coerce_text(value: Any, default: str = "", notes: Optional[List[str]] = None) -> str:
    if _is_blank(value):
        return default
    if isinstance(value, (str, int, float)) and not isinstance(value, bool):
        return str(value).strip()
    if isinstance(value, list):
        joined = ", ".join(str(v).strip() for v in value if isinstance(v, (str, int, float)) and str(v).strip())
        return joined or default
    return default


def coerce_election_type(value: Any, default: ElectionType = ElectionType.LOCAL,
                         notes: Optional[List[str]] = None) -> ElectionType:
    raw = value.value if isinstance(value, ElectionType) else str(value or "")
    matched = _ELECTION_TYPE_SYNONYMS.get(raw.strip().upper())
    if matched is not None:
        return matched
    message = f"Unknown election type {value!r}, defaulting to {default.value}"
    logger.warning(message)
    if notes is not None:
        notes.append(message)
    return default


def coerce_seat_count(value: Any, default: int = 1, notes: Optional[List[str]] = None) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        count = value
    elif isinstance(value, float):
        if not math.isfinite(value):
            return default
        count = int(value)
    else:
        match = _LEADING_INT.match(str(value or ""))
        if not match:
            return default
        count = int(match.group(1))
    return count if count >= 1 else default


def coerce_date(value: Any, default: date, notes: Optional[List[str]] = None) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return default
    text = value.strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    logger.debug(f"Unparseable date {text!r}, using {default.isoformat()}")
    return default


def coerce_url(value: Any, default: str = "", notes: Optional[List[str]] = None) -> str:
    if not isinstance(value, str):
        return default
    url = value.strip()
    if not url or url.lower() in _URL_PLACEHOLDERS or " " in url:
        return default
    if not url.startswith(("http://", "https://")):
        url = "https://" + url
    parsed = urlparse(url)
    if not parsed.netloc or "." not in parsed.netloc:
        logger.warning(f"Invalid URL {value!r}, dropping")
        return default
    return url


def coerce_string_list(value: Any, default: Sequence[str] = (NO_SOURCES,),
                       notes: Optional[List[str]] = None) -> List[str]:
    if isinstance(value, str):
        value = [value]
    items: List[str] = []
    if isinstance(value, list):
        for item in value:
            if isinstance(item, (str, int, float)) and not isinstance(item, bool) and str(item).strip():
                items.append(str(item).strip())
    return items or list(default)


def coerce_policies(value: Any, default: Sequence[CandidatePolicy] = (DEFAULT_POLICY,),
                    notes: Optional[List[str]] = None) -> List[CandidatePolicy]:
    if isinstance(value, (str, dict)):
        value = [value]
    policies: List[CandidatePolicy] = []
    if isinstance(value, list):
        for item in value:
            if isinstance(item, str) and item.strip():
                policies.append(CandidatePolicy(title="Policy", description=item.strip()))
            elif isinstance(item, dict):
                title = coerce_text(item.get("title") or item.get("name"), "Policy")
                description = coerce_text(item.get("description") or item.get("summary"), "No description provided")
                policies.append(CandidatePolicy(title=title, description=description))
    return policies or [p.model_copy() for p in default]


# ---------------------------------------------------------------------------
# Rule tables


@dataclass(frozen=True)
class FieldRule:
    """How one model field maps onto one typed attribute.

    ``default`` may be a callable taking the seed election; it is resolved
    per element. A ``required`` field that is absent or blank rejects the
    whole element.
    """

    aliases: Tuple[str, ...]
    coerce: Callable[..., Any]
    default: Any = ""
    required: bool = False
    rationale: str = ""


def _resolve_default(rule: FieldRule, seed: SeedElection) -> Any:
    return rule.default(seed) if callable(rule.default) else rule.default


def _lookup(raw: Dict[str, Any], aliases: Sequence[str]) -> Any:
    for key in aliases:
        if key in raw and not _is_blank(raw[key]):
            return raw[key]
    return None


def apply_rules(raw: Any, rules: Dict[str, FieldRule], seed: SeedElection,
                notes: Optional[List[str]] = None) -> Dict[str, Any]:
    """Coerce one raw element into keyword arguments for a model."""
    if not isinstance(raw, dict):
        raise SchemaViolation(f"expected an object, got {type(raw).__name__}")
    values: Dict[str, Any] = {}
    for name, rule in rules.items():
        value = _lookup(raw, rule.aliases)
        if rule.required:
            if value is None or not coerce_text(value):
                raise SchemaViolation(f"missing required field '{rule.aliases[0]}'")
            values[name] = coerce_text(value)
            continue
        values[name] = rule.coerce(value, _resolve_default(rule, seed), notes)
    return values


CANDIDATE_RULES: Dict[str, FieldRule] = {
    "full_name": FieldRule(("fullName", "full_name", "name"), coerce_text, required=True,
                           rationale="a candidate without a name cannot be stored"),
    "current_position": FieldRule(("currentPosition", "current_position", "position"), coerce_text, "Candidate",
                                  rationale="neutral label when the occupation is unknown"),
    "image_url": FieldRule(("imageUrl", "image_url"), coerce_url, "", rationale="optional link, empty when unverified"),
    "linkedin_url": FieldRule(("linkedinUrl", "linkedin_url"), coerce_url, "", rationale="optional link"),
    "campaign_url": FieldRule(("campaignUrl", "campaign_url", "campaign_website_url"), coerce_url, "",
                              rationale="optional link"),
    "description": FieldRule(("description", "bio"), coerce_text, NOT_AVAILABLE,
                             rationale="free text gets an explanatory sentinel"),
    "key_policies": FieldRule(("keyPolicies", "key_policies", "policies"), coerce_policies, (DEFAULT_POLICY,),
                              rationale="consumers may assume at least one policy"),
    "additional_notes": FieldRule(("additionalNotes", "additional_notes"), coerce_text, "",
                                  rationale="optional free text"),
    "sources": FieldRule(("sources",), coerce_string_list, (NO_SOURCES,),
                         rationale="consumers may assume at least one source"),
    "party": FieldRule(("party",), coerce_text, UNKNOWN, rationale="name-like field gets a readable sentinel"),
    "city": FieldRule(("city", "home_city"), coerce_text, UNKNOWN, rationale="name-like field"),
    "state": FieldRule(("state", "hometown_state"), coerce_text, UNKNOWN, rationale="name-like field"),
    "twitter": FieldRule(("twitter", "twitter_handle"), coerce_text, "", rationale="optional handle"),
}


ELECTION_RULES: Dict[str, FieldRule] = {
    "position": FieldRule(("position", "position_name", "positionName"), coerce_text, required=True,
                          rationale="an election row is keyed by its position"),
    "date": FieldRule(("date", "election_date", "electionDate"), coerce_date, lambda seed: seed.date,
                      rationale="the seed date is the best known date"),
    "city": FieldRule(("city",), coerce_text, "", rationale="blank for state and federal races"),
    "state": FieldRule(("state",), coerce_text, lambda seed: seed.state, rationale="inherit the seed state"),
    "description": FieldRule(("description",), coerce_text, lambda seed: f"Position for {seed.name}",
                             rationale="explanatory sentinel tied to the seed"),
    "type": FieldRule(("type", "position_type", "election_type"), coerce_election_type, ElectionType.LOCAL,
                      rationale="lossy default to LOCAL"),
    "seats": FieldRule(("positions", "seats", "seat_count"), coerce_seat_count, 1,
                       rationale="one seat unless stated"),
}


# ---------------------------------------------------------------------------
# Array parsing


def parse_array(
    text: str,
    array_keys: Sequence[str],
    build: Callable[[Any, List[str]], Any],
    label: str,
) -> ParseResult:
    """Parse ``text`` and build one value per element of the named array."""
    payload = load_payload(text, label)
    if payload is None:
        return Empty(f"no parseable JSON object in {label} response")

    items = None
    for key in array_keys:
        if isinstance(payload.get(key), list):
            items = payload[key]
            break
    if items is None:
        logger.warning(f"Invalid {label} structure: missing or invalid '{array_keys[0]}' array")
        return Empty(f"missing '{array_keys[0]}' array in {label} response")

    values: List[Any] = []
    warnings: List[str] = []
    for index, raw in enumerate(items):
        try:
            values.append(build(raw, warnings))
        except ELEMENT_ERRORS as exc:
            message = f"{label} element {index} dropped: {exc}"
            logger.warning(message)
            warnings.append(message)

    if not values:
        return Empty(f"no valid elements in {label} response")
    if warnings:
        return PartiallyParsed(values, warnings)
    return Parsed(values)


def build_candidate(raw: Any, seed: SeedElection, notes: Optional[List[str]] = None) -> Candidate:
    return Candidate(**apply_rules(raw, CANDIDATE_RULES, seed, notes))


def build_election(raw: Any, seed: SeedElection, notes: Optional[List[str]] = None) -> DetailedElection:
    values = apply_rules(raw, ELECTION_RULES, seed, notes)
    candidates: List[Candidate] = []
    raw_candidates = raw.get("candidates")
    if isinstance(raw_candidates, list):
        for index, raw_candidate in enumerate(raw_candidates):
            try:
                candidates.append(build_candidate(raw_candidate, seed, notes))
            except ELEMENT_ERRORS as exc:
                message = f"candidate {index} of '{values['position']}' dropped: {exc}"
                logger.warning(message)
                if notes is not None:
                    notes.append(message)
    return DetailedElection(candidates=candidates, **values)


def parse_elections(text: str, seed: SeedElection) -> ParseResult:
    """Parse the consolidated ``{"elections": [...]}`` reply."""
    result = parse_array(text, ("elections",), lambda raw, notes: build_election(raw, seed, notes), "elections")
    if not isinstance(result, Empty):
        total = sum(len(e.candidates) for e in result.items)
        logger.info(f"Parsed {len(result.items)} elections with {total} candidates total")
    return result
