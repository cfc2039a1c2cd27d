"""
Prompt builders for every model round of the pipeline.

All functions are pure. Seed and position values are rendered through
``render_value`` before interpolation so quotes, braces or newlines coming
from upstream data cannot break the JSON templates the model is asked to
follow.
"""

from __future__ import annotations

import json
import re
from typing import Any, Iterable, Union

from models import DetailedPosition, SeedElection

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]+")

SENTINEL = "N/A"

JSON_ONLY_FOOTER = (
    "IMPORTANT: Please ONLY respond with the valid JSON object, NOTHING ELSE. "
    "Your response must be valid, parseable JSON."
)


def render_value(value: Any) -> str:
    """Render an interpolated value as a quoted JSON string literal."""
    text = "" if value is None else str(value)
    text = _CONTROL_CHARS.sub(" ", text).strip()
    return json.dumps(text, ensure_ascii=False)


def _seed_block(seed: SeedElection) -> str:
    return (
        f"    \"name\": {render_value(seed.name)},\n"
        f"    \"state\": {render_value(seed.state)},\n"
        f"    \"district\": {render_value(seed.district)},\n"
        f"    \"description\": {render_value(seed.description or seed.name)},\n"
        f"    \"date\": {render_value(seed.iso_date)}"
    )


def _position_block(position: DetailedPosition) -> str:
    return (
        f"    \"position_name\": {render_value(position.position_name)},\n"
        f"    \"city\": {render_value(position.city)},\n"
        f"    \"state\": {render_value(position.state)},\n"
        f"    \"description\": {render_value(position.description)},\n"
        f"    \"position_type\": {render_value(position.type.value)},\n"
        f"    \"positions\": {position.seats}"
    )


def build_research_prompt(seed: SeedElection) -> str:
    """Ask for every position up for election in the seed's jurisdiction."""
    return f"""
Act as a diligent and thorough researcher to gather detailed, accurate, and up-to-date election information.
Your task is to list every position up for election in the election described below.
Verify every detail carefully. If any information cannot be confirmed as accurate or is not available, mark it as "{SENTINEL}" instead of leaving it out.

Election details:
{{
{_seed_block(seed)}
}}

Respond with a single JSON object of this shape:
{{
    "state": "State of the election",
    "district": "District or municipality of the election",
    "date": "YYYY-MM-DD",
    "positions_up_for_election": [
        {{
            "position_name": "Position name (e.g., 'Mayor', 'Council Member', 'County Circuit Court Judge - Branch 41')",
            "city": "City where the election takes place ('{SENTINEL}' for state or federal races)",
            "state": "Full state name, never abbreviated ('{SENTINEL}' for federal races)",
            "description": "Brief description of the role and its responsibilities",
            "position_type": "One of 'local', 'state', 'federal' or 'university'",
            "positions": "Number of seats up for election"
        }}
    ]
}}

Important instructions:
- Accuracy first: double-check all election details, especially dates.
- Mark unverified or unavailable information as "{SENTINEL}"; never omit a field.
- Do not include ballot measures, other key dates or elections in other jurisdictions.

{JSON_ONLY_FOOTER}
"""


def build_candidate_prompt(seed: SeedElection, position: DetailedPosition) -> str:
    """Ask for every candidate running for one position."""
    return f"""
Act as a diligent and thorough researcher to gather detailed, accurate, and up-to-date election information.
Your task is to describe every candidate running for the position below.
Verify every piece of information carefully, especially URLs. If something cannot be confirmed or is not available, mark it as "{SENTINEL}" instead of leaving it out.

Election details:
{{
{_seed_block(seed)}
}}

Position details:
{{
{_position_block(position)}
}}

Respond with a single JSON object of this shape:
{{
    "candidates": [
        {{
            "name": "Full legal name",
            "position": "Current position (e.g., 'Incumbent Village Mayor' or 'Business Owner')",
            "party": "All political party affiliations",
            "image_url": "'{SENTINEL}' unless verified",
            "linkedin_url": "Verified LinkedIn URL or '{SENTINEL}'",
            "campaign_website_url": "Verified campaign website URL or '{SENTINEL}'",
            "description": "Background including education, experience and career history",
            "key_policies": ["Up to 5 major policies the candidate supports"],
            "home_city": "Hometown city or '{SENTINEL}'",
            "hometown_state": "Full hometown state name, never abbreviated, or '{SENTINEL}'",
            "twitter": "Twitter/X handle or '{SENTINEL}'",
            "additional_notes": "Endorsements, controversies or unique campaign aspects",
            "sources": ["Short descriptions of the pages used to gather this information"]
        }}
    ]
}}

{JSON_ONLY_FOOTER}
"""


def _research_text(research: Union[str, Iterable[Any]]) -> str:
    if isinstance(research, str):
        return research
    blocks = []
    for index, item in enumerate(research, start=1):
        position = item.position
        blocks.append(
            f"----- BEGIN RESEARCH {index}: {render_value(position.position_name)} -----\n"
            f"Position details:\n{{\n{_position_block(position)}\n}}\n"
            f"Candidate research:\n{item.raw_text.strip()}\n"
            f"----- END RESEARCH {index} -----"
        )
    return "\n\n".join(blocks)


def build_transformation_prompt(research: Union[str, Iterable[Any]], seed: SeedElection) -> str:
    """Ask the model to consolidate all research into the canonical schema.

    ``research`` is either an already-joined text blob or the ordered list of
    per-position research records collected by the candidate sequencer.
    """
    return f"""
I have collected research responses about the following election:
{{
{_seed_block(seed)}
}}

Analyze every research block below and compile them into ONE structured JSON object following this schema exactly:
{{
    "elections": [
        {{
            "position": "string",
            "date": "YYYY-MM-DD",
            "city": "string",
            "state": "Full state name, never abbreviated",
            "description": "string",
            "type": "LOCAL" | "STATE" | "NATIONAL" | "UNIVERSITY",
            "positions": 1,
            "candidates": [
                {{
                    "fullName": "string",
                    "currentPosition": "string",
                    "imageUrl": "string",
                    "linkedinUrl": "string",
                    "campaignUrl": "string",
                    "description": "string",
                    "keyPolicies": [{{"title": "string", "description": "string"}}],
                    "additionalNotes": "string",
                    "sources": ["string"],
                    "party": "string",
                    "city": "string",
                    "state": "Full state name, never abbreviated",
                    "twitter": "string"
                }}
            ]
        }}
    ]
}}

Keep one entry in "elections" per researched position, in the same order.
If information is missing, leave the field as an empty string. Research blocks that report an error still get an entry with an empty candidate list.

Here is the research to analyze:

{_research_text(research)}

{JSON_ONLY_FOOTER}
"""
