from __future__ import annotations

from dataclasses import dataclass, field
import datetime as dt
from enum import Enum
from typing import Any, List, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ElectionType(str, Enum):
    """Closed set of election categories accepted by the store."""
    LOCAL = "LOCAL"
    STATE = "STATE"
    NATIONAL = "NATIONAL"
    UNIVERSITY = "UNIVERSITY"


class SeedElection(BaseModel):
    """Jurisdiction-level input record. Consumed once per pipeline run."""

    model_config = ConfigDict(frozen=True)

    name: str
    date: dt.date
    state: str = ""
    district: str = ""
    description: str = ""

    @field_validator("name")
    def validate_name(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Seed election name cannot be empty")
        return v.strip()

    @property
    def iso_date(self) -> str:
        return self.date.isoformat()


class CandidatePolicy(BaseModel):
    title: str
    description: str


class Candidate(BaseModel):
    full_name: str
    current_position: str
    image_url: str = ""
    linkedin_url: str = ""
    campaign_url: str = ""
    description: str
    key_policies: List[CandidatePolicy] = Field(min_length=1)
    additional_notes: str = ""
    sources: List[str] = Field(min_length=1)
    party: str = "Unknown"
    city: str = "Unknown"
    state: str = "Unknown"
    twitter: str = ""


class DetailedPosition(BaseModel):
    """A single office up for election, produced by the positions stage."""
    position_name: str
    election_date: dt.date
    city: str = ""
    state: str = ""
    description: str
    type: ElectionType = ElectionType.LOCAL
    seats: int = Field(default=1, ge=1)


class DetailedElection(BaseModel):
    """Final unit of output, inserted field by field by the store."""
    position: str
    date: dt.date
    city: str = ""
    state: str = ""
    description: str
    type: ElectionType = ElectionType.LOCAL
    candidates: List[Candidate] = Field(default_factory=list)
    seats: int = Field(default=1, ge=1)


class ConversationTurn(BaseModel):
    role: str
    text: str

    @field_validator("role")
    def validate_role(cls, v: str) -> str:
        if v not in ("user", "model"):
            raise ValueError(f"Unsupported conversation role: {v}")
        return v


# Tagged results returned by every parsing stage. Callers branch on the type;
# all three expose ``items`` so "nothing usable" reads as an empty list.


@dataclass(frozen=True)
class Parsed:
    items: List[Any]


@dataclass(frozen=True)
class PartiallyParsed:
    items: List[Any]
    warnings: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class Empty:
    reason: str

    @property
    def items(self) -> List[Any]:
        return []


ParseResult = Union[Parsed, PartiallyParsed, Empty]
