"""Seed elections from the Google Civic Information API."""

from __future__ import annotations

import logging
import re
from datetime import date
from typing import Any, Dict, List, Optional

import requests

from config import ElectionSourceConfig
from errors import ConfigurationError, SeedSourceError
from models import SeedElection

logger = logging.getLogger(__name__)

_STATE_DIVISION = re.compile(r"/state:([a-z]{2})(?:/|$)", re.IGNORECASE)


def state_from_division(ocd_division_id: str) -> str:
    match = _STATE_DIVISION.search(ocd_division_id or "")
    return match.group(1).upper() if match else ""


class CivicClient:
    """Thin client for the Civic API ``elections`` endpoint."""

    def __init__(
        self,
        api_key: str,
        session: Optional[requests.Session] = None,
        url: str = ElectionSourceConfig.CIVIC_API_URL,
        timeout: int = 30,
    ):
        if not api_key:
            raise ConfigurationError("GOOGLE_API_KEY is required to query the Civic API")
        self.api_key = api_key
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": "Election-Research-Pipeline/1.0"})

    def _is_test_election(self, election: Dict[str, Any]) -> bool:
        return (
            str(election.get("id", "")) == ElectionSourceConfig.CIVIC_TEST_ELECTION_ID
            or election.get("name") == ElectionSourceConfig.CIVIC_TEST_ELECTION_NAME
        )

    def _to_seed(self, election: Dict[str, Any]) -> SeedElection:
        name = (election.get("name") or "").strip() or "Unknown Election"
        election_day = election.get("electionDay") or ""
        try:
            when = date.fromisoformat(election_day)
        except ValueError:
            logger.warning(f"Civic election '{name}' has no usable electionDay ({election_day!r}); using today")
            when = date.today()
        return SeedElection(
            name=name,
            date=when,
            state=state_from_division(election.get("ocdDivisionId", "")),
            description=name,
        )

    def active_elections(self) -> List[SeedElection]:
        logger.info("Fetching active elections from Google Civic API")
        try:
            response = self.session.get(self.url, params={"key": self.api_key}, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except requests.exceptions.RequestException as exc:
            raise SeedSourceError(f"Failed to fetch elections from Google Civic API: {exc}") from exc
        except ValueError as exc:
            raise SeedSourceError(f"Civic API returned a non-JSON body: {exc}") from exc

        elections = payload.get("elections") if isinstance(payload, dict) else None
        if not elections:
            logger.warning("No elections found in the Civic API response")
            return []

        real = [e for e in elections if isinstance(e, dict) and not self._is_test_election(e)]
        logger.info(
            f"Retrieved {len(elections)} elections from Civic API "
            f"({len(real)} after filtering out test elections)"
        )
        return [self._to_seed(e) for e in real]
