"""Per-position candidate research loop."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

from errors import StageFailure
from file_utils import NullRecorder, RunRecorder
from model_gateway import ModelGateway
from models import DetailedPosition, SeedElection
from prompts import build_candidate_prompt
from scheduling import SchedulingPolicy


class SequencerState(str, Enum):
    PENDING_POSITIONS = "PENDING_POSITIONS"
    PER_POSITION_LOOP = "PER_POSITION_LOOP"
    DONE = "DONE"


@dataclass
class CandidateResearch:
    """Raw candidate research for one position, or an error placeholder."""
    position: DetailedPosition
    prompt: str
    raw_text: str
    succeeded: bool = True


def error_placeholder(position: DetailedPosition, exc: Exception) -> str:
    return f"Error retrieving candidate information for {position.position_name}: {exc}"


class CandidateResearchSequencer:
    """Issue one grounded candidate request per position, strictly in order.

    A failed position still yields a record (with placeholder text) so the
    consolidation prompt keeps one block per researched position.
    """

    def __init__(
        self,
        gateway: ModelGateway,
        policy: SchedulingPolicy,
        logger: Optional[logging.Logger] = None,
        recorder: Optional[RunRecorder] = None,
    ):
        self.gateway = gateway
        self.policy = policy
        self.logger = logger or logging.getLogger(__name__)
        self.recorder = recorder or NullRecorder()
        self.state = SequencerState.PENDING_POSITIONS

    def research(self, seed: SeedElection, positions: Sequence[DetailedPosition]) -> List[CandidateResearch]:
        self.state = SequencerState.PENDING_POSITIONS
        results: List[CandidateResearch] = []
        if not positions:
            self.logger.warning(f"No positions to query candidates for in election: {seed.name}")
            self.state = SequencerState.DONE
            return results

        self.logger.info(f"Getting candidate info for {len(positions)} positions in election: {seed.name}")
        self.state = SequencerState.PER_POSITION_LOOP
        for index, position in enumerate(positions):
            self.logger.info(f"Processing position {index + 1}/{len(positions)}: {position.position_name}")
            prompt = build_candidate_prompt(seed, position)
            try:
                raw_text = self.policy.call_with_retry(
                    lambda: self.gateway.generate(prompt, use_grounding=True),
                    stage="research_candidates",
                    seed_name=seed.name,
                )
                results.append(CandidateResearch(position, prompt, raw_text, succeeded=True))
                self.logger.info(f"Retrieved candidate information for position: {position.position_name}")
            except StageFailure as exc:
                self.logger.error(f"Failed to get candidate info for position: {position.position_name} - {exc}")
                raw_text = error_placeholder(position, exc)
                results.append(CandidateResearch(position, prompt, raw_text, succeeded=False))

            self.recorder.record_exchange(seed, "candidates", prompt, raw_text, label=position.position_name)

            if index < len(positions) - 1:
                self.policy.pause(self.policy.position_delay, "before querying the next position")

        self.state = SequencerState.DONE
        failures = sum(1 for r in results if not r.succeeded)
        self.logger.info(
            f"Completed candidate research for {seed.name}: "
            f"{len(results) - failures} succeeded, {failures} failed"
        )
        return results
