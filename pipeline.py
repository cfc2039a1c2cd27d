"""
Election Research Pipeline

Drives one seed election through every model round:

    research positions -> validate positions -> research candidates
    -> consolidate (transform) -> parse final JSON

Stages run strictly in sequence with policy delays between model calls.
Per-seed failures end in the ERROR stage with an empty result instead of an
exception, so a batch of seeds always runs to completion. Only a
``ConfigurationError`` escapes.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from candidate_research import CandidateResearch, CandidateResearchSequencer
from errors import ConfigurationError, StageFailure
from file_utils import NullRecorder, RunRecorder
from logging_utils import log_exception
from model_gateway import ModelGateway
from models import ConversationTurn, DetailedElection, DetailedPosition, Empty, SeedElection
from position_validator import validate_positions
from prompts import build_research_prompt, build_transformation_prompt
from response_parser import parse_elections
from scheduling import SchedulingPolicy


class PipelineStage(str, Enum):
    RESEARCH_POSITIONS = "RESEARCH_POSITIONS"
    VALIDATE_POSITIONS = "VALIDATE_POSITIONS"
    RESEARCH_CANDIDATES = "RESEARCH_CANDIDATES"
    TRANSFORM = "TRANSFORM"
    PARSE_FINAL = "PARSE_FINAL"
    DONE = "DONE"
    ERROR = "ERROR"


@dataclass
class SeedRun:
    """Everything one seed election produced, for reporting and artifacts."""
    seed: SeedElection
    stage: PipelineStage = PipelineStage.RESEARCH_POSITIONS
    positions: List[DetailedPosition] = field(default_factory=list)
    research: List[CandidateResearch] = field(default_factory=list)
    elections: List[DetailedElection] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    error: Optional[str] = None
    failed_stage: Optional[PipelineStage] = None

    def summary(self) -> Dict[str, object]:
        return {
            "election": self.seed.name,
            "date": self.seed.iso_date,
            "stage": self.stage.value,
            "failed_stage": self.failed_stage.value if self.failed_stage else None,
            "positions": len(self.positions),
            "candidate_requests": len(self.research),
            "candidate_failures": sum(1 for r in self.research if not r.succeeded),
            "elections": len(self.elections),
            "candidates": sum(len(e.candidates) for e in self.elections),
            "warnings": len(self.warnings),
            "error": self.error,
        }


def _position_key(name: str) -> str:
    return " ".join(name.casefold().split())


def reconcile_elections(
    elections: Sequence[DetailedElection],
    positions: Sequence[DetailedPosition],
    logger: Optional[logging.Logger] = None,
) -> Tuple[List[DetailedElection], List[str]]:
    """Compare consolidated output against the researched positions.

    The consolidation model is trusted with the mapping; mismatches are only
    reported. Returns the elections unchanged plus the warnings raised.
    """
    logger = logger or logging.getLogger(__name__)
    researched = {_position_key(p.position_name): p.position_name for p in positions}
    produced = {_position_key(e.position): e.position for e in elections}
    warnings: List[str] = []
    for key, name in researched.items():
        if key not in produced:
            warnings.append(f"Researched position '{name}' is missing from the consolidated output")
    for key, name in produced.items():
        if key not in researched:
            warnings.append(f"Consolidated output contains unresearched position '{name}'")
    for message in warnings:
        logger.warning(message)
    return list(elections), warnings


class ElectionResearchPipeline:
    def __init__(
        self,
        gateway: ModelGateway,
        policy: Optional[SchedulingPolicy] = None,
        logger: Optional[logging.Logger] = None,
        recorder: Optional[RunRecorder] = None,
    ):
        self.gateway = gateway
        self.policy = policy or SchedulingPolicy()
        self.logger = logger or logging.getLogger(__name__)
        self.recorder = recorder or NullRecorder()
        self.sequencer = CandidateResearchSequencer(gateway, self.policy, self.logger, self.recorder)

    # -- single seed ---------------------------------------------------------

    def process(self, seed: SeedElection) -> List[DetailedElection]:
        return self.run(seed).elections

    def run(self, seed: SeedElection) -> SeedRun:
        run = SeedRun(seed=seed)
        try:
            self._run_stages(run)
        except StageFailure as exc:
            run.failed_stage = run.stage
            run.stage = PipelineStage.ERROR
            run.error = str(exc)
            run.elections = []
            self.logger.error(
                f"Stage {run.failed_stage.value} failed for election '{seed.name}' ({seed.iso_date}): {exc}"
            )
        return run

    def _advance(self, run: SeedRun, stage: PipelineStage) -> None:
        self.logger.info(f"[{run.seed.name}] {run.stage.value} -> {stage.value}")
        run.stage = stage

    def _run_stages(self, run: SeedRun) -> None:
        seed = run.seed
        self.logger.info(f"[{seed.name}] {PipelineStage.RESEARCH_POSITIONS.value}")

        research_prompt = build_research_prompt(seed)
        raw_positions = self.policy.call_with_retry(
            lambda: self.gateway.generate(research_prompt, use_grounding=True),
            stage="research_positions",
            seed_name=seed.name,
        )
        self.recorder.record_exchange(seed, "research", research_prompt, raw_positions)

        self._advance(run, PipelineStage.VALIDATE_POSITIONS)
        positions = validate_positions(raw_positions, seed)
        run.positions = list(positions.items)
        run.warnings.extend(getattr(positions, "warnings", []))
        if isinstance(positions, Empty):
            raise StageFailure("validate_positions", positions.reason, seed_name=seed.name)

        self.policy.pause(self.policy.post_research_delay, "before researching candidates")

        self._advance(run, PipelineStage.RESEARCH_CANDIDATES)
        run.research = self.sequencer.research(seed, run.positions)

        self._advance(run, PipelineStage.TRANSFORM)
        history = self.build_history(research_prompt, raw_positions)
        transformation_prompt = build_transformation_prompt(run.research, seed)
        raw_final = self.policy.call_with_retry(
            lambda: self.gateway.generate(transformation_prompt, use_grounding=False, history=history),
            stage="transform",
            seed_name=seed.name,
        )

        self._advance(run, PipelineStage.PARSE_FINAL)
        final = parse_elections(raw_final, seed)
        run.warnings.extend(getattr(final, "warnings", []))
        self.recorder.record_structured(seed, raw_final, final.items)
        if isinstance(final, Empty):
            raise StageFailure("parse_final", final.reason, seed_name=seed.name)

        run.elections, mismatches = reconcile_elections(final.items, run.positions, self.logger)
        run.warnings.extend(mismatches)
        self._advance(run, PipelineStage.DONE)

    def build_history(self, research_prompt: str, raw_positions: str) -> List[ConversationTurn]:
        """Conversation handed to the consolidation call.

        Only the opening positions exchange; candidate replies reach the model
        once, inside the fenced research blocks of the consolidation prompt.
        """
        return [
            ConversationTurn(role="user", text=research_prompt),
            ConversationTurn(role="model", text=raw_positions),
        ]

    # -- batch ---------------------------------------------------------------

    def run_batch(self, seeds: Sequence[SeedElection]) -> List[SeedRun]:
        runs: List[SeedRun] = []
        started = time.monotonic()
        self.logger.info(f"Processing {len(seeds)} elections sequentially")
        for index, seed in enumerate(seeds):
            self.logger.info(f"Processing election {index + 1}/{len(seeds)}: {seed.name}")
            try:
                run = self.run(seed)
            except ConfigurationError:
                raise
            except Exception as exc:
                log_exception(self.logger, exc, context=f"Unexpected failure for election '{seed.name}'")
                run = SeedRun(seed=seed, stage=PipelineStage.ERROR, error=f"{type(exc).__name__}: {exc}")
            runs.append(run)

            if run.elections:
                self.logger.info(f"Election '{seed.name}' produced {len(run.elections)} results")
            else:
                self.logger.warning(f"Election '{seed.name}' produced zero results ({run.error or 'no data'})")

            if index < len(seeds) - 1:
                self.policy.pause(self.policy.seed_delay, "before processing the next election")

        self.recorder.record_summary({
            "elections_processed": len(runs),
            "elections_produced": sum(len(r.elections) for r in runs),
            "duration_seconds": round(time.monotonic() - started, 2),
            "runs": [r.summary() for r in runs],
        })
        return runs

    def process_batch(self, seeds: Sequence[SeedElection]) -> List[DetailedElection]:
        results: List[DetailedElection] = []
        for run in self.run_batch(seeds):
            results.extend(run.elections)
        self.logger.info(f"Aggregated {len(results)} detailed elections from {len(seeds)} seeds")
        return results
