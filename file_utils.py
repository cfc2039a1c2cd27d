"""
File utilities for election research runs.

Every run gets its own timestamped directory holding the seed list, each
prompt/reply exchanged with the model, the raw and parsed consolidation
output and a run summary, so a bad record can be traced back to the reply
that produced it.
"""

from __future__ import annotations

import json
import logging
import os
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Any, Iterable, List, Optional, Sequence

from models import DetailedElection, SeedElection

logger = logging.getLogger(__name__)

RUN_SUBDIRS = ("seeds", "research", "candidates", "structured")


def _atomic_write_text(path: Path, data: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with NamedTemporaryFile("w", delete=False, encoding="utf-8", dir=str(path.parent)) as tmp:
        tmp.write(data)
        tmp_name = tmp.name
    os.replace(tmp_name, path)


def write_text(path: Path, content: str) -> None:
    _atomic_write_text(path, content)


def write_json(path: Path, payload: Any) -> None:
    serialized = json.dumps(payload, indent=2, ensure_ascii=False, default=str)
    _atomic_write_text(path, serialized)


def slugify(text: str, limit: int = 48) -> str:
    slug = "".join(c.lower() if c.isalnum() else "_" for c in (text or ""))
    slug = "_".join(part for part in slug.split("_") if part)
    return slug[:limit] or "untitled"


def elections_payload(elections: Iterable[DetailedElection]) -> List[dict]:
    return [election.model_dump(mode="json") for election in elections]


def readable_digest(seed: SeedElection, elections: Sequence[DetailedElection]) -> str:
    lines = [f"PARSED ELECTION DATA FOR: {seed.name}", ""]
    for election in elections:
        lines.append(f"POSITION: {election.position}")
        lines.append(f"Date: {election.date.isoformat()}")
        lines.append(f"Location: {election.city}, {election.state}")
        lines.append(f"Type: {election.type.value}")
        lines.append(f"Seats: {election.seats}")
        lines.append(f"Description: {election.description}")
        lines.append("")
        lines.append(f"CANDIDATES ({len(election.candidates)}):")
        for index, candidate in enumerate(election.candidates, start=1):
            lines.append(f"[{index}] {candidate.full_name}")
            lines.append(f"    Position: {candidate.current_position}")
            lines.append(f"    Party: {candidate.party}")
            bio = candidate.description
            lines.append(f"    Bio: {bio[:100]}{'...' if len(bio) > 100 else ''}")
            lines.append("    Key Policies:")
            for policy in candidate.key_policies:
                lines.append(f"      - {policy.title}: {policy.description[:100]}")
            lines.append("")
        lines.append("-" * 40)
        lines.append("")
    return "\n".join(lines)


class RunRecorder(ABC):
    """Receives run artifacts from the pipeline."""

    @abstractmethod
    def record_seeds(self, seeds: Sequence[SeedElection], source: str) -> None:
        """Store the seed list and where it came from."""

    @abstractmethod
    def record_exchange(self, seed: SeedElection, stage: str, prompt: str, response: str,
                        label: Optional[str] = None) -> None:
        """Store one prompt/reply pair."""

    @abstractmethod
    def record_structured(self, seed: SeedElection, raw_response: str,
                          elections: Sequence[DetailedElection]) -> None:
        """Store the raw consolidation reply and what was parsed from it."""

    @abstractmethod
    def record_summary(self, summary: dict) -> None:
        """Store the batch summary."""


class NullRecorder(RunRecorder):
    """Default recorder for library use; keeps nothing."""

    def record_seeds(self, seeds, source):
        return None

    def record_exchange(self, seed, stage, prompt, response, label=None):
        return None

    def record_structured(self, seed, raw_response, elections):
        return None

    def record_summary(self, summary):
        return None


class RunArtifactManager(RunRecorder):
    def __init__(self, base_output_dir: str = "election_runs", run_id: Optional[str] = None):
        self.run_id = run_id or datetime.now().strftime("%Y%m%d_%H%M%S")
        self.run_dir = Path(base_output_dir) / self.run_id
        for subdir in RUN_SUBDIRS:
            (self.run_dir / subdir).mkdir(parents=True, exist_ok=True)
        logger.info(f"Recording run artifacts in {self.run_dir}")

    def record_seeds(self, seeds: Sequence[SeedElection], source: str) -> None:
        payload = {
            "source": source,
            "run_id": self.run_id,
            "count": len(seeds),
            "elections": [seed.model_dump(mode="json") for seed in seeds],
        }
        write_json(self.run_dir / "seeds" / "elections.json", payload)

    def record_exchange(self, seed: SeedElection, stage: str, prompt: str, response: str,
                        label: Optional[str] = None) -> None:
        subdir = "candidates" if stage == "candidates" else "research"
        name = slugify(seed.name)
        if label:
            name = f"{name}__{slugify(label, 32)}"
        content = (
            f"{stage.upper()} EXCHANGE - {seed.name}\n"
            f"Position: {label or 'N/A'}\n"
            f"Recorded at: {datetime.now().isoformat()}\n"
            f"Run: {self.run_id}\n\n"
            f"=== PROMPT ===\n{prompt.strip()}\n\n"
            f"=== RESPONSE ===\n{response}\n"
        )
        write_text(self.run_dir / subdir / f"{name}.txt", content)

    def record_structured(self, seed: SeedElection, raw_response: str,
                          elections: Sequence[DetailedElection]) -> None:
        name = slugify(seed.name)
        write_text(self.run_dir / "structured" / f"{name}_raw.txt", raw_response)
        if elections:
            write_json(self.run_dir / "structured" / f"{name}_parsed.json", elections_payload(elections))
            write_text(self.run_dir / "structured" / f"{name}_readable.txt", readable_digest(seed, elections))

    def record_summary(self, summary: dict) -> None:
        payload = {"run_id": self.run_id, "finished_at": datetime.now().isoformat()}
        payload.update(summary)
        write_json(self.run_dir / "run_summary.json", payload)

    def save_elections(self, elections: Sequence[DetailedElection]) -> Path:
        path = self.run_dir / "elections.json"
        write_json(path, elections_payload(elections))
        logger.info(f"Saved {len(elections)} elections to {path}")
        return path
