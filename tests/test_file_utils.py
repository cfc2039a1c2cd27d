import json

import pytest

from file_utils import NullRecorder, RunArtifactManager, RunRecorder, slugify, write_json
from models import Candidate, CandidatePolicy, DetailedElection


def _election(seed):
    candidate = Candidate(
        full_name="Jane Doe",
        current_position="Business Owner",
        description="Long-time resident",
        key_policies=[CandidatePolicy(title="Roads", description="Repair Main Street")],
        sources=["laurel.de.us"],
    )
    return DetailedElection(position="Mayor", date=seed.date, city="Laurel", state="Delaware",
                            description="Chief executive", candidates=[candidate])


def test_slugify():
    assert slugify("Town of Laurel, DE -- General!") == "town_of_laurel_de_general"
    assert slugify("") == "untitled"
    assert len(slugify("x" * 100)) == 48


def test_write_json_is_readable_and_replaces_atomically(tmp_path):
    path = tmp_path / "nested" / "payload.json"
    write_json(path, {"a": 1})
    write_json(path, {"a": 2})
    assert json.loads(path.read_text(encoding="utf-8")) == {"a": 2}
    assert [p.name for p in path.parent.iterdir()] == ["payload.json"]


def test_run_directory_layout(tmp_path):
    manager = RunArtifactManager(str(tmp_path), run_id="run1")
    for subdir in ("seeds", "research", "candidates", "structured"):
        assert (tmp_path / "run1" / subdir).is_dir()


def test_records_exchanges_and_structured_output(tmp_path, seed):
    manager = RunArtifactManager(str(tmp_path), run_id="run1")
    manager.record_seeds([seed], "csv:elections.csv")
    manager.record_exchange(seed, "research", "prompt text", "reply text")
    manager.record_exchange(seed, "candidates", "candidate prompt", "candidate reply", label="Town Council")
    manager.record_structured(seed, '{"elections": []}', [_election(seed)])

    run_dir = tmp_path / "run1"
    seeds = json.loads((run_dir / "seeds" / "elections.json").read_text(encoding="utf-8"))
    assert seeds["source"] == "csv:elections.csv"
    assert seeds["elections"][0]["date"] == "2025-03-27"

    research = (run_dir / "research" / "town_of_laurel_general_election.txt").read_text(encoding="utf-8")
    assert "=== PROMPT ===\nprompt text" in research
    assert "=== RESPONSE ===\nreply text" in research
    assert (run_dir / "candidates" / "town_of_laurel_general_election__town_council.txt").exists()

    parsed = json.loads((run_dir / "structured" / "town_of_laurel_general_election_parsed.json").read_text())
    assert parsed[0]["candidates"][0]["full_name"] == "Jane Doe"
    digest = (run_dir / "structured" / "town_of_laurel_general_election_readable.txt").read_text()
    assert "POSITION: Mayor" in digest
    assert "[1] Jane Doe" in digest


def test_save_elections_and_summary(tmp_path, seed):
    manager = RunArtifactManager(str(tmp_path), run_id="run1")
    path = manager.save_elections([_election(seed)])
    manager.record_summary({"elections_processed": 1})

    [saved] = json.loads(path.read_text(encoding="utf-8"))
    assert saved["type"] == "LOCAL"
    assert saved["seats"] == 1
    summary = json.loads((tmp_path / "run1" / "run_summary.json").read_text(encoding="utf-8"))
    assert summary["run_id"] == "run1"
    assert summary["elections_processed"] == 1


def test_recorder_contract_is_abstract():
    with pytest.raises(TypeError):
        RunRecorder()
    assert isinstance(NullRecorder(), RunRecorder)
    assert issubclass(RunArtifactManager, RunRecorder)


def test_null_recorder_keeps_nothing(seed):
    recorder = NullRecorder()
    assert recorder.record_seeds([seed], "seeds.csv") is None
    assert recorder.record_exchange(seed, "research", "prompt", "reply") is None
    assert recorder.record_structured(seed, "{}", []) is None
    assert recorder.record_summary({"elections_processed": 1}) is None
