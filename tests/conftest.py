import json
from datetime import date
from typing import List

import pytest

from model_gateway import ModelGateway
from models import SeedElection
from scheduling import SchedulingPolicy


class ScriptedGateway(ModelGateway):
    """Replays canned replies in order; an Exception entry is raised instead."""

    def __init__(self, replies):
        self.replies = list(replies)
        self.calls = []

    def generate(self, prompt, use_grounding=True, history=None):
        self.calls.append({"prompt": prompt, "use_grounding": use_grounding, "history": list(history or [])})
        if not self.replies:
            raise AssertionError("gateway called more times than scripted")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class RecordingSleep:
    def __init__(self):
        self.calls: List[float] = []

    def __call__(self, seconds):
        self.calls.append(seconds)


@pytest.fixture
def seed():
    return SeedElection(
        name="Town of Laurel General Election",
        date=date(2025, 3, 27),
        state="Delaware",
        district="Laurel",
        description="Town of Laurel, DE general municipal election",
    )


@pytest.fixture
def sleeper():
    return RecordingSleep()


@pytest.fixture
def policy(sleeper):
    return SchedulingPolicy(
        position_delay=30,
        post_research_delay=10,
        seed_delay=15,
        max_attempts=3,
        base_backoff=2,
        max_backoff=60,
        sleep=sleeper,
    )


@pytest.fixture
def make_gateway():
    return ScriptedGateway


def positions_reply(*names, **extra):
    payload = {
        "state": "Delaware",
        "positions_up_for_election": [
            dict({"position_name": name, "city": "Laurel", "state": "Delaware",
                  "description": f"{name} of Laurel", "position_type": "local", "positions": "1"}, **extra)
            for name in names
        ],
    }
    return "Here is what I found:\n```json\n" + json.dumps(payload) + "\n```"


def candidates_reply(*names):
    return json.dumps({"candidates": [{"name": name, "party": "Nonpartisan"} for name in names]})


def elections_reply(*entries):
    return json.dumps({"elections": list(entries)})


def election_entry(position, candidates=(), **fields):
    entry = {
        "position": position,
        "date": "2025-03-27",
        "city": "Laurel",
        "state": "Delaware",
        "description": f"{position} of Laurel",
        "type": "LOCAL",
        "positions": 1,
        "candidates": [
            {
                "fullName": name,
                "currentPosition": "Business Owner",
                "description": f"{name} has lived in Laurel for years.",
                "keyPolicies": [{"title": "Roads", "description": "Repair Main Street"}],
                "sources": ["laurel.de.us"],
                "party": "Nonpartisan",
                "city": "Laurel",
                "state": "Delaware",
            }
            for name in candidates
        ],
    }
    entry.update(fields)
    return entry
