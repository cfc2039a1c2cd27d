import pytest

from errors import ConfigurationError, GatewayError, MalformedResponseError, StageFailure, TransportError
from scheduling import SchedulingPolicy


class Flaky:
    def __init__(self, failures, exc=TransportError("connection reset")):
        self.failures = failures
        self.exc = exc
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.exc
        return "ok"


def test_retry_recovers_with_exponential_backoff(policy, sleeper):
    fn = Flaky(failures=2)
    assert policy.call_with_retry(fn, stage="research_positions") == "ok"
    assert fn.calls == 3
    assert sleeper.calls == [2, 4]


def test_exhausted_retries_raise_stage_failure(policy, sleeper):
    fn = Flaky(failures=5, exc=GatewayError("provider refused"))
    with pytest.raises(StageFailure) as excinfo:
        policy.call_with_retry(fn, stage="transform", seed_name="Laurel")
    assert fn.calls == 3
    assert excinfo.value.stage == "transform"
    assert excinfo.value.seed_name == "Laurel"
    assert "provider refused" in str(excinfo.value)
    assert isinstance(excinfo.value.__cause__, GatewayError)


@pytest.mark.parametrize("exc", [ConfigurationError("bad key"), MalformedResponseError("no json")])
def test_non_gateway_errors_are_not_retried(policy, sleeper, exc):
    fn = Flaky(failures=1, exc=exc)
    with pytest.raises(type(exc)):
        policy.call_with_retry(fn, stage="research_positions")
    assert fn.calls == 1
    assert sleeper.calls == []


def test_backoff_is_capped(sleeper):
    policy = SchedulingPolicy(max_attempts=5, base_backoff=10, max_backoff=25, sleep=sleeper)
    with pytest.raises(StageFailure):
        policy.call_with_retry(Flaky(failures=10), stage="transform")
    assert sleeper.calls == [10, 20, 25, 25]


def test_pause_skips_zero_delays(policy, sleeper):
    policy.pause(0, "nothing")
    policy.pause(30, "before querying the next position")
    assert sleeper.calls == [30]


def test_immediate_policy_zeroes_delays(sleeper):
    policy = SchedulingPolicy.immediate(sleep=sleeper, max_attempts=2)
    assert policy.position_delay == policy.post_research_delay == policy.seed_delay == 0
    assert policy.max_attempts == 2
    with pytest.raises(StageFailure):
        policy.call_with_retry(Flaky(failures=2), stage="transform")


def test_policy_values_are_clamped():
    policy = SchedulingPolicy(position_delay=-5, max_attempts=0, sleep=lambda s: None)
    assert policy.position_delay == 0
    assert policy.max_attempts == 1
