"""Tests for compute hosts: correlation, timeouts, fatal errors and shutdown."""

import threading
import time

import pytest

from formation.compute import (
    BaseComputeHost,
    ComputeHost,
    InlineComputeHost,
    create_compute_host,
    handle_request,
    process_isolation_available,
)
from formation.compute.host import next_message_id
from formation.config.compute import ComputeConfig
from formation.exceptions import (
    ComputeError,
    ComputeRequestError,
    ComputeTerminatedError,
    ComputeTimeoutError,
    ConfigurationError,
    HostFatalError,
)
from formation.models import (
    Agent,
    AssignmentResult,
    Availability,
    FormationOptimizationRequest,
    Position,
    PositionValidationRequest,
    PositionValidationResult,
)


class RecordingHost(BaseComputeHost):
    """Keeps every posted envelope; the test decides when (or whether) to answer."""

    mode = "recording"

    def __init__(self, timeout_seconds=5.0):
        super().__init__(timeout_seconds)
        self.posted = []

    def _post(self, message):
        self.posted.append(message)

    def answer(self, index):
        self._handle_response(handle_request(self.posted[index]))


class BrokenPipeHost(BaseComputeHost):
    mode = "broken"

    def _post(self, message):
        raise OSError("pipe closed")


@pytest.fixture
def optimization_request(two_slot_formation):
    agents, formation = two_slot_formation
    return FormationOptimizationRequest(agents=tuple(agents), formation=formation)


@pytest.fixture
def validation_request(make_agent):
    return PositionValidationRequest(
        agent_id="m", position=Position(50, 50), agents=(make_agent("b", x=50, y=50),)
    )


def test_message_ids_are_unique_and_prefixed():
    ids = {next_message_id() for _ in range(100)}

    assert len(ids) == 100
    assert all(message_id.startswith("msg_") for message_id in ids)


def test_hosts_satisfy_protocol():
    with InlineComputeHost() as host:
        assert isinstance(host, ComputeHost)
    assert isinstance(RecordingHost(), ComputeHost)


class TestInlineHost:
    def test_optimize_resolves_immediately(self, optimization_request):
        with InlineComputeHost() as host:
            future = host.optimize_formation(optimization_request)

            assert future.done()
            result = future.result()
            assert isinstance(result, AssignmentResult)
            assert result.assignments == {"1": "X", "2": "Y"}
            assert host.pending_count == 0

    def test_optimal_and_validate(self, optimization_request, validation_request):
        with InlineComputeHost() as host:
            optimal = host.optimize_formation_optimal(optimization_request).result()
            validation = host.validate_position(validation_request).result()

        assert optimal.assignments == {"1": "X", "2": "Y"}
        assert isinstance(validation, PositionValidationResult)
        assert validation.conflicts == ("b",)

    def test_unknown_type_rejects_only_that_request(self, optimization_request):
        with InlineComputeHost() as host:
            bad = host.send("NOT_A_REAL_TYPE", {})
            good = host.optimize_formation(optimization_request)

            error = bad.exception(timeout=1)
            assert isinstance(error, ComputeRequestError)
            assert "NOT_A_REAL_TYPE" in str(error)
            assert good.result(timeout=1).score > 0

    def test_results_do_not_share_objects_with_request(self, optimization_request):
        with InlineComputeHost() as host:
            result = host.optimize_formation(optimization_request).result()

        assert result.optimized_formation is not optimization_request.formation


class TestCorrelation:
    def test_out_of_order_answers_reach_the_right_future(self, optimization_request, validation_request):
        host = RecordingHost()
        first = host.optimize_formation(optimization_request)
        second = host.validate_position(validation_request)
        assert host.pending_count == 2

        host.answer(1)
        assert second.done() and not first.done()
        assert second.result().conflicts == ("b",)

        host.answer(0)
        assert first.result().assignments == {"1": "X", "2": "Y"}
        assert host.pending_count == 0
        host.terminate()

    def test_request_ids_differ_per_send(self, optimization_request):
        host = RecordingHost()
        host.optimize_formation(optimization_request)
        host.optimize_formation(optimization_request)

        assert host.posted[0]["id"] != host.posted[1]["id"]
        host.terminate()

    def test_unknown_response_id_is_ignored(self):
        host = RecordingHost()
        host._handle_response({"id": "msg_does_not_exist", "type": "SUCCESS", "result": {}})
        assert host.pending_count == 0

    def test_undecodable_result_rejects_request(self, optimization_request):
        host = RecordingHost()
        future = host.optimize_formation(optimization_request)

        host._handle_response({"id": host.posted[0]["id"], "type": "SUCCESS", "result": {"score": 1}})

        assert isinstance(future.exception(timeout=1), ComputeRequestError)


class TestTimeouts:
    def test_unanswered_request_times_out(self, optimization_request):
        host = RecordingHost(timeout_seconds=0.05)

        future = host.optimize_formation(optimization_request)

        error = future.exception(timeout=2)
        assert isinstance(error, ComputeTimeoutError)
        assert host.posted[0]["id"] in str(error)
        assert host.pending_count == 0

    def test_rejection_waits_for_the_full_window(self, optimization_request):
        host = RecordingHost(timeout_seconds=0.4)
        started = time.monotonic()

        future = host.optimize_formation(optimization_request)
        time.sleep(0.2)
        assert not future.done()
        assert host.pending_count == 1

        assert isinstance(future.exception(timeout=3), ComputeTimeoutError)
        assert time.monotonic() - started >= 0.39

    def test_late_answer_is_dropped(self, optimization_request):
        host = RecordingHost(timeout_seconds=0.05)
        future = host.optimize_formation(optimization_request)
        future.exception(timeout=2)

        host.answer(0)

        assert isinstance(future.exception(), ComputeTimeoutError)
        assert host.pending_count == 0

    def test_answered_request_does_not_time_out(self, optimization_request):
        host = RecordingHost(timeout_seconds=0.1)
        future = host.optimize_formation(optimization_request)
        host.answer(0)

        time.sleep(0.2)

        assert future.exception() is None
        host.terminate()

    def test_non_positive_timeout_is_rejected(self):
        with pytest.raises(ConfigurationError):
            RecordingHost(timeout_seconds=0)


class TestFailures:
    def test_fatal_error_rejects_every_pending_request(self, optimization_request, validation_request):
        host = RecordingHost()
        futures = [
            host.optimize_formation(optimization_request),
            host.validate_position(validation_request),
        ]

        host._handle_fatal_error(RuntimeError("context crashed"))

        for future in futures:
            error = future.exception(timeout=1)
            assert isinstance(error, HostFatalError)
            assert "context crashed" in str(error)
        assert host.pending_count == 0

    def test_delivery_failure_rejects_immediately(self, optimization_request):
        host = BrokenPipeHost()

        future = host.optimize_formation(optimization_request)

        error = future.exception(timeout=1)
        assert isinstance(error, ComputeError)
        assert "pipe closed" in str(error)
        assert host.pending_count == 0

    def test_terminate_rejects_pending_and_later_requests(self, optimization_request):
        host = RecordingHost()
        pending = host.optimize_formation(optimization_request)

        host.terminate()
        host.terminate()

        assert isinstance(pending.exception(timeout=1), ComputeTerminatedError)
        later = host.optimize_formation(optimization_request)
        assert isinstance(later.exception(timeout=1), ComputeTerminatedError)
        assert len(host.posted) == 1

    def test_unencodable_payload_rejects_instead_of_raising(self):
        with InlineComputeHost() as host:
            # orjson refuses integers wider than 64 bits
            future = host.send("OPTIMIZE_FORMATION", {"reason": 2**70})

            assert isinstance(future.exception(timeout=1), ComputeError)
            assert host.pending_count == 0

    def test_oversized_availability_reason_is_coerced(self, make_agent, make_slot, make_formation):
        availability = Availability.from_dict({"status": "Injured", "reason": 2**70})
        assert availability.reason == str(2**70)

        agent = make_agent("a")
        request = FormationOptimizationRequest(
            agents=(Agent(agent.id, agent.role_id, agent.position, availability=availability),),
            formation=make_formation(make_slot("s1")),
        )
        with InlineComputeHost() as host:
            result = host.optimize_formation(request).result(timeout=1)

        assert result.assignments == {"s1": "a"}

    def test_terminate_during_concurrent_sends_leaves_nothing_pending(self, optimization_request):
        host = RecordingHost(timeout_seconds=30)
        futures = []
        futures_lock = threading.Lock()

        def sender():
            for _ in range(50):
                future = host.optimize_formation(optimization_request)
                with futures_lock:
                    futures.append(future)

        threads = [threading.Thread(target=sender) for _ in range(4)]
        for thread in threads:
            thread.start()
        host.terminate()
        for thread in threads:
            thread.join()

        assert host.pending_count == 0
        assert len(futures) == 200
        for future in futures:
            assert future.done()
            assert isinstance(future.exception(), ComputeTerminatedError)

    def test_cancelled_future_does_not_break_settlement(self, optimization_request):
        host = RecordingHost()
        future = host.optimize_formation(optimization_request)
        future.cancel()

        host.answer(0)

        assert host.pending_count == 0


class TestFactory:
    def test_inline_mode(self):
        host = create_compute_host(mode="inline", timeout_seconds=1.5)
        try:
            assert isinstance(host, InlineComputeHost)
            assert host.timeout_seconds == 1.5
        finally:
            host.terminate()

    def test_invalid_mode(self):
        with pytest.raises(ConfigurationError):
            create_compute_host(mode="gpu")

    def test_config_from_environment(self, monkeypatch):
        monkeypatch.setenv("FORMATION_COMPUTE_MODE", "INLINE")
        monkeypatch.setenv("FORMATION_COMPUTE_TIMEOUT_SECONDS", "2.5")

        config = ComputeConfig()

        assert config.mode == "inline"
        assert config.timeout_seconds == 2.5

    def test_bad_timeout_in_environment(self, monkeypatch):
        monkeypatch.setenv("FORMATION_COMPUTE_TIMEOUT_SECONDS", "soon")

        with pytest.raises(ConfigurationError):
            ComputeConfig()

    def test_unknown_start_method_is_unavailable(self):
        assert not process_isolation_available("teleport")


@pytest.mark.skipif(
    not process_isolation_available("spawn"), reason="process isolation unavailable"
)
class TestProcessHost:
    def test_round_trip(self, optimization_request, validation_request):
        from formation.compute.process import ProcessComputeHost

        with ProcessComputeHost(timeout_seconds=30) as host:
            assert host.worker_alive
            result = host.optimize_formation(optimization_request).result(timeout=30)
            validation = host.validate_position(validation_request).result(timeout=30)
            bad = host.send("NOT_A_REAL_TYPE", {})

            assert result.assignments == {"1": "X", "2": "Y"}
            assert validation.conflicts == ("b",)
            assert isinstance(bad.exception(timeout=30), ComputeRequestError)

        assert not host.worker_alive

        with InlineComputeHost() as inline:
            assert inline.optimize_formation(optimization_request).result() == result
            assert inline.validate_position(validation_request).result() == validation

    def test_worker_death_is_fatal(self, optimization_request):
        from formation.compute.process import ProcessComputeHost

        host = ProcessComputeHost(timeout_seconds=30)
        try:
            host._process.kill()
            host._process.join(timeout=10)

            future = host.optimize_formation(optimization_request)

            assert isinstance(future.exception(timeout=10), ComputeError)
            assert host.pending_count == 0
        finally:
            host.terminate()

    def test_dead_worker_marks_host_unhealthy(self, optimization_request):
        from formation.compute.process import ProcessComputeHost

        host = ProcessComputeHost(timeout_seconds=30)
        try:
            assert host.healthy
            host._process.kill()
            host._process.join(timeout=10)

            deadline = time.monotonic() + 10
            while host.healthy and time.monotonic() < deadline:
                time.sleep(0.05)

            assert host.worker_failed
            assert not host.healthy
            assert not host.terminated

            later = host.optimize_formation(optimization_request)
            assert isinstance(later.exception(timeout=1), HostFatalError)
            assert host.pending_count == 0
        finally:
            host.terminate()
