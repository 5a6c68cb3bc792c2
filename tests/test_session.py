from code_workbench.core.session import OperationSession


def test_trigger_moves_idle_to_pending_and_records_version():
    s = OperationSession("optimize")
    ticket = s.trigger(3)
    assert ticket is not None
    assert s.status == "pending"
    assert s.source_version == 3
    assert ticket.source_version == 3


def test_trigger_while_pending_is_noop():
    s = OperationSession("run")
    first = s.trigger(0)
    assert s.trigger(1) is None
    assert s.status == "pending"
    assert s.source_version == 0
    assert first is not None


def test_success_then_failure_paths_keep_result_and_error_exclusive():
    s = OperationSession("generate-tests")
    t1 = s.trigger(0)
    assert s.on_success(t1, "T")
    assert (s.status, s.result, s.error) == ("succeeded", "T", None)

    t2 = s.trigger(0)
    assert s.result is None
    assert s.on_failure(t2, "boom")
    assert (s.status, s.result, s.error) == ("failed", None, "boom")


def test_completion_for_terminal_session_is_ignored():
    s = OperationSession("run")
    t = s.trigger(0)
    s.on_failure(t, "timed out")
    # Late arrival of the same call after it already failed.
    assert not s.on_success(t, "late")
    assert s.status == "failed"
    assert s.error == "timed out"


def test_out_of_order_completion_is_discarded():
    s = OperationSession("optimize")
    old = s.trigger(0)
    s.on_failure(old, "timed out")
    new = s.trigger(1)

    assert not s.on_success(old, "stale code")
    assert s.status == "pending"
    assert s.source_version == 1
    assert s.result is None

    assert s.on_success(new, "fresh code")
    assert s.result == "fresh code"


def test_same_version_retrigger_still_rejects_old_call():
    s = OperationSession("optimize")
    old = s.trigger(0)
    s.on_failure(old, "x")
    new = s.trigger(0)
    assert not s.on_failure(old, "late failure")
    assert s.status == "pending"
    assert s.on_success(new, "ok")


def test_reset_returns_to_idle_and_drops_outstanding_call():
    s = OperationSession("optimize")
    t = s.trigger(0)
    s.reset()
    assert s.status == "idle"
    assert s.source_version is None
    assert not s.on_success(t, "late")
    assert s.status == "idle"


def test_staleness_against_buffer_version():
    s = OperationSession("generate-tests")
    assert not s.is_stale(5)
    t = s.trigger(0)
    s.on_success(t, "T")
    assert not s.is_stale(0)
    assert s.is_stale(1)
    view = s.view(1)
    assert view.stale and view.status == "succeeded" and view.result == "T"
