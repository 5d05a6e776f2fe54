"""Status reporter tests: poll-time reconciliation."""

from conftest import run


def _created(controller):
    return run(controller.create_order("single"))


def test_unknown_purchase_not_found(controller, fake_paypal):
    assert run(controller.report_status("missing")) is None
    assert fake_paypal.calls == []


def test_paid_purchase_served_without_remote_call(controller, fake_paypal):
    created = _created(controller)
    fake_paypal.approve(created.order_id)
    run(controller.complete_via_redirect(created.purchase_id, created.order_id))
    calls_before = len(fake_paypal.calls)

    record = run(controller.report_status(created.purchase_id))

    assert record.status == "paid"
    assert len(fake_paypal.calls) == calls_before


def test_remote_completed_marks_paid(controller, fake_paypal):
    created = _created(controller)
    fake_paypal.complete(created.order_id)

    record = run(controller.report_status(created.purchase_id))

    assert record.status == "paid"
    assert fake_paypal.count_calls("/capture") == 0


def test_scenario_b_approved_order_is_auto_captured(controller, ledger, fake_paypal):
    created = _created(controller)
    fake_paypal.approve(created.order_id)

    record = run(controller.report_status(created.purchase_id))

    assert record.status == "paid"
    assert fake_paypal.count_calls("/capture") == 1
    assert ledger.get(created.purchase_id).status == "paid"


def test_scenario_b_capture_failure_keeps_prior_status(controller, ledger, fake_paypal):
    created = _created(controller)
    fake_paypal.approve(created.order_id)
    fake_paypal.capture_status = 500

    record = run(controller.report_status(created.purchase_id))

    assert record.status == "created"
    assert ledger.get(created.purchase_id).state_version == 0


def test_auto_capture_not_completed_is_pending(controller, fake_paypal):
    created = _created(controller)
    fake_paypal.approve(created.order_id)
    fake_paypal.capture_result = "PENDING"

    assert run(controller.report_status(created.purchase_id)).status == "pending"


def test_other_remote_status_leaves_record(controller, fake_paypal):
    created = _created(controller)

    record = run(controller.report_status(created.purchase_id))

    assert record.status == "created"
    assert fake_paypal.count_calls("/capture") == 0


def test_remote_query_failure_is_swallowed(controller, fake_paypal):
    created = _created(controller)
    fake_paypal.fetch_status = 503

    record = run(controller.report_status(created.purchase_id))
    assert record.status == "created"


def test_auth_failure_during_poll_is_swallowed(controller, fake_paypal):
    created = _created(controller)
    fake_paypal.token_status = 500

    record = run(controller.report_status(created.purchase_id))
    assert record.status == "created"


def test_query_is_idempotent(controller, fake_paypal):
    created = _created(controller)

    first = run(controller.report_status(created.purchase_id))
    second = run(controller.report_status(created.purchase_id))

    assert first == second


def test_scenario_c_cancelled_stays_cancelled(controller, fake_paypal):
    created = _created(controller)
    run(controller.cancel(created.purchase_id))

    record = run(controller.report_status(created.purchase_id))
    assert record.status == "cancelled"


def test_scenario_c_cancelled_but_remote_completed_becomes_paid(controller, fake_paypal):
    created = _created(controller)
    run(controller.cancel(created.purchase_id))
    fake_paypal.complete(created.order_id)

    record = run(controller.report_status(created.purchase_id))
    assert record.status == "paid"


def test_cancelled_approved_capture_pending_stays_cancelled(controller, fake_paypal):
    created = _created(controller)
    run(controller.cancel(created.purchase_id))
    fake_paypal.approve(created.order_id)
    fake_paypal.capture_result = "PENDING"

    record = run(controller.report_status(created.purchase_id))
    assert record.status == "cancelled"
