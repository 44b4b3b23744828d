"""Feature tests for hold and recall across terminal sessions."""

from pytest_bdd import given, parsers, scenarios, then, when

from pos_engine.catalog import StaticIdentity
from pos_engine.errors import AlreadyRecalled, HeldTransactionNotFound, TransactionInProgress

scenarios("hold_recall.feature")


# --- Given steps ---


@given(parsers.parse('a terminal with cashiers "{first}" and "{second}"'), target_fixture="sessions")
def terminal_sessions(engine, first, second):
    return {user: engine.open_session(StaticIdentity(user)) for user in (first, second)}


@given(parsers.parse('"{user}" scans "{first}" and "{second}"'))
def scan_two(sessions, user, first, second):
    sessions[user].add_item(first)
    sessions[user].add_item(second)


@given(parsers.parse('"{user}" holds the transaction with note "{note}"'))
@when(parsers.parse('"{user}" holds the transaction with note "{note}"'))
def hold(context, sessions, user, note):
    context["held_id"] = sessions[user].hold(note)


# --- When steps ---


@when(parsers.parse('"{user}" recalls the held transaction'))
def recall(context, sessions, user):
    try:
        sessions[user].recall(context["held_id"])
        context["error"] = None
    except (HeldTransactionNotFound, TransactionInProgress) as e:
        context["error"] = e


# --- Then steps ---


@then(parsers.parse('"{user}" has an empty cart'))
def empty_cart(sessions, user):
    assert sessions[user].cart.lines == ()


@then(parsers.parse('"{user}" has {count:d} lines in the cart'))
def line_count(sessions, user, count):
    assert len(sessions[user].cart.lines) == count


@then(parsers.re(r"(?P<count>\d+) transactions? (?:is|are) held"))
def held_count(engine, count):
    assert len(engine.holds.list()) == int(count)


@then("the last recall failed as already recalled")
def failed_already_recalled(context):
    assert isinstance(context["error"], AlreadyRecalled)


@then("the last recall failed as a transaction in progress")
def failed_in_progress(context):
    assert isinstance(context["error"], TransactionInProgress)
