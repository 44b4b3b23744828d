"""Feature tests for returns against a receipt."""

from decimal import Decimal

from pytest_bdd import given, parsers, scenarios, then, when

from fixtures import make_sale
from pos_engine.errors import PosError
from pos_engine.models import LineItem

scenarios("returns.feature")


def datatable_rows(datatable):
    """Convert a pytest-bdd datatable (row 0 is headers) to dicts."""
    headers = datatable[0]
    return [dict(zip(headers, row)) for row in datatable[1:]]


# --- Given steps ---


@given(parsers.parse('a completed sale "{receipt_id}" with lines:'))
def completed_sale(context, sales, catalog, clock, receipt_id, datatable):
    lines = [
        LineItem.from_product(row["line_id"], catalog.get_product(row["item_code"]), int(row["quantity"]))
        for row in datatable_rows(datatable)
    ]
    sale = make_sale(receipt_id, lines, clock())
    sales.append(sale)
    context["sale"] = sale


# --- When steps ---


@when(parsers.re(r'I return from "(?P<receipt_id>[^"]*)" with reason "(?P<reason>[^"]*)":'))
def request_return(context, processor, receipt_id, reason, datatable):
    selected = {row["line_id"]: int(row["quantity"]) for row in datatable_rows(datatable)}
    try:
        context["result"] = processor.process(receipt_id, selected, reason)
        context["error"] = None
    except PosError as e:
        context["result"] = None
        context["error"] = e


# --- Then steps ---


@then(parsers.parse("the return is recorded with total {amount}"))
def recorded_with_total(context, return_store, amount):
    assert context["error"] is None
    assert context["result"].total_amount == Decimal(amount)
    assert return_store.list() == (context["result"],)


@then(parsers.parse('the sale "{receipt_id}" is unchanged'))
def sale_unchanged(context, sales, receipt_id):
    assert sales.find(receipt_id) == context["sale"]


@then(parsers.parse('the return is rejected with "{error_name}"'))
def rejected_with(context, error_name):
    assert context["result"] is None
    assert type(context["error"]).__name__ == error_name


@then("no return is recorded")
def nothing_recorded(return_store):
    assert return_store.list() == ()
