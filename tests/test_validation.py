from datetime import date

from finflow.functional import Left, Nothing, Right, Some, find_by_id
from finflow.domain import Budget
from finflow.validation import validate_budget_fields, validate_transaction_fields

TODAY = date(2025, 3, 15)


def test_either_map_and_bind():
    assert Right(5).map(lambda x: x * 2) == Right(10)
    assert Left("error").map(lambda x: x * 2).get_error() == "error"
    assert Right(2).bind(lambda x: Left("nope") if x == 2 else Right(x)).is_left()
    assert Left("boom").bind(lambda x: Right(x)).get_error() == "boom"
    assert Left("e").get_or_else(0) == 0


def test_maybe():
    assert Some(3).map(lambda x: x + 1).get_or_else(0) == 4
    assert Nothing().map(lambda x: x + 1).get_or_else(0) == 0
    assert Nothing().is_none()


def test_find_by_id():
    budgets = (Budget(1, "Food", 100), Budget(2, "Rent", 900))
    assert find_by_id(budgets, 2) == Some(Budget(2, "Rent", 900))
    assert find_by_id(budgets, 3).is_none()


def test_validate_transaction_success_fills_defaults():
    result = validate_transaction_fields({"type": "Income", "amount": "50", "date": "2025-03-02"}, TODAY)
    assert result.is_right()
    fields = result.get_or_else(None)
    assert fields["type"] == "income"
    assert fields["amount"] == 50.0
    assert fields["date"] == date(2025, 3, 2)
    assert fields["category"] == "Uncategorized"
    assert fields["payment_method"] == "Cash"


def test_validate_transaction_missing_date_uses_today():
    fields = validate_transaction_fields({"amount": 10}, TODAY).get_or_else(None)
    assert fields["date"] == TODAY
    assert fields["type"] == "expense"


def test_validate_transaction_rejects_bad_amounts():
    assert validate_transaction_fields({"amount": 0}, TODAY).get_error()["error"] == "non_positive_amount"
    assert validate_transaction_fields({"amount": -3}, TODAY).get_error()["error"] == "non_positive_amount"
    assert validate_transaction_fields({"amount": "ten"}, TODAY).get_error()["error"] == "invalid_amount"
    assert validate_transaction_fields({}, TODAY).get_error()["error"] == "invalid_amount"


def test_validate_transaction_rejects_bad_type_and_date():
    bad_type = validate_transaction_fields({"amount": 5, "type": "transfer"}, TODAY)
    assert bad_type.get_error()["error"] == "invalid_type"
    bad_date = validate_transaction_fields({"amount": 5, "date": "someday"}, TODAY)
    assert bad_date.get_error()["error"] == "invalid_date"
    assert "someday" in bad_date.get_error()["message"]


def test_validate_budget_fields():
    assert validate_budget_fields({"category": "Food", "amount": "200"}) == Right({"category": "Food", "amount": 200.0})
    assert validate_budget_fields({"category": "", "amount": 10}).get_error()["error"] == "missing_category"
    assert validate_budget_fields({"category": "Food", "amount": 0}).get_error()["error"] == "invalid_amount"
