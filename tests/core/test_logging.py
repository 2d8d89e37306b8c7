import json
import logging

from historybox.core.errors import HistoryBoxError, InsufficientFunds, NotFound, Unauthenticated
from historybox.core.logging import JsonFormatter


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("historybox.test", logging.INFO, __file__, 1, "coins_debited", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_keeps_whitelisted_extras():
    line = JsonFormatter().format(_record(user_id="u1", coins=3, secret="x"))
    payload = json.loads(line)
    assert payload["message"] == "coins_debited"
    assert payload["level"] == "INFO"
    assert payload["user_id"] == "u1"
    assert payload["coins"] == 3
    assert "secret" not in payload


def test_error_status_codes():
    assert InsufficientFunds(balance=1, required=2).status_code == 402
    assert InsufficientFunds(balance=1, required=2).detail == {"coins": 1, "required": 2}
    assert NotFound("Region not found").status_code == 404
    assert Unauthenticated().message == "Not authenticated"
    assert issubclass(NotFound, HistoryBoxError)
