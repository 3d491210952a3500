# dashaforecast/core/errors.py
from __future__ import annotations

from typing import Any, Dict, List, Union

__all__ = ["InvalidInput", "err", "FALLBACK_MESSAGE"]

ErrorRecord = Dict[str, Any]

FALLBACK_MESSAGE = "invalid forecast input"


def err(loc: List[Any] | str, msg: str, typ: str = "value_error") -> ErrorRecord:
    return {"loc": [loc] if isinstance(loc, str) else list(loc), "msg": msg, "type": typ}


class InvalidInput(ValueError):
    """
    Rejected timeline or window input, raised before any computation.

    Carries one or more {loc, msg, type} records; the HTTP layer returns
    them verbatim as `details` of a 422 response. str(exc) is the first
    record's message prefixed with its location, e.g. "levels: must be 1, 2 or 3".
    """

    def __init__(self, details: Union[str, ErrorRecord, List[ErrorRecord], None] = None):
        if isinstance(details, str):
            records = [err([], details)]
        elif isinstance(details, dict):
            records = [details]
        elif isinstance(details, list) and details:
            records = list(details)
        else:
            records = [err([], FALLBACK_MESSAGE)]
        self._records: List[ErrorRecord] = records
        super().__init__(self._summary(records[0]))

    @staticmethod
    def _summary(record: ErrorRecord) -> str:
        msg = record.get("msg") or FALLBACK_MESSAGE
        where = ".".join(str(p) for p in record.get("loc") or [])
        return f"{where}: {msg}" if where else msg

    def errors(self) -> List[ErrorRecord]:
        return list(self._records)
