import datetime
from decimal import Decimal
from typing import Any

import pandas as pd


def serialize_value(value: Any):
    """JSON-ready form of a cell value read from a dataset table."""
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    if isinstance(value, (datetime.date, datetime.datetime, datetime.time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    return value


def like_text(value: Any) -> str:
    """Text a bound search value is compared as, matching how the backend renders the column."""
    if isinstance(value, datetime.datetime):
        return value.isoformat(sep=" ")
    if isinstance(value, datetime.date):
        return value.isoformat()
    return str(value)
