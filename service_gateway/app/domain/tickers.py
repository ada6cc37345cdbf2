"""
Ticker normalization.

Shared by the gateway route and the caller-side client so both sides agree
on what a valid submission is.
"""

import re
from typing import Iterable, List, Union

from shared.errors import InvalidInputError

MAX_TICKERS = 10
MAX_TICKER_LENGTH = 5

_TICKER_PATTERN = re.compile(r"[A-Z]{1,%d}" % MAX_TICKER_LENGTH)


def _segments(raw: Union[str, Iterable[str]]) -> Iterable[str]:
    if isinstance(raw, str):
        yield from raw.split(",")
        return
    for item in raw:
        if isinstance(item, str):
            yield from item.split(",")


def normalize_tickers(raw: Union[str, Iterable[str], None]) -> List[str]:
    """Turn comma-delimited text (or a pre-split sequence) into validated tickers.

    Segments are trimmed and uppercased; empty segments are dropped and
    anything that is not 1-5 ASCII letters is rejected. Order and duplicates
    are preserved.

    Raises:
        InvalidInputError: when no ticker survives or more than
            ``MAX_TICKERS`` do.
    """
    if raw is None:
        raise InvalidInputError("No valid tickers provided")

    tickers = []
    rejected = []
    for segment in _segments(raw):
        candidate = segment.strip().upper()
        if not candidate:
            continue
        if _TICKER_PATTERN.fullmatch(candidate):
            tickers.append(candidate)
        else:
            rejected.append(candidate)

    if not tickers:
        raise InvalidInputError(
            "No valid tickers provided",
            details={"rejected": rejected},
        )
    if len(tickers) > MAX_TICKERS:
        raise InvalidInputError(
            f"Please limit to {MAX_TICKERS} tickers or fewer",
            details={"count": len(tickers), "max": MAX_TICKERS},
        )
    return tickers
