"""
Validation of raw fetch requests coming from the HTTP layer or the CLI.
"""
import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from cachebench.core.errors import InvalidRequest
from cachebench.core.strategies import FetchStrategy

_INTEGER_TEXT = re.compile(r"-?\d+", re.ASCII)


@dataclass(frozen=True)
class FetchRequest:
    """A validated request: which strategy to run and how many entities to return."""
    strategy: FetchStrategy
    limit: int


def parse_fetch_request(
    payload: Mapping[str, Any],
    max_limit: Optional[int] = None,
) -> FetchRequest:
    """
    Validate a ``{strategy, limit}`` payload.

    ``mode`` is accepted as an alias of ``strategy``.

    Args:
        payload: Raw request mapping
        max_limit: Optional upper bound on the limit

    Returns:
        FetchRequest

    Raises:
        InvalidRequest: missing, non-integer or non-positive limit, a limit
            above max_limit, or an unrecognized strategy
    """
    if not isinstance(payload, Mapping):
        raise InvalidRequest("Request body must be an object")

    raw_strategy = payload.get("strategy", payload.get("mode"))
    if raw_strategy is None:
        raise InvalidRequest("Missing strategy", field="strategy")
    try:
        strategy = FetchStrategy.parse(raw_strategy)
    except ValueError:
        valid = ", ".join(s.value for s in FetchStrategy)
        raise InvalidRequest(
            f"Invalid strategy {raw_strategy!r}. Use one of: {valid}", field="strategy"
        )

    limit = payload.get("limit")
    if limit is None:
        raise InvalidRequest("Missing limit", field="limit")
    # bool is an int subclass; reject it explicitly
    if isinstance(limit, bool) or not isinstance(limit, int):
        if isinstance(limit, str) and _INTEGER_TEXT.fullmatch(limit.strip()):
            limit = int(limit.strip())
        else:
            raise InvalidRequest(f"Limit must be an integer, got {limit!r}", field="limit")
    if limit <= 0:
        raise InvalidRequest(f"Limit must be positive, got {limit}", field="limit")
    if max_limit is not None and limit > max_limit:
        raise InvalidRequest(f"Limit must be at most {max_limit}, got {limit}", field="limit")

    return FetchRequest(strategy=strategy, limit=limit)
