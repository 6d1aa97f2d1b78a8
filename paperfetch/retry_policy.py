"""Retry decisions for rate-limited Semantic Scholar requests.

The policy is a pure function of the response status and the attempt number,
so it can be exercised without any HTTP client.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


MAX_ATTEMPTS = 3
RATE_LIMIT_DELAY = 1.0

INVALID_REQUEST = "invalid request"
NOT_FOUND = "not found"
UNEXPECTED_STATUS = "unexpected status"
RETRIES_EXHAUSTED = "retries exhausted"


class RetryAction(Enum):
    SUCCEED = "succeed"
    RETRY = "retry"
    FAIL = "fail"


@dataclass(frozen=True)
class RetryDecision:
    """What to do after a response was received."""
    action: RetryAction
    delay: float = 0.0
    kind: Optional[str] = None


def decide(status: int, attempt: int, max_attempts: int = MAX_ATTEMPTS) -> RetryDecision:
    """Decide how to proceed after a response.

    Args:
        status: HTTP status code of the response
        attempt: 1-based number of the attempt that produced it
        max_attempts: Total attempts allowed

    Returns:
        RetryDecision describing whether to succeed, retry after a delay, or fail
    """
    if status == 200:
        return RetryDecision(RetryAction.SUCCEED)
    if status == 429:
        if attempt >= max_attempts:
            return RetryDecision(RetryAction.FAIL, kind=RETRIES_EXHAUSTED)
        return RetryDecision(RetryAction.RETRY, delay=RATE_LIMIT_DELAY)
    if status == 400:
        return RetryDecision(RetryAction.FAIL, kind=INVALID_REQUEST)
    if status == 404:
        return RetryDecision(RetryAction.FAIL, kind=NOT_FOUND)
    return RetryDecision(RetryAction.FAIL, kind=UNEXPECTED_STATUS)
