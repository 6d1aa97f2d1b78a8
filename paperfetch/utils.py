"""Shared helpers for normalizing provider data into template variables."""

import re
from typing import Dict, Iterable, List, Optional, Tuple

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry


DEFAULT_USER_AGENT = 'paperfetch/1.0 (https://github.com/user/paperfetch)'

# Placeholder for fields a provider does not expose. Kept non-empty so the
# templating layer does not prompt for the value again.
SENTINEL = " "

TEMPLATE_VALUE_PATTERN = re.compile(r'\{\{VALUE:([^}]+)\}\}')


def split_publication_date(date_str: str, strip_month_zero: bool = True) -> Tuple[str, str]:
    """Split a ``YYYY-MM-DD...`` date into year and month strings.

    Args:
        date_str: ISO-like date or timestamp string
        strip_month_zero: Drop a single leading zero from the month ("03" -> "3")

    Returns:
        Tuple of (year, month)
    """
    year = date_str[0:4]
    month = date_str[5:7]
    if strip_month_zero and month.startswith('0'):
        month = month[1:]
    return year, month


def linkify(text: str) -> str:
    """Wrap text in wiki-link brackets."""
    return f"[[{text}]]"


def author_names(authors: List[Dict[str, str]]) -> List[str]:
    """Extract plain names from a list of ``{"name": ...}`` dicts."""
    return [author['name'] for author in authors]


def is_sentinel(value: str) -> bool:
    """Check whether a value is missing or the unavailable-field placeholder."""
    return value is None or not value.strip()


def format_template(template: str, variables: Dict[str, str]) -> str:
    """Substitute ``{{VALUE:name}}`` placeholders with record variables.

    Args:
        template: Format string such as ``asset_folder/{{VALUE:bibtexKey}}.pdf``
        variables: Template variables produced by the record builder

    Returns:
        Formatted string

    Raises:
        KeyError: If the template references an unknown variable
    """
    def replace(match):
        name = match.group(1).strip()
        return str(variables[name])
    return TEMPLATE_VALUE_PATTERN.sub(replace, template)


def build_session(user_agent: str = DEFAULT_USER_AGENT, max_retries: int = 3,
                  backoff_factor: float = 0.5,
                  status_forcelist: Iterable[int] = (500, 502, 503, 504),
                  respect_retry_after_header: bool = True,
                  headers: Optional[Dict[str, str]] = None) -> requests.Session:
    """Create a requests session with connection-level retries.

    Args:
        user_agent: User-Agent header sent with every request
        max_retries: Retries for connection errors and ``status_forcelist`` codes
        backoff_factor: urllib3 backoff factor between retries
        status_forcelist: Status codes retried transparently by urllib3
        respect_retry_after_header: Let urllib3 retry 413/429/503 responses
            that carry a Retry-After header
        headers: Extra headers merged into the session defaults

    Returns:
        Configured session
    """
    session = requests.Session()
    retry_strategy = Retry(
        total=max_retries,
        status_forcelist=list(status_forcelist),
        allowed_methods=["HEAD", "GET", "OPTIONS"],
        backoff_factor=backoff_factor,
        raise_on_status=False,
        respect_retry_after_header=respect_retry_after_header
    )
    adapter = HTTPAdapter(max_retries=retry_strategy)
    session.mount("http://", adapter)
    session.mount("https://", adapter)

    session.headers.update({'User-Agent': user_agent})
    if headers:
        session.headers.update(headers)
    return session
