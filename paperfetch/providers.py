"""URL classification for supported metadata providers."""

import logging
from enum import Enum
from typing import Optional, Tuple
from urllib.parse import urlparse

from .errors import ClassificationError, notify


logger = logging.getLogger(__name__)


class Provider(Enum):
    """Metadata providers; values double as display names and venue names."""
    ARXIV = "arXiv"
    ACL_ANTHOLOGY = "ACL Anthology"
    SEMANTIC_SCHOLAR = "Semantic Scholar"
    UNKNOWN = "Unknown"


def _path_segment(path: str, index: int, url: str) -> str:
    parts = path.split('/')
    if len(parts) <= index or not parts[index]:
        msg = f"Could not find a paper id in URL: {url}"
        notify(msg)
        raise ClassificationError(msg)
    return parts[index]


def classify(url: str) -> Tuple[Provider, Optional[str]]:
    """Map a paper URL to its provider and provider-local id.

    Args:
        url: URL entered by the user

    Returns:
        Tuple of (provider, id); id is None for unknown providers

    Raises:
        ClassificationError: If the URL cannot be parsed
    """
    try:
        parsed = urlparse(url.strip())
        hostname = parsed.hostname
    except (AttributeError, ValueError) as e:
        msg = f"Invalid URL: {url}"
        notify(msg)
        raise ClassificationError(msg) from e

    if not parsed.scheme or not hostname:
        msg = f"Invalid URL: {url}"
        notify(msg)
        raise ClassificationError(msg)

    if hostname == 'arxiv.org':
        paper_id = _path_segment(parsed.path, 2, url)
        logger.debug(f"Classified {url} as arXiv paper {paper_id}")
        return Provider.ARXIV, paper_id

    if hostname == 'aclanthology.org':
        paper_id = _path_segment(parsed.path, 1, url)
        if paper_id.endswith('.pdf'):
            paper_id = paper_id[:-4]
        logger.debug(f"Classified {url} as ACL Anthology paper {paper_id}")
        return Provider.ACL_ANTHOLOGY, paper_id

    if hostname.endswith('semanticscholar.org'):
        parts = [part for part in parsed.path.split('/') if part]
        if not parts:
            msg = f"Could not find a paper id in URL: {url}"
            notify(msg)
            raise ClassificationError(msg)
        logger.debug(f"Classified {url} as Semantic Scholar paper {parts[-1]}")
        return Provider.SEMANTIC_SCHOLAR, parts[-1]

    logger.debug(f"No known provider for host {hostname}")
    return Provider.UNKNOWN, None
