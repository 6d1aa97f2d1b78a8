"""Exception types raised while resolving paper metadata."""

import logging
import sys


notice_logger = logging.getLogger("paperfetch.notice")


def notify(message: str) -> None:
    """Show a user-facing notice before an error is raised."""
    notice_logger.warning(message)
    print(f"Notice: {message}", file=sys.stderr)


class PaperFetchError(Exception):
    """Base class for all paperfetch failures."""


class ClassificationError(PaperFetchError):
    """The input URL could not be parsed or mapped to a provider id."""


class AdapterFetchError(PaperFetchError):
    """A provider response could not be fetched or lacked expected data."""


class SemanticScholarError(PaperFetchError):
    """Semantic Scholar API returned a non-success response."""

    def __init__(self, message: str, kind: str, status_code: int = None):
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code


class RateLimitExceededError(SemanticScholarError):
    """All attempts were rate limited."""


class ProviderRejectedError(SemanticScholarError):
    """Request rejected as invalid (400) or paper not found (404)."""


class UnexpectedStatusError(SemanticScholarError):
    """Any other non-200 status."""


class KeyExtractionError(PaperFetchError):
    """No citation key could be parsed from the BibTeX text."""


class DownloadError(PaperFetchError):
    """The PDF could not be downloaded or written."""
