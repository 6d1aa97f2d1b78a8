"""Download the PDF of a resolved paper to a templated path."""

import logging
from pathlib import Path
from typing import Dict

import requests

from .errors import DownloadError, notify
from .utils import DEFAULT_USER_AGENT, build_session, format_template, is_sentinel


DEFAULT_OUTPUT_TEMPLATE = "asset_folder/{{VALUE:bibtexKey}}.pdf"


class PDFDownloader:
    """Fetches ``pdf_url`` from record variables and writes the bytes to disk."""

    def __init__(self, timeout: int = 60, max_retries: int = 3,
                 backoff_factor: float = 0.5, user_agent: str = DEFAULT_USER_AGENT):
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)
        self.session = build_session(
            user_agent=user_agent,
            max_retries=max_retries,
            backoff_factor=backoff_factor
        )

    def _fail(self, message: str, cause: Exception = None) -> None:
        self.logger.error(message)
        notify(message)
        raise DownloadError(message) from cause

    def output_path(self, variables: Dict[str, str], output_template: str = DEFAULT_OUTPUT_TEMPLATE) -> Path:
        """Format the output template against the record variables."""
        try:
            return Path(format_template(output_template, variables))
        except KeyError as e:
            self._fail(f"Unknown variable {e} in output template: {output_template}", e)

    def download(self, variables: Dict[str, str], output_template: str = DEFAULT_OUTPUT_TEMPLATE) -> str:
        """Download the paper PDF.

        Args:
            variables: Post-processed record variables (must include ``pdf_url``)
            output_template: Path template with ``{{VALUE:name}}`` placeholders

        Returns:
            Path the PDF was written to
        """
        pdf_url = variables.get('pdf_url')
        if is_sentinel(pdf_url):
            self._fail("No PDF URL available for this paper")

        path = self.output_path(variables, output_template)

        try:
            response = self.session.get(pdf_url, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            self._fail(f"Failed to download PDF from {pdf_url}: {e}", e)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(response.content)
        except OSError as e:
            self._fail(f"Failed to write PDF to {path}: {e}", e)

        self.logger.info(f"Saved PDF ({len(response.content)} bytes) to {path}")
        return str(path)
