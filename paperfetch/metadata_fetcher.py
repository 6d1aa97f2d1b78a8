"""Metadata fetcher module for resolving paper URLs into canonical records."""

import logging
import time
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import arxiv
import requests
from bs4 import BeautifulSoup

from .errors import (
    AdapterFetchError,
    ProviderRejectedError,
    RateLimitExceededError,
    UnexpectedStatusError,
    notify,
)
from .providers import Provider, classify
from .record_builder import build_record
from .retry_policy import (
    INVALID_REQUEST,
    MAX_ATTEMPTS,
    NOT_FOUND,
    RETRIES_EXHAUSTED,
    RetryAction,
    decide,
)
from .utils import (
    DEFAULT_USER_AGENT,
    SENTINEL,
    build_session,
    split_publication_date,
)


ARXIV_BASE_URL = "https://arxiv.org"
ACL_ANTHOLOGY_BASE_URL = "https://aclanthology.org"
SEMANTIC_SCHOLAR_BASE_URL = "https://api.semanticscholar.org/graph/v1"

SEMANTIC_SCHOLAR_FIELDS = [
    'paperId',
    'externalIds',
    'url',
    'title',
    'abstract',
    'venue',
    'publicationDate',
    'citationStyles',
    'authors.name',
]

# Semantic Scholar external id keys, checked in priority order
EXTERNAL_ID_ROUTES = (
    ('ACL', Provider.ACL_ANTHOLOGY),
    ('ArXiv', Provider.ARXIV),
)


@dataclass
class PaperRecord:
    """Canonical metadata for a paper, independent of the provider."""
    title: str
    authors: List[Dict[str, str]] = field(default_factory=list)
    abstract: str = ""
    year: str = ""
    month: str = ""
    bibtex: str = ""
    doi: str = SENTINEL
    venue: str = ""
    comment: str = SENTINEL
    abstract_url: str = ""
    pdf_url: str = SENTINEL
    html_url: str = SENTINEL

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _fail(message: str) -> None:
    notify(message)
    raise AdapterFetchError(message)


def _get_text(session: requests.Session, url: str, timeout: int, provider: Provider) -> str:
    """GET a URL and return its body, raising AdapterFetchError on any failure."""
    try:
        response = session.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        _fail(f"Failed to fetch {url} from {provider.value}: {e}")
    return response.text


def _require(node, description: str, provider: Provider, paper_id: str):
    if node is None:
        _fail(f"{provider.value} page for {paper_id} has no {description}")
    return node


def _meta_content(soup: BeautifulSoup, attrs: Dict[str, str], provider: Provider, paper_id: str) -> str:
    """Read the content attribute of a required meta tag."""
    description = ' '.join(f'{k}="{v}"' for k, v in attrs.items())
    node = _require(soup.find('meta', attrs=attrs), f"<meta {description}>", provider, paper_id)
    content = node.get('content')
    if content is None:
        _fail(f"{provider.value} page for {paper_id} has an empty <meta {description}>")
    return content


class ArxivClient:
    """Client combining the arXiv API entry with the abstract page and BibTeX export."""

    def __init__(self, base_url: str = ARXIV_BASE_URL, timeout: int = 15,
                 max_retries: int = 3, backoff_factor: float = 0.5,
                 delay_seconds: float = 3.0, user_agent: str = DEFAULT_USER_AGENT):
        self.base_url = base_url
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)
        # Queries https://export.arxiv.org/api/query with id_list
        self.client = arxiv.Client(
            page_size=1,
            delay_seconds=delay_seconds,
            num_retries=max_retries
        )
        self.session = build_session(
            user_agent=user_agent,
            max_retries=max_retries,
            backoff_factor=backoff_factor
        )

    def _fetch_entry(self, paper_id: str) -> arxiv.Result:
        """Fetch the API entry for a single arXiv id."""
        search = arxiv.Search(id_list=[paper_id])
        try:
            entry = next(self.client.results(search), None)
        except (arxiv.ArxivError, requests.exceptions.RequestException) as e:
            _fail(f"Failed to query arXiv API for {paper_id}: {e}")
        if entry is None:
            _fail(f"arXiv API returned no entry for {paper_id}")
        return entry

    def fetch(self, paper_id: str) -> PaperRecord:
        """Fetch and normalize metadata for an arXiv id such as ``2301.00001``."""
        entry = self._fetch_entry(paper_id)

        abstract_url = f"{self.base_url}/abs/{paper_id}"
        html = _get_text(self.session, abstract_url, self.timeout, Provider.ARXIV)
        soup = BeautifulSoup(html, 'html.parser')

        bibtex = _get_text(self.session, f"{self.base_url}/bibtex/{paper_id}",
                           self.timeout, Provider.ARXIV)

        doi_link = _require(soup.select_one('a#arxiv-doi-link'), "DOI link", Provider.ARXIV, paper_id)
        doi = doi_link.get('href')
        if not doi:
            _fail(f"arXiv page for {paper_id} has a DOI link without target")

        comment_node = soup.select_one('td.comments')
        comment = comment_node.get_text() if comment_node is not None else ""

        year, month = split_publication_date(entry.published.isoformat())

        self.logger.debug(f"Fetched arXiv metadata for {paper_id}")
        return PaperRecord(
            title=_meta_content(soup, {'name': 'citation_title'}, Provider.ARXIV, paper_id),
            authors=[{'name': author.name} for author in entry.authors],
            abstract=_meta_content(soup, {'property': 'og:description'}, Provider.ARXIV, paper_id),
            year=year,
            month=month,
            bibtex=bibtex,
            doi=doi,
            venue=Provider.ARXIV.value,
            comment=comment or SENTINEL,
            abstract_url=abstract_url,
            pdf_url=f"{self.base_url}/pdf/{paper_id}",
            html_url=f"{self.base_url}/html/{paper_id}",
        )


class ACLAnthologyClient:
    """Client scraping paper pages from the ACL Anthology."""

    def __init__(self, base_url: str = ACL_ANTHOLOGY_BASE_URL, timeout: int = 15,
                 max_retries: int = 3, backoff_factor: float = 0.5,
                 user_agent: str = DEFAULT_USER_AGENT):
        self.base_url = base_url
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)
        self.session = build_session(
            user_agent=user_agent,
            max_retries=max_retries,
            backoff_factor=backoff_factor
        )

    def fetch(self, paper_id: str) -> PaperRecord:
        """Fetch and normalize metadata for an anthology id such as ``2023.acl-long.1``."""
        provider = Provider.ACL_ANTHOLOGY
        abstract_url = f"{self.base_url}/{paper_id}"
        soup = BeautifulSoup(_get_text(self.session, abstract_url, self.timeout, provider), 'html.parser')

        authors = [
            {'name': node.get('content', '')}
            for node in soup.find_all('meta', attrs={'name': 'citation_author'})
        ]

        # Month keeps its leading zero here, unlike arXiv and Semantic Scholar
        publication_date = _meta_content(soup, {'name': 'citation_publication_date'}, provider, paper_id)
        year, month = split_publication_date(publication_date, strip_month_zero=False)

        abstract_node = soup.select_one('div.acl-abstract span')
        abstract = abstract_node.get_text() if abstract_node is not None else ""
        bibtex = _require(soup.select_one('pre#citeBibtexContent'), "BibTeX block", provider, paper_id)
        venue = _require(soup.select_one('a[href^="/venues/"]'), "venue link", provider, paper_id)

        doi_node = soup.find('meta', attrs={'name': 'citation_doi'})
        doi = doi_node.get('content') if doi_node is not None else None

        self.logger.debug(f"Fetched ACL Anthology metadata for {paper_id}")
        return PaperRecord(
            title=_meta_content(soup, {'name': 'citation_title'}, provider, paper_id),
            authors=authors,
            abstract=abstract,
            year=year,
            month=month,
            bibtex=bibtex.get_text(),
            doi=doi or SENTINEL,
            venue=venue.get_text(),
            comment=SENTINEL,
            abstract_url=abstract_url,
            pdf_url=f"{self.base_url}/{paper_id}.pdf",
            html_url=SENTINEL,
        )


class SemanticScholarClient:
    """Client for the Semantic Scholar Graph API with rate-limit aware retries."""

    def __init__(self, api_key: str = None, base_url: str = SEMANTIC_SCHOLAR_BASE_URL,
                 timeout: int = 15, max_attempts: int = MAX_ATTEMPTS,
                 user_agent: str = DEFAULT_USER_AGENT):
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.logger = logging.getLogger(__name__)

        headers = {'Accept': 'application/json'}
        if api_key:
            headers['x-api-key'] = api_key

        # Status codes are handled by the retry policy, urllib3 only retries connections
        self.session = build_session(
            user_agent=user_agent,
            status_forcelist=(),
            respect_retry_after_header=False,
            headers=headers
        )

    def fetch_by_id(self, paper_id: str) -> Tuple[PaperRecord, Dict[str, Any]]:
        """Fetch a paper by Semantic Scholar id (or any id prefix the API accepts)."""
        return self._fetch(paper_id)

    def fetch_by_url(self, url: str) -> Tuple[PaperRecord, Dict[str, Any]]:
        """Fetch a paper by the URL of any page Semantic Scholar knows about."""
        return self._fetch(f"URL:{quote(url, safe=':/')}")

    def _fetch(self, endpoint: str) -> Tuple[PaperRecord, Dict[str, Any]]:
        data = self._request(endpoint)
        external_ids = data.get('externalIds') or {}
        return self._parse_response(data, endpoint), external_ids

    def _request(self, endpoint: str) -> Dict[str, Any]:
        """GET the paper endpoint, retrying only on rate limiting."""
        url = f"{self.base_url}/paper/{endpoint}?fields={','.join(SEMANTIC_SCHOLAR_FIELDS)}"

        for attempt in range(1, self.max_attempts + 1):
            try:
                response = self.session.get(url, timeout=self.timeout)
            except requests.exceptions.RequestException as e:
                _fail(f"Failed to reach Semantic Scholar: {e}")

            decision = decide(response.status_code, attempt, self.max_attempts)

            if decision.action is RetryAction.SUCCEED:
                try:
                    return response.json()
                except ValueError as e:
                    _fail(f"Invalid JSON response from Semantic Scholar for {endpoint}: {e}")

            if decision.action is RetryAction.RETRY:
                self.logger.warning(
                    f"Rate limited by Semantic Scholar, waiting {decision.delay}s (attempt {attempt})"
                )
                time.sleep(decision.delay)
                continue

            self._raise_for_kind(decision.kind, response.status_code)

        self._raise_for_kind(RETRIES_EXHAUSTED, None)

    def _raise_for_kind(self, kind: str, status_code: Optional[int]) -> None:
        if kind == INVALID_REQUEST:
            error = ProviderRejectedError("Invalid request", kind, status_code)
        elif kind == NOT_FOUND:
            error = ProviderRejectedError("Paper not found", kind, status_code)
        elif kind == RETRIES_EXHAUSTED:
            error = RateLimitExceededError("Max retry exceeded", kind, status_code)
        else:
            error = UnexpectedStatusError(f"Unexpected status code: {status_code}", kind, status_code)
        self.logger.error(f"Semantic Scholar request failed: {error}")
        notify(str(error))
        raise error

    def _parse_response(self, data: Dict[str, Any], endpoint: str) -> PaperRecord:
        """Parse a Semantic Scholar paper object into a PaperRecord."""
        publication_date = data.get('publicationDate')
        if not publication_date:
            _fail(f"Semantic Scholar has no publication date for {endpoint}")

        bibtex = (data.get('citationStyles') or {}).get('bibtex')
        if not bibtex:
            _fail(f"Semantic Scholar has no BibTeX for {endpoint}")

        year, month = split_publication_date(publication_date)
        external_ids = data.get('externalIds') or {}

        return PaperRecord(
            title=data.get('title') or "",
            authors=[{'name': author.get('name', '')} for author in data.get('authors') or []],
            abstract=data.get('abstract') or "",
            year=year,
            month=month,
            bibtex=bibtex,
            doi=external_ids.get('DOI') or SENTINEL,
            venue=data.get('venue') or Provider.SEMANTIC_SCHOLAR.value,
            comment=SENTINEL,
            abstract_url=data.get('url') or "",
            pdf_url=SENTINEL,
            html_url=SENTINEL,
        )


class PaperInfoFetcher:
    """Routes paper URLs to the matching provider client."""

    def __init__(self, arxiv_config: Dict = None, acl_anthology_config: Dict = None,
                 semantic_scholar_config: Dict = None):
        self.logger = logging.getLogger(__name__)
        arxiv_config = arxiv_config or {}
        acl_anthology_config = acl_anthology_config or {}
        semantic_scholar_config = semantic_scholar_config or {}

        self.arxiv_client = ArxivClient(
            base_url=arxiv_config.get('base_url', ARXIV_BASE_URL),
            timeout=arxiv_config.get('timeout', 15),
            delay_seconds=arxiv_config.get('rate_limit', 3.0)
        )
        self.acl_client = ACLAnthologyClient(
            base_url=acl_anthology_config.get('base_url', ACL_ANTHOLOGY_BASE_URL),
            timeout=acl_anthology_config.get('timeout', 15)
        )
        self.semantic_scholar_client = SemanticScholarClient(
            api_key=semantic_scholar_config.get('api_key'),
            base_url=semantic_scholar_config.get('base_url', SEMANTIC_SCHOLAR_BASE_URL),
            timeout=semantic_scholar_config.get('timeout', 15)
        )

    def _fetch_from(self, provider: Provider, paper_id: str) -> PaperRecord:
        if provider is Provider.ARXIV:
            return self.arxiv_client.fetch(paper_id)
        if provider is Provider.ACL_ANTHOLOGY:
            return self.acl_client.fetch(paper_id)
        raise ValueError(f"No direct client for provider: {provider}")

    def resolve(self, url: str) -> PaperRecord:
        """Resolve a paper URL into a canonical record."""
        provider, paper_id = classify(url)
        self.logger.info(f"Resolving {url} via {provider.value}")

        if provider in (Provider.ARXIV, Provider.ACL_ANTHOLOGY):
            return self._fetch_from(provider, paper_id)

        if provider is Provider.SEMANTIC_SCHOLAR:
            return self._resolve_semantic_scholar(paper_id)

        # Unknown hosts are looked up by URL without external id re-routing
        record, _ = self.semantic_scholar_client.fetch_by_url(url)
        return record

    def _resolve_semantic_scholar(self, paper_id: str) -> PaperRecord:
        """Prefer richer provider data when Semantic Scholar links to it."""
        record, external_ids = self.semantic_scholar_client.fetch_by_id(paper_id)

        for key, provider in EXTERNAL_ID_ROUTES:
            if key in external_ids:
                self.logger.info(f"Semantic Scholar paper {paper_id} has {key} id {external_ids[key]}, "
                                 f"re-routing to {provider.value}")
                return self._fetch_from(provider, external_ids[key])

        return record

    def fetch_paper_info(self, url: str) -> Dict[str, str]:
        """Resolve a URL and return the post-processed template variables."""
        return build_record(self.resolve(url), url)
