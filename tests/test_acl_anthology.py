"""Tests for the ACL Anthology client."""

from unittest.mock import MagicMock

import pytest

from paperfetch.metadata_fetcher import ACLAnthologyClient
from paperfetch.errors import AdapterFetchError
from conftest import make_response


ANTHOLOGY_HTML = """
<html><head>
<meta name="citation_title" content="Better Parsing with Less Data" />
<meta name="citation_author" content="Smith, Jane" />
<meta name="citation_author" content="Lee, Bob" />
<meta name="citation_publication_date" content="2023/07" />
<meta name="citation_doi" content="10.18653/v1/2023.acl-long.1" />
</head><body>
<div class="card-body acl-abstract"><h5>Abstract</h5><span>We parse better.</span></div>
<dl><dd><a href="/venues/acl/">ACL</a></dd></dl>
<pre id="citeBibtexContent">@inproceedings{smith-lee-2023-better,
    title = "Better Parsing with Less Data",
}</pre>
</body></html>
"""


@pytest.fixture
def client():
    """Create a client whose session serves the anthology page."""
    client = ACLAnthologyClient()
    client.session = MagicMock()
    client.session.get.return_value = make_response(text=ANTHOLOGY_HTML)
    return client


class TestACLAnthologyClient:
    """Tests for ACLAnthologyClient.fetch."""

    def test_fetch_maps_all_fields(self, client):
        """Should read metadata from meta tags and page regions."""
        record = client.fetch("2023.acl-long.1")

        client.session.get.assert_called_once_with("https://aclanthology.org/2023.acl-long.1", timeout=15)
        assert record.title == "Better Parsing with Less Data"
        assert record.authors == [{"name": "Smith, Jane"}, {"name": "Lee, Bob"}]
        assert record.abstract == "We parse better."
        assert record.year == "2023"
        assert record.bibtex.startswith("@inproceedings{smith-lee-2023-better,")
        assert record.doi == "10.18653/v1/2023.acl-long.1"
        assert record.venue == "ACL"
        assert record.abstract_url == "https://aclanthology.org/2023.acl-long.1"
        assert record.pdf_url == "https://aclanthology.org/2023.acl-long.1.pdf"

    def test_month_keeps_leading_zero(self, client):
        """Month "07" should not be stripped for ACL Anthology."""
        assert client.fetch("2023.acl-long.1").month == "07"

    def test_comment_and_html_url_are_sentinels(self, client):
        """Fields the anthology does not expose should be a single space."""
        record = client.fetch("2023.acl-long.1")

        assert record.comment == " "
        assert record.html_url == " "

    def test_missing_doi_uses_sentinel(self, client):
        """Papers without a DOI should get the sentinel DOI."""
        html = ANTHOLOGY_HTML.replace('<meta name="citation_doi" content="10.18653/v1/2023.acl-long.1" />', '')
        client.session.get.return_value = make_response(text=html)

        assert client.fetch("2023.acl-long.1").doi == " "

    def test_missing_abstract_is_empty(self, client):
        """Pages without an abstract block should yield an empty abstract."""
        html = ANTHOLOGY_HTML.replace('<span>We parse better.</span>', '').replace('acl-abstract', 'other')
        client.session.get.return_value = make_response(text=html)

        record = client.fetch("2023.acl-long.1")

        assert record.abstract == ""
        assert record.title == "Better Parsing with Less Data"

    def test_missing_bibtex_raises(self, client):
        """A page without the BibTeX block should fail."""
        html = ANTHOLOGY_HTML.replace('id="citeBibtexContent"', 'id="other"')
        client.session.get.return_value = make_response(text=html)

        with pytest.raises(AdapterFetchError):
            client.fetch("2023.acl-long.1")

    def test_not_found_raises(self, client):
        """An HTTP 404 should propagate as AdapterFetchError."""
        client.session.get.return_value = make_response(status_code=404)

        with pytest.raises(AdapterFetchError):
            client.fetch("2023.acl-long.999")
