"""Post-processing of canonical records into template variables."""

from __future__ import annotations

import re
from typing import Dict, TYPE_CHECKING

from .errors import KeyExtractionError, notify
from .utils import author_names, linkify

if TYPE_CHECKING:
    from .metadata_fetcher import PaperRecord


BIBTEX_KEY_PATTERN = re.compile(r'\{(.+?),')


def extract_bibtex_key(bibtex: str) -> str:
    """Extract the citation key from raw BibTeX text.

    Args:
        bibtex: Entry such as ``@article{doe2020paper, title=...}``

    Returns:
        The citation key, e.g. ``doe2020paper``

    Raises:
        KeyExtractionError: If no ``{key,`` pattern is present
    """
    match = BIBTEX_KEY_PATTERN.search(bibtex or "")
    if not match:
        msg = "Could not find a citation key in BibTeX"
        notify(msg)
        raise KeyExtractionError(msg)
    return match.group(1)


def build_record(record: PaperRecord, original_url: str) -> Dict[str, str]:
    """Flatten a PaperRecord into the variables used by output templates.

    Adds the linkified author forms, replaces the author list with a
    comma-separated string, and attaches the citation key and the URL the
    lookup started from.
    """
    variables = record.to_dict()

    names = author_names(record.authors)
    linked = [linkify(name) for name in names]
    quoted = [f'"{author}"' for author in linked]

    variables['linkifiedAuthors'] = ', '.join(linked)
    variables['linkifiedAuthorsArray'] = f"[{', '.join(quoted)}]"
    variables['linkifiedAuthorsArrayBlock'] = '\n- ' + '\n- '.join(quoted)
    variables['authors'] = ', '.join(names)
    variables['bibtexKey'] = extract_bibtex_key(record.bibtex)
    variables['url'] = original_url

    return variables
