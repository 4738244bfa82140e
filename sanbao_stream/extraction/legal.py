"""Legal reference scanning — find statute links in message content.

The assistant cites articles as Markdown links with an ``article://``
scheme, e.g. ``[ст. 15 ГК РК](article://gk_rk/15)``. Scanning is
non-destructive: the links stay in the text and are additionally
surfaced as structured references for the article viewer.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

_LEGAL_REF_PATTERN = re.compile(r"\[([^\]]+)\]\(article://([^/)\s]+)/([^)\s]+)\)")


@dataclass(frozen=True)
class LegalReference:
    """A link to one article of a legal code.

    Attributes:
        code: Code identifier (e.g. ``gk_rk``).
        article: Article number as written (e.g. ``15``, ``152.1``).
        display_text: Link text shown inline.
    """

    code: str
    article: str
    display_text: str

    @property
    def uri(self) -> str:
        return f"article://{self.code}/{self.article}"


def has_legal_references(content: str) -> bool:
    """Whether content contains at least one article link."""
    return _LEGAL_REF_PATTERN.search(content) is not None


def extract_legal_references(content: str) -> list[LegalReference]:
    """Extract every article link in document order.

    Repeated links are not de-duplicated; each occurrence yields one
    reference.
    """
    return [
        LegalReference(code=m.group(2), article=m.group(3), display_text=m.group(1))
        for m in _LEGAL_REF_PATTERN.finditer(content)
    ]
