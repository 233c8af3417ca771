"""
classifier.py
-------------

Domain classification for incoming user messages.

`KeywordDomainClassifier` decides whether a message is about US civics and
whether it asks about current officials, using fixed English and Vietnamese
keyword lists. Messages with any non-ASCII character are treated as in-domain,
since the keyword lists cannot cover every language; a false positive only
costs some unused context.

Any object with `is_in_domain(text)` and `is_about_current_officials(text)`
can stand in for it (see `DomainClassifier`).
"""

from typing import Protocol, Sequence

CIVICS_KEYWORDS = (
    "constitution", "government", "president", "congress", "senate", "house",
    "amendment", "bill of rights", "declaration", "independence", "history",
    "citizenship", "naturalization", "civics", "america", "united states",
    "democracy", "republic", "federal", "state", "law", "rights", "freedom",
    "war", "colony", "founding", "capital", "flag", "anthem", "holiday",
    "vice president", "governor", "trump", "vance", "newsom",
    # Vietnamese
    "hiến pháp", "chính phủ", "tổng thống", "quốc hội", "thượng viện", "hạ viện",
    "tu chính", "tuyên ngôn", "độc lập", "lịch sử", "công dân", "nhập tịch",
    "dân chủ", "cộng hòa", "liên bang", "bang", "luật", "quyền", "tự do",
)

CURRENT_OFFICIALS_KEYWORDS = (
    "current president", "who is president", "president now", "trump",
    "current vice president", "who is vice president", "vice president now", "vance",
    "current governor", "who is governor", "governor now", "newsom",
    "who is the president", "who is the vice president", "who is the governor",
)


class DomainClassifier(Protocol):
    def is_in_domain(self, text: str) -> bool: ...

    def is_about_current_officials(self, text: str) -> bool: ...


def _contains_any(text: str, keywords: Sequence[str]) -> bool:
    lowered = text.lower()
    return any(keyword in lowered for keyword in keywords)


def has_non_ascii(text: str) -> bool:
    return any(ord(char) > 127 for char in text)


class KeywordDomainClassifier:
    """Keyword-list classifier (English + Vietnamese)."""

    def __init__(
        self,
        civics_keywords: Sequence[str] = CIVICS_KEYWORDS,
        officials_keywords: Sequence[str] = CURRENT_OFFICIALS_KEYWORDS,
    ):
        self.civics_keywords = civics_keywords
        self.officials_keywords = officials_keywords

    def is_in_domain(self, text: str) -> bool:
        if _contains_any(text, self.civics_keywords):
            return True
        return has_non_ascii(text)

    def is_about_current_officials(self, text: str) -> bool:
        return _contains_any(text, self.officials_keywords)
