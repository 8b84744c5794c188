"""
Fuzzy text location for model-quoted passages.
Quoted text from the model drifts from the source wording, so the locator
degrades from exact search to ever smaller fragments and only ever marks
the fragment it actually matched.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional

logger = logging.getLogger(__name__)

# Punctuation trimmed from keyword tokens before searching
_TOKEN_PUNCTUATION = ".,;:!?\"'()[]{}<>„“”‚‘’«»–-"


class MatchTier(str, Enum):
    """Fallback tier that produced a match, strongest first."""
    EXACT = "exact"
    CASE_INSENSITIVE = "case_insensitive"
    PREFIX = "prefix"
    KEYWORD = "keyword"


@dataclass(frozen=True)
class TextMatch:
    """Located [start, end) range in the searched document."""
    start: int
    end: int
    tier: MatchTier

    @property
    def length(self) -> int:
        return self.end - self.start


class TextLocator:
    """
    Finds the best-matching span for a needle in a document.

    Cascade (first hit wins):
    1. Exact, case-sensitive substring.
    2. Case-insensitive substring.
    3. Case-insensitive search for the first ``prefix_length`` characters;
       the span covers only the prefix.
    4. First whitespace token of at least ``min_keyword_length`` characters
       found case-insensitively; the span covers only that token.

    Offsets are Python string indices (code points) into the original document.
    """

    def __init__(self, prefix_length: int = 20, min_keyword_length: int = 4):
        if prefix_length < 1 or min_keyword_length < 1:
            raise ValueError("prefix_length and min_keyword_length must be positive")
        self.prefix_length = prefix_length
        self.min_keyword_length = min_keyword_length

    def locate(self, document: str, needle: str) -> Optional[TextMatch]:
        """Return the matched range, or None when the needle cannot be anchored."""
        if not document or not needle or not needle.strip():
            return None

        index = document.find(needle)
        if index >= 0:
            return TextMatch(index, index + len(needle), MatchTier.EXACT)

        match = self._search_ignore_case(document, needle)
        if match:
            return TextMatch(match.start(), match.end(), MatchTier.CASE_INSENSITIVE)

        prefix = needle[:min(self.prefix_length, len(needle))]
        if prefix.strip():
            match = self._search_ignore_case(document, prefix)
            if match:
                logger.debug(f"Prefix match for {prefix!r} at {match.start()}")
                return TextMatch(match.start(), match.end(), MatchTier.PREFIX)

        for token in self._keywords(needle):
            match = self._search_ignore_case(document, token)
            if match:
                logger.debug(f"Keyword match for {token!r} at {match.start()}")
                return TextMatch(match.start(), match.end(), MatchTier.KEYWORD)

        return None

    def _keywords(self, needle: str) -> Iterator[str]:
        for raw in needle.split():
            token = raw.strip(_TOKEN_PUNCTUATION)
            if len(token) >= self.min_keyword_length:
                yield token

    @staticmethod
    def _search_ignore_case(document: str, fragment: str) -> Optional[re.Match]:
        # re keeps offsets aligned with the original string, unlike str.lower()
        return re.search(re.escape(fragment), document, re.IGNORECASE)


_default_locator = TextLocator()


def locate(document: str, needle: str) -> Optional[TextMatch]:
    """Locate ``needle`` in ``document`` with the default cascade settings."""
    return _default_locator.locate(document, needle)
