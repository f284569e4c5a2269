from typing import Iterable, Protocol

from bookreview.core.config import settings

DEFAULT_SPOILER_KEYWORDS = (
    "ending",
    "dies",
    "death",
    "killed",
    "murder",
    "twist",
    "surprise",
    "reveal",
    "secret",
    "plot twist",
    "spoiler",
    "finale",
    "conclusion",
    "climax",
    "resolution",
)


class SpoilerClassifier(Protocol):
    def contains_spoilers(self, text: str) -> bool: ...


class KeywordSpoilerClassifier:
    """Flags text containing any keyword that usually signals plot disclosure."""

    def __init__(self, keywords: Iterable[str] = DEFAULT_SPOILER_KEYWORDS):
        self.keywords = tuple(keyword.lower() for keyword in keywords)

    def contains_spoilers(self, text: str) -> bool:
        lowered = text.lower()
        return any(keyword in lowered for keyword in self.keywords)


class NullSpoilerClassifier:
    """Never flags anything; used when detection is switched off."""

    def contains_spoilers(self, text: str) -> bool:
        return False


def get_spoiler_classifier() -> SpoilerClassifier:
    if settings.SPOILER_DETECTION_ENABLED:
        return KeywordSpoilerClassifier()
    return NullSpoilerClassifier()
