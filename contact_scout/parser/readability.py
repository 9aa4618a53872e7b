"""
Readability-style main content selection for rendered pages.

Each structural candidate gets a score from its text density, paragraph,
heading, image and list counts, and its class/id names. The best candidate
is used only when it clearly beats the threshold; otherwise the caller keeps
the whole ``<body>``. The weights below are the heuristic's contract.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Union

from bs4 import BeautifulSoup
from bs4.element import Tag

from contact_scout.parser.html_parser import parse_markup

CANDIDATE_SELECTOR = (
    "div, section, article, main, .content, #content, .post, .article, "
    ".page-content, .entry-content"
)

TEXT_CHARS_PER_POINT = 100
MAX_TEXT_POINTS = 20
PARAGRAPH_WEIGHT = 2
HEADING_WEIGHT = 3
IMAGE_WEIGHT = 1
LIST_WEIGHT = 2
POSITIVE_NAME_BONUS = 5
NEGATIVE_NAME_PENALTY = 10

NESTING_DEPTH = 3
MIN_CANDIDATE_SCORE = 10
MIN_CANDIDATE_TEXT = 200
SELECTION_THRESHOLD = 20

POSITIVE_NAMES = re.compile(r"content|article|post|entry|text|body|column|main|page", re.I)
NEGATIVE_NAMES = re.compile(
    r"comment|meta|footer|footnote|sidebar|widget|banner|ad|promo|navigation|nav|menu", re.I
)


@dataclass(frozen=True, slots=True)
class Candidate:
    element: Tag
    score: int
    text_length: int


def _class_and_id(el: Tag) -> str:
    classes = el.get("class") or []
    if isinstance(classes, str):
        classes = [classes]
    el_id = el.get("id") or ""
    return f"{' '.join(classes)} {el_id}"


def score_element(el: Tag) -> tuple[int, int]:
    """Return ``(score, text_length)`` for a single element."""
    text_length = len(el.get_text().strip())
    score = min(text_length // TEXT_CHARS_PER_POINT, MAX_TEXT_POINTS)
    score += len(el.find_all("p")) * PARAGRAPH_WEIGHT
    score += len(el.find_all(["h1", "h2", "h3", "h4", "h5", "h6"])) * HEADING_WEIGHT
    score += len(el.find_all("img")) * IMAGE_WEIGHT
    score += len(el.find_all(["ul", "ol"])) * LIST_WEIGHT

    names = _class_and_id(el)
    if POSITIVE_NAMES.search(names):
        score += POSITIVE_NAME_BONUS
    if NEGATIVE_NAMES.search(names):
        score -= NEGATIVE_NAME_PENALTY
    return score, text_length


def _nested_in_positive(el: Tag) -> bool:
    parent = el.parent
    for _ in range(NESTING_DEPTH):
        if not isinstance(parent, Tag) or isinstance(parent, BeautifulSoup):
            return False
        if POSITIVE_NAMES.search(_class_and_id(parent)):
            return True
        parent = parent.parent
    return False


def score_candidates(soup: Union[BeautifulSoup, Tag]) -> List[Candidate]:
    """Qualifying candidates ranked by score; equal scores keep document order."""
    ranked: List[Candidate] = []
    for el in soup.select(CANDIDATE_SELECTOR):
        score, text_length = score_element(el)
        if score <= MIN_CANDIDATE_SCORE or text_length <= MIN_CANDIDATE_TEXT:
            continue
        if _nested_in_positive(el):
            continue
        ranked.append(Candidate(element=el, score=score, text_length=text_length))
    ranked.sort(key=lambda c: c.score, reverse=True)
    return ranked


def select_main_content(markup: Union[str, BeautifulSoup]) -> Optional[Tag]:
    """Highest-scoring subtree, or ``None`` when nothing clears the threshold."""
    soup = parse_markup(markup) if isinstance(markup, str) else markup
    ranked = score_candidates(soup)
    if ranked and ranked[0].score > SELECTION_THRESHOLD:
        return ranked[0].element
    return None


__all__ = [
    "Candidate",
    "score_element",
    "score_candidates",
    "select_main_content",
    "CANDIDATE_SELECTOR",
]
