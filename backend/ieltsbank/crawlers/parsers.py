"""HTML extraction for listing, part and practice pages.

All functions are pure: they take markup and return typed records from
`crawlers.models`. Site layout (study4.com):

- Listing: `.testitem-wrapper` cards, info line with clock / user-edit /
  comments icons separated by `|`
- Test overview: `#test-solutions ul li` links to `/parts/<id>/` (reading),
  `.part-list .part-item[data-id]` (listening)
- Practice page, reading: `.question-twocols` with passage on the left and
  `.question-group-wrapper` blocks on the right
- Practice page, listening: `.question-group` per track with `.question`
  nodes and `<audio><source>` players
"""

import logging
import re
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from ieltsbank.errors import ParseError
from ieltsbank.models.test import QuestionType

from .models import (
    ItemInfo,
    ListeningSection,
    ListingItem,
    ParsedGroup,
    ParsedOption,
    ParsedQuestion,
    PartRef,
    ReadingSection,
)

logger = logging.getLogger(__name__)

PART_ID_PATTERN = re.compile(r"parts/(\d+)/")
NUMBER_PATTERN = re.compile(r"\d+")
EDGE_WHITESPACE = re.compile(r"^\s+|\s+$", re.MULTILINE)

# Icon class -> (ItemInfo field, index in the pipe-split info line)
INFO_ICONS = {
    "fa-clock": ("duration", 0),
    "fa-user-edit": ("attempts", 1),
    "fa-comments": ("comments", 2),
}


def parse_html(html: str) -> BeautifulSoup:
    """Parse HTML content with lxml parser."""
    return BeautifulSoup(html, "lxml")


def _text(node: Tag | None) -> str:
    return node.get_text().strip() if node is not None else ""


def _inner_html(node: Tag | None) -> str:
    """Inner markup with each line trimmed and blank lines dropped."""
    if node is None:
        return ""
    return EDGE_WHITESPACE.sub("", node.decode_contents())


def _parse_number(raw: str, where: str) -> int:
    match = NUMBER_PATTERN.search(raw)
    if not match:
        raise ParseError(f"No question number in {where}: {raw!r}")
    return int(match.group())


def parse_listing(html: str, base_url: str) -> list[ListingItem]:
    """Extract test cards from a listing page.

    Args:
        html: Listing page markup
        base_url: Site root used to absolutize card links

    Returns:
        One item per card in document order; empty when the page has none
    """
    soup = parse_html(html)
    items = []

    for card in soup.select(".testitem-wrapper"):
        anchor = card.select_one("a.text-dark")
        href = anchor.get("href", "") if anchor else ""
        title = _text(card.select_one("h2.testitem-title"))

        info = ItemInfo()
        for icon_class, (field_name, index) in INFO_ICONS.items():
            icon = card.select_one(f".testitem-info .{icon_class}") or card.select_one(
                f".{icon_class}"
            )
            if icon is None or icon.parent is None:
                continue
            pieces = icon.parent.get_text().split("|")
            if index < len(pieces):
                setattr(info, field_name, pieces[index].strip())

        items.append(ListingItem(link=urljoin(base_url, href), title=title, info=info))

    return items


def parse_parts(html: str) -> list[PartRef]:
    """Extract part ids from a test overview page.

    Reading pages list solution links (`.../parts/<id>/...`); listening pages
    tag each part with `data-id`. Entries without an id are dropped.
    """
    soup = parse_html(html)
    parts: list[PartRef] = []
    seen: set[str] = set()

    for item in soup.select("#test-solutions ul li"):
        anchor = item.select_one("a")
        link = anchor.get("href", "") if anchor else ""
        match = PART_ID_PATTERN.search(link)
        if match and match.group(1) not in seen:
            seen.add(match.group(1))
            parts.append(PartRef(part_id=match.group(1)))

    for item in soup.select(".part-list .part-item"):
        part_id = str(item.get("data-id", "")).strip()
        if part_id and part_id not in seen:
            seen.add(part_id)
            parts.append(PartRef(part_id=part_id))

    return parts


def _parse_reading_question(node: Tag) -> ParsedQuestion:
    number = _parse_number(_text(node.select_one(".question-number strong")), "reading question")
    input_node = node.select_one("input")
    is_radio = input_node is not None and input_node.get("type") == "radio"

    question = ParsedQuestion(
        number=number,
        text=_text(node.select_one(".question-text")),
        type=QuestionType.RADIO if is_radio else QuestionType.TEXT,
        external_id=str(node.get("data-qid", "")),
    )
    if is_radio:
        question.options = []
        for option in node.select(".radio-option"):
            option_input = option.select_one("input")
            question.options.append(
                ParsedOption(
                    value=str(option_input.get("value", "")) if option_input else "",
                    label=_text(option.select_one("label")),
                )
            )
    return question


def parse_reading_detail(html: str) -> list[ReadingSection]:
    """Extract passages and question groups from a reading practice page."""
    soup = parse_html(html)
    sections = []

    for section in soup.select(".question-twocols"):
        left = section.select_one(".question-twocols-left")
        right = section.select_one(".question-twocols-right")

        groups = []
        if right is not None:
            for group_node in right.select(".question-group-wrapper"):
                context_node = group_node.select_one(".context-content")
                groups.append(
                    ParsedGroup(
                        context=_text(context_node) if context_node else None,
                        questions=[
                            _parse_reading_question(q)
                            for q in group_node.select(".question-wrapper")
                        ],
                    )
                )

        sections.append(
            ReadingSection(
                title=_text(left.select_one("p")) if left else "",
                passage_html=_inner_html(left),
                questions_html=_inner_html(right),
                groups=groups,
            )
        )

    logger.debug(
        f"Parsed {len(sections)} reading sections, "
        f"{sum(g.total_questions for s in sections for g in s.groups)} questions"
    )
    return sections


def _parse_listening_question(node: Tag) -> ParsedQuestion:
    answer = _text(node.select_one(".question-answer"))
    return ParsedQuestion(
        number=_parse_number(_text(node.select_one(".question-number")), "listening question"),
        text=_text(node.select_one(".question-text")),
        answer=answer or None,
        external_id=str(node.get("data-qid", "")),
    )


def extract_audio_links(html: str | Tag) -> list[str]:
    """Audio sources in document order, duplicates kept."""
    root = parse_html(html) if isinstance(html, str) else html
    return [
        source["src"] for source in root.select("audio source") if source.get("src")
    ]


def parse_listening_detail(html: str) -> list[ListeningSection]:
    """Extract tracks, questions and audio links from a listening practice page.

    A track with a heading or context block becomes a single group; otherwise
    each question is wrapped in its own group titled by the question text.
    """
    soup = parse_html(html)
    sections = []

    for track in soup.select(".question-group"):
        questions = [_parse_listening_question(q) for q in track.select(".question")]
        heading = _text(track.select_one(".question-group-title"))
        context_node = track.select_one(".context-content")

        if heading or context_node is not None:
            groups = [
                ParsedGroup(
                    title=heading or None,
                    context=_text(context_node) if context_node else None,
                    questions=questions,
                )
            ]
        else:
            groups = [
                ParsedGroup(title=q.text or f"Question {q.number}", questions=[q])
                for q in questions
            ]

        sections.append(
            ListeningSection(
                title=heading,
                groups=groups,
                audio_links=extract_audio_links(track),
            )
        )

    return sections


def parse_page_title(html: str) -> str:
    """Test title from a practice page, falling back to <title>."""
    soup = parse_html(html)
    heading = _text(soup.select_one("h1.test-title"))
    if heading:
        return heading
    return soup.title.get_text(strip=True) if soup.title else ""
