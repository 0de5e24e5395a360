"""Crawl orchestrator: listing pages -> parts -> practice page -> storage.

One orchestrator serves both reading and listening tests. The paging loop,
identifier derivation and pacing are shared; only the practice-page
extraction differs by content type.
"""

import asyncio
import logging
from datetime import datetime
from typing import TYPE_CHECKING
from urllib.parse import urlencode, urljoin, urlparse, urlunparse

from ieltsbank.config import settings
from ieltsbank.errors import AuthenticationExpiredError, ListingParseError, ParseError
from ieltsbank.models.test import ContentType

from .client import Credentials, FetchClient, RetryPolicy
from .models import CrawledSection, CrawledTest, CrawlResult, ListingItem, SaveOutcome
from .parsers import (
    extract_audio_links,
    parse_listening_detail,
    parse_listing,
    parse_page_title,
    parse_parts,
    parse_reading_detail,
)

if TYPE_CHECKING:
    from ieltsbank.services.persistence import PersistenceGateway

logger = logging.getLogger(__name__)


def derive_test_location(link: str) -> tuple[str, str]:
    """Split a listing link into (crawl id, test base URL).

    Links look like `https://study4.com/tests/<crawl_id>/<slug>/`; the crawl
    id is the path segment above the trailing one.
    """
    parsed = urlparse(link)
    segments = [s for s in parsed.path.split("/") if s]
    if len(segments) < 2:
        raise ParseError(f"Cannot derive a test id from {link}")
    head = segments[:-1]
    base = urlunparse(parsed._replace(path="/" + "/".join(head), query="", fragment=""))
    return head[-1], base


def build_practice_url(test_base_url: str, part_ids: list[str]) -> str:
    """Practice page URL selecting every part: `.../practice/?part=1&part=2`."""
    query = urlencode([("part", part_id) for part_id in part_ids])
    return f"{test_base_url.rstrip('/')}/practice/?{query}"


class CrawlOrchestrator:
    """Crawls every test of one term, page by page, strictly in sequence.

    Paging stops at the first listing page without items. A failure on a
    listing page aborts the crawl; a failure on one item is logged and the
    crawl moves on to the next item.
    """

    def __init__(
        self,
        content_type: ContentType,
        client: FetchClient,
        gateway: "PersistenceGateway",
        base_url: str | None = None,
        step_delay: float | None = None,
        page_delay: float | None = None,
    ):
        """Initialize orchestrator.

        Args:
            content_type: Term to crawl (reading or listening)
            client: Authenticated fetch client
            gateway: Storage for crawled tests
            base_url: Site root, defaults to settings
            step_delay: Pause between sub-steps of an item, in seconds
            page_delay: Pause between listing pages, in seconds
        """
        self.content_type = content_type
        self.client = client
        self.gateway = gateway
        self.base_url = (base_url or settings.site_base_url).rstrip("/")
        self.step_delay = settings.step_delay if step_delay is None else step_delay
        self.page_delay = settings.page_delay if page_delay is None else page_delay

    def listing_url(self, page: int) -> str:
        path = urljoin(self.base_url + "/", settings.listing_path.lstrip("/"))
        return f"{path}?{urlencode({'term': self.content_type.value, 'page': page})}"

    async def _pause(self, seconds: float) -> None:
        if seconds > 0:
            await asyncio.sleep(seconds)

    async def fetch_listing(self, page: int) -> list[ListingItem]:
        """Fetch and parse one listing page.

        Raises:
            AuthenticationExpiredError: the site served its login page
            ListingParseError: fetching or parsing failed; the cause is attached
        """
        url = self.listing_url(page)
        try:
            html = await self.client.fetch(url)
            return parse_listing(html, self.base_url)
        except AuthenticationExpiredError:
            raise
        except Exception as e:
            logger.error(f"Error fetching or parsing listing page {url}: {e}")
            raise ListingParseError(url, e) from e

    async def crawl(self) -> CrawlResult:
        """Crawl all listing pages until one comes back empty."""
        result = CrawlResult(content_type=self.content_type)
        logger.info(f"Crawling {self.content_type.value} tests from {self.base_url}")

        page = 1
        while True:
            items = await self.fetch_listing(page)
            if not items:
                logger.info(f"End crawl {self.content_type.value}: page {page} is empty")
                break

            result.pages_crawled += 1
            result.items_found += len(items)
            logger.info(f"Page {page}: {len(items)} tests")

            for i, item in enumerate(items, 1):
                logger.info(f"Crawling test {i}/{len(items)}: {item.link}")
                try:
                    outcome = await self.process_item(item)
                except AuthenticationExpiredError:
                    result.completed_at = datetime.utcnow()
                    raise
                except Exception as e:
                    error_msg = f"Error crawling {item.link}: {e}"
                    logger.error(error_msg)
                    result.errors.append(error_msg)
                    continue

                if outcome.created:
                    result.tests_created += 1
                    result.questions_saved += outcome.questions_saved
                else:
                    result.tests_reused += 1

            await self._pause(self.page_delay)
            page += 1

        result.completed_at = datetime.utcnow()
        logger.info(result.summary())
        return result

    async def process_item(self, item: ListingItem) -> SaveOutcome:
        """Fetch parts and practice page of one listing item and store it."""
        crawl_id, test_base_url = derive_test_location(item.link)

        parts_html = await self.client.fetch(item.link)
        part_ids = [p.part_id for p in parse_parts(parts_html)]
        if not part_ids:
            raise ParseError(f"No parts found for test {crawl_id}")

        await self._pause(self.step_delay)
        practice_url = build_practice_url(test_base_url, part_ids)
        logger.info(f"Crawl practice link {practice_url}")

        await self._pause(self.step_delay)
        detail_html = await self.client.fetch(practice_url, referer=item.link)

        crawled = self.extract(detail_html, item, crawl_id, part_ids, practice_url)
        logger.info(
            f"Extracted {len(crawled.sections)} parts, "
            f"{crawled.total_questions} questions for test {crawl_id}"
        )
        return await self.gateway.save(crawled)

    def extract(
        self,
        html: str,
        item: ListingItem,
        crawl_id: str,
        part_ids: list[str],
        practice_url: str,
    ) -> CrawledTest:
        """Turn a practice page into a CrawledTest for this content type."""

        def part_at(index: int) -> str | None:
            return part_ids[index] if index < len(part_ids) else None

        crawled = CrawledTest(
            crawl_id=crawl_id,
            content_type=self.content_type,
            title=item.title,
            original_link=practice_url,
            info=item.info,
            part_id=part_ids[0] if part_ids else None,
        )

        if self.content_type == ContentType.READING:
            for index, section in enumerate(parse_reading_detail(html)):
                crawled.sections.append(
                    CrawledSection(
                        part_id=part_at(index),
                        title=section.title,
                        passage_html=section.passage_html,
                        questions_html=section.questions_html,
                        groups=section.groups,
                    )
                )
        else:
            crawled.title = parse_page_title(html) or item.title
            crawled.audio_links = extract_audio_links(html)
            for index, section in enumerate(parse_listening_detail(html)):
                crawled.sections.append(
                    CrawledSection(
                        part_id=part_at(index),
                        title=section.title or f"Part {index + 1}",
                        audio_links=section.audio_links,
                        groups=section.groups,
                    )
                )

        if not crawled.title:
            crawled.title = f"{self.content_type.value.title()} test {crawl_id}"
        return crawled


async def run_crawl(
    content_types: list[ContentType] | None = None,
    credentials: Credentials | None = None,
    max_retries: int | None = None,
    step_delay: float | None = None,
    page_delay: float | None = None,
) -> list[CrawlResult]:
    """Convenience function to crawl one or more terms into the configured database.

    Args:
        content_types: Terms to crawl (None = reading and listening)
        credentials: Session cookie pair, defaults to settings
        max_retries: Retry ceiling per request, defaults to settings
        step_delay: Pause between sub-steps of an item
        page_delay: Pause between listing pages

    Returns:
        One CrawlResult per term
    """
    from ieltsbank.db.database import async_session
    from ieltsbank.services.persistence import PersistenceGateway

    content_types = content_types or list(ContentType)
    policy = RetryPolicy() if max_retries is None else RetryPolicy(max_retries=max_retries)
    client = FetchClient(credentials=credentials, retry_policy=policy)
    gateway = PersistenceGateway(async_session)

    results = []
    for content_type in content_types:
        orchestrator = CrawlOrchestrator(
            content_type,
            client,
            gateway,
            step_delay=step_delay,
            page_delay=page_delay,
        )
        results.append(await orchestrator.crawl())
    return results
