from __future__ import annotations

import logging
from typing import List, Optional

from motchill import config
from motchill.errors import PageError, ProbeFailure, ScrapeError
from motchill.mapping import TitleMapping, default_mapping
from motchill.models import CatalogEntry, MetaRecord, ServerOption, ServerStream, StreamRecord, namespaced_id
from motchill.parser import (
    extract_title,
    find_catalog_candidates,
    find_server_options,
    fold,
    make_soup,
    parse_meta,
)
from motchill.session import BrowserPage, PageFactory, with_session

logger = logging.getLogger(__name__)

CONTENT_TYPES = ("movie", "series")
STREAM_LANGUAGE = "VietSub"


class MotchillScraper:
    def __init__(
        self,
        mapping: Optional[TitleMapping] = None,
        page_factory: Optional[PageFactory] = None,
        base_url: Optional[str] = None,
        listing_settle_ms: Optional[int] = None,
        detail_settle_ms: Optional[int] = None,
        player_settle_ms: Optional[int] = None,
        probe_settle_ms: Optional[int] = None,
    ):
        self.mapping = mapping if mapping is not None else default_mapping()
        self.page_factory = page_factory
        self.base_url = (base_url or config.BASE_URL).rstrip("/")
        self.listing_settle_ms = config.LISTING_SETTLE_MS if listing_settle_ms is None else listing_settle_ms
        self.detail_settle_ms = config.DETAIL_SETTLE_MS if detail_settle_ms is None else detail_settle_ms
        self.player_settle_ms = config.PLAYER_SETTLE_MS if player_settle_ms is None else player_settle_ms
        self.probe_settle_ms = config.PROBE_SETTLE_MS if probe_settle_ms is None else probe_settle_ms

    def play_url(self, slug: str, episode: int = 1) -> str:
        return f"{self.base_url}/xem-phim-{slug}-tap-{episode}"

    # Catalog

    def get_catalog(self, content_type: str = "movie", search: str = "") -> List[dict]:
        if content_type not in CONTENT_TYPES:
            logger.warning("Unsupported catalog type %r", content_type)
            return []
        try:
            entries = with_session(self._harvest_listing, self.page_factory)
        except ScrapeError as exc:
            logger.error("Error scraping catalog: %s", exc)
            return []

        if search:
            needle = fold(search)
            entries = [e for e in entries if needle in fold(e.title)]

        catalog = []
        for entry in entries[: config.MAX_CATALOG_DETAILS]:
            try:
                meta = self._load_meta(entry.slug)
            except ScrapeError as exc:
                logger.warning("Detail fetch failed for %s, using listing data: %s", entry.slug, exc)
                meta = self._fallback_meta(entry, content_type)
            catalog.append(meta.to_dict())
        logger.info("Catalog %s: %d of %d candidates enriched", content_type, len(catalog), len(entries))
        return catalog

    def _harvest_listing(self, page: BrowserPage) -> List[CatalogEntry]:
        page.navigate(f"{self.base_url}/")
        page.wait_for(
            lambda: bool(find_catalog_candidates(page.content(), self.base_url, limit=1)),
            self.listing_settle_ms,
        )
        return find_catalog_candidates(page.content(), self.base_url)

    @staticmethod
    def _fallback_meta(entry: CatalogEntry, content_type: str) -> MetaRecord:
        return MetaRecord(
            id=namespaced_id(entry.slug),
            type=content_type,
            name=entry.title,
            poster=entry.poster,
            description=f"Vietnamese {content_type} from {config.SOURCE_HOST}",
        )

    # Meta

    def get_meta(self, slug: str) -> dict:
        try:
            return self._load_meta(slug).to_dict()
        except ScrapeError as exc:
            logger.error("Error scraping meta for %s: %s", slug, exc)
            return MetaRecord.minimal(slug).to_dict()

    def _load_meta(self, slug: str) -> MetaRecord:
        def work(page: BrowserPage) -> MetaRecord:
            page.navigate(f"{self.base_url}/{slug}")
            page.wait_for(lambda: extract_title(make_soup(page.content())) != "Unknown", self.detail_settle_ms)
            return parse_meta(page.content(), slug)

        meta = with_session(work, self.page_factory)
        entry = self.mapping.metadata_for(slug)
        if entry and entry.external_id:
            meta.id = entry.external_id
            meta.aliases = entry.titles()
        return meta

    # Streams

    def get_all_servers(self, slug: str, episode: int = 1) -> List[ServerStream]:
        episode = episode or 1
        try:
            return with_session(lambda page: self._probe_servers(page, slug, episode), self.page_factory)
        except ScrapeError as exc:
            logger.error("Error scraping servers from %s episode %s: %s", slug, episode, exc)
            return []

    def _probe_servers(self, page: BrowserPage, slug: str, episode: int) -> List[ServerStream]:
        page.navigate(self.play_url(slug, episode))
        page.wait_for(lambda: bool(find_server_options(page.content())), self.player_settle_ms)
        options = find_server_options(page.content())
        logger.info("Found %d server option(s) for %s episode %s", len(options), slug, episode)

        # Selecting a server reconfigures the single embedded player, so probes stay sequential.
        streams = []
        for option in options:
            try:
                url = self._probe(page, option)
            except (ProbeFailure, PageError) as exc:
                logger.warning("Server %r failed: %s", option.label, exc)
                url = ""
            streams.append(ServerStream(label=option.label, url=url, is_active=option.is_active))
        return streams

    def _probe(self, page: BrowserPage, option: ServerOption) -> str:
        logger.info("Testing server: %s", option.label)
        before = _player_url(page)
        if not page.click_by_text(option.label):
            raise ProbeFailure(f"No button labelled {option.label!r}")
        page.wait_for(lambda: _player_url(page) not in ("", before), self.probe_settle_ms)
        url = _player_url(page, strict=True)
        if not url:
            raise ProbeFailure(f"Player has no media for {option.label!r}")
        return url

    def get_video_sources(self, slug: str, episode: Optional[int] = None) -> List[dict]:
        prefix = f"{STREAM_LANGUAGE} - Tập {episode}" if episode else STREAM_LANGUAGE
        streams = [
            StreamRecord(name=f"{prefix} - {server.label}", url=server.url)
            for server in self.get_all_servers(slug, episode or 1)
            if server.url
        ]
        if not streams:
            logger.warning("No servers found for %s episode %s", slug, episode)
            return []
        logger.info("Found %d stream(s) for %s episode %s", len(streams), slug, episode)
        return [s.to_dict() for s in streams]


def _player_url(page: BrowserPage, strict: bool = False) -> str:
    try:
        state = page.read_player_state()
    except ProbeFailure:
        if strict:
            raise
        return ""
    if state is None:
        return ""
    if state.file:
        return state.file
    return next((s.get("file") for s in state.sources if s.get("file")), "")
