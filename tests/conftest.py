from __future__ import annotations

import pytest

from motchill.mapping import default_mapping
from motchill.scraper import MotchillScraper
from tests.fakes import BASE, FakePage


@pytest.fixture
def opened_pages():
    return []


@pytest.fixture
def make_scraper(opened_pages):
    def factory(pages, players=None, default=None, mapping=None):
        def open_page():
            page = FakePage(pages, players, default)
            opened_pages.append(page)
            return page

        return MotchillScraper(
            mapping=mapping or default_mapping(),
            page_factory=open_page,
            base_url=BASE,
            listing_settle_ms=0,
            detail_settle_ms=0,
            player_settle_ms=0,
            probe_settle_ms=0,
        )

    return factory
