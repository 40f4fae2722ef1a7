from __future__ import annotations

import re
import unicodedata
from typing import Callable, List, Optional, Sequence, TypeVar
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

from motchill import config
from motchill.models import CatalogEntry, MetaRecord, ServerOption, namespaced_id

T = TypeVar("T")
Strategy = Callable[[BeautifulSoup], Optional[T]]

EXCLUDED_PATHS = ("/the-loai/", "/quoc-gia/", "/search", "/tag/")
SERVER_MARKERS = ("vietsub", "thuyết minh", "thuyetminh", "server")
# Tailwind class on the highlighted server button, e.g. "bg-[#A3765D]".
ACTIVE_MARKER = "#a3765d"
EPISODE_LINK = "a[href*='tap-']"
EPISODE_RE = re.compile(r"tap-(\d+)")
YEAR_RE = re.compile(r"\d{4}")
DEFAULT_GENRES = ["Vietnamese", "Asian"]
DESCRIPTION_LIMIT = 500
GENRE_LIMIT = 5


def make_soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "lxml")


def clean_text(value: str) -> str:
    return re.sub(r"\s+", " ", value).strip()


def element_text(element) -> str:
    return clean_text(element.get_text(" "))


def fold(value: str) -> str:
    """Case- and accent-insensitive form used for title comparisons."""
    value = unicodedata.normalize("NFKD", value.replace("đ", "d").replace("Đ", "D"))
    value = "".join(ch for ch in value if not unicodedata.combining(ch))
    return clean_text(value.casefold())


def slug_from_href(href: str, base_url: Optional[str] = None) -> str:
    base_url = base_url or config.BASE_URL
    try:
        parsed = urlparse(urljoin(base_url + "/", href.strip()))
    except ValueError:
        return ""
    if parsed.netloc and parsed.netloc != urlparse(base_url).netloc:
        return ""
    return parsed.path.strip("/")


def episode_from_href(href: str) -> Optional[int]:
    m = EPISODE_RE.search(href)
    return int(m.group(1)) if m else None


def first_match(strategies: Sequence[Strategy[T]], soup: BeautifulSoup, default: T) -> T:
    for strategy in strategies:
        value = strategy(soup)
        if value:
            return value
    return default


def text_of(selector: str) -> Strategy[str]:
    def strategy(soup: BeautifulSoup) -> Optional[str]:
        for element in soup.select(selector):
            text = element_text(element)
            if text:
                return text
        return None

    return strategy


def texts_of(selector: str, limit: int = GENRE_LIMIT) -> Strategy[List[str]]:
    def strategy(soup: BeautifulSoup) -> Optional[List[str]]:
        found: List[str] = []
        for element in soup.select(selector):
            text = element_text(element)
            if text and text not in found:
                found.append(text)
            if len(found) >= limit:
                break
        return found or None

    return strategy


def image_of(selector: str) -> Strategy[str]:
    def strategy(soup: BeautifulSoup) -> Optional[str]:
        for img in soup.select(selector):
            src = img.get("src") or img.get("data-src")
            if src and src.strip():
                return src.strip()
        return None

    return strategy


def meta_property(prop: str) -> Strategy[str]:
    def strategy(soup: BeautifulSoup) -> Optional[str]:
        tag = soup.find("meta", attrs={"property": prop})
        content = tag.get("content") if tag else None
        return clean_text(content) if content else None

    return strategy


def pattern_in(selector: str, pattern: re.Pattern, attr: Optional[str] = None) -> Strategy[str]:
    def strategy(soup: BeautifulSoup) -> Optional[str]:
        for element in soup.select(selector):
            haystack = element.get(attr, "") if attr else element.get_text(" ")
            m = pattern.search(haystack or "")
            if m:
                return m.group(0)
        return None

    return strategy


TITLE_STRATEGIES = (text_of("h1"), text_of("h2"), text_of(".title"))
DESCRIPTION_STRATEGIES = (
    text_of(".description"),
    text_of(".summary"),
    text_of(".content"),
    text_of("[class*='intro']"),
    meta_property("og:description"),
)
POSTER_STRATEGIES = (
    image_of(".poster img"),
    image_of(".movie-poster img"),
    image_of("img[class*='poster']"),
    meta_property("og:image"),
)
BACKDROP_STRATEGIES = (image_of("img[class*='backdrop']"), image_of("img[class*='banner']"))
GENRE_STRATEGIES = (
    texts_of("a[href*='/the-loai/']"),
    texts_of("[class*='genre'] a"),
    texts_of("[class*='genre']"),
)
YEAR_STRATEGIES = (pattern_in("[class*='year']", YEAR_RE), pattern_in("time[datetime]", YEAR_RE, attr="datetime"))


def extract_title(soup: BeautifulSoup) -> str:
    return first_match(TITLE_STRATEGIES, soup, "Unknown")


def extract_description(soup: BeautifulSoup, content_type: str) -> str:
    description = first_match(DESCRIPTION_STRATEGIES, soup, "")
    if not description:
        return f"Vietnamese {content_type} from {config.SOURCE_HOST}"
    return description[:DESCRIPTION_LIMIT]


def extract_poster(soup: BeautifulSoup) -> str:
    return first_match(POSTER_STRATEGIES, soup, "")


def extract_backdrop(soup: BeautifulSoup, poster: str) -> str:
    return first_match(BACKDROP_STRATEGIES, soup, poster)


def extract_genres(soup: BeautifulSoup) -> List[str]:
    return first_match(GENRE_STRATEGIES, soup, list(DEFAULT_GENRES))[:GENRE_LIMIT]


def extract_year(soup: BeautifulSoup) -> str:
    return first_match(YEAR_STRATEGIES, soup, "")


def extract_episodes(soup: BeautifulSoup) -> tuple[int, List[int]]:
    """Return (episode link count, distinct episode numbers in page order)."""
    links = soup.select(EPISODE_LINK)
    numbers: List[int] = []
    for link in links:
        number = episode_from_href(link.get("href", ""))
        if number is not None and number not in numbers:
            numbers.append(number)
    return len(links), numbers


def parse_meta(html: str, slug: str) -> MetaRecord:
    soup = make_soup(html)
    link_count, numbers = extract_episodes(soup)
    content_type = "series" if link_count > 0 else "movie"
    poster = extract_poster(soup)
    return MetaRecord(
        id=namespaced_id(slug),
        type=content_type,
        name=extract_title(soup),
        poster=poster,
        background=extract_backdrop(soup, poster),
        description=extract_description(soup, content_type),
        genres=extract_genres(soup),
        year=extract_year(soup),
        episode_count=max(link_count, 1),
        episodes=numbers if content_type == "series" else [],
    )


def find_catalog_candidates(
    html: str, base_url: Optional[str] = None, limit: int = config.MAX_CATALOG_CANDIDATES
) -> List[CatalogEntry]:
    soup = make_soup(html)
    entries: List[CatalogEntry] = []
    seen = set()
    for link in soup.select("a[href]"):
        href = link["href"].strip()
        if not href.startswith(("/", "http")):
            continue
        if any(path in href for path in EXCLUDED_PATHS):
            continue
        img = link.find("img")
        poster = (img.get("src") or img.get("data-src")) if img else None
        if not poster:
            continue
        title = element_text(link)
        if not 2 < len(title) < 100:
            continue
        slug = slug_from_href(href, base_url)
        if not slug or slug in seen:
            continue
        seen.add(slug)
        entries.append(CatalogEntry(slug=slug, title=title, poster=poster.strip()))
        if len(entries) >= limit:
            break
    return entries


def find_server_options(html: str) -> List[ServerOption]:
    options: List[ServerOption] = []
    for button in make_soup(html).find_all("button"):
        # Matches the page's textContent.trim(), which the click step compares against.
        label = button.get_text().strip()
        if not label or len(label) >= 50:
            continue
        lowered = unicodedata.normalize("NFC", label).lower()
        if not any(marker in lowered for marker in SERVER_MARKERS):
            continue
        is_active = any(ACTIVE_MARKER in cls.lower() for cls in button.get("class") or [])
        existing = next((o for o in options if o.label == label), None)
        if existing:
            existing.is_active = existing.is_active or is_active
            continue
        options.append(ServerOption(label=label, is_active=is_active))
    return options
