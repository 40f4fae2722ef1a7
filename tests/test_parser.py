from motchill.parser import (
    extract_genres,
    find_catalog_candidates,
    find_server_options,
    make_soup,
    parse_meta,
    slug_from_href,
)

BASE = "https://motchilltv.chat"

DETAIL_PAGE = """
<html><head><meta property="og:image" content="https://cdn.example/og.jpg"></head><body>
  <div class="title">Side title</div>
  <h1>  Còn Ra Thể Thống Gì Nữa  </h1>
  <div class="movie-poster"><img data-src="https://cdn.example/poster.jpg"></div>
  <img class="banner-wide" src="https://cdn.example/banner.jpg">
  <div class="description">A palace comedy.</div>
  <span class="release-year">Năm: 2025</span>
  <a href="/the-loai/co-trang">Cổ Trang</a>
  <a href="/the-loai/hai-huoc">Hài Hước</a>
  <a href="/the-loai/co-trang">Cổ Trang</a>
  <a href="/xem-phim-con-ra-the-thong-gi-nua-tap-1">1</a>
  <a href="/xem-phim-con-ra-the-thong-gi-nua-tap-2">2</a>
  <a href="/xem-phim-con-ra-the-thong-gi-nua-tap-3">3</a>
</body></html>
"""


def test_parse_meta_reads_every_field():
    meta = parse_meta(DETAIL_PAGE, "con-ra-the-thong-gi-nua")
    assert meta.id == "vietsub-con-ra-the-thong-gi-nua"
    assert meta.name == "Còn Ra Thể Thống Gì Nữa"
    assert meta.poster == "https://cdn.example/poster.jpg"
    assert meta.background == "https://cdn.example/banner.jpg"
    assert meta.description == "A palace comedy."
    assert meta.genres == ["Cổ Trang", "Hài Hước"]
    assert meta.year == "2025"
    assert meta.type == "series"
    assert meta.episode_count == 3
    assert meta.episodes == [1, 2, 3]


def test_parse_meta_defaults_on_empty_page():
    meta = parse_meta("<html><body><p>nothing here</p></body></html>", "bare")
    assert meta.name == "Unknown"
    assert meta.type == "movie"
    assert meta.episode_count == 1
    assert meta.poster == ""
    assert meta.background == ""
    assert meta.genres == ["Vietnamese", "Asian"]
    assert meta.year == ""
    assert meta.description == "Vietnamese movie from motchilltv.chat"


def test_missing_description_fallback_names_series_type():
    meta = parse_meta('<h1>Show</h1><a href="/xem-phim-show-tap-1">1</a>', "show")
    assert meta.description == "Vietnamese series from motchilltv.chat"


def test_description_truncated_and_title_falls_back_to_class():
    html = f'<div class="title">Only a title class</div><div class="summary">{"x" * 800}</div>'
    meta = parse_meta(html, "long")
    assert meta.name == "Only a title class"
    assert len(meta.description) == 500


def test_poster_falls_back_to_og_image_and_backdrop_to_poster():
    html = '<html><head><meta property="og:image" content="https://cdn.example/og.jpg"></head><body><h1>X</h1></body></html>'
    meta = parse_meta(html, "x")
    assert meta.poster == "https://cdn.example/og.jpg"
    assert meta.background == meta.poster


def test_genres_capped_at_five():
    links = "".join(f'<a href="/the-loai/g{i}">Genre {i}</a>' for i in range(8))
    assert extract_genres(make_soup(links)) == [f"Genre {i}" for i in range(5)]


def test_slug_from_href():
    assert slug_from_href("/phim-hay", BASE) == "phim-hay"
    assert slug_from_href("https://motchilltv.chat/phim-hay/?ref=home", BASE) == "phim-hay"
    assert slug_from_href("https://elsewhere.example/phim-hay", BASE) == ""
    assert slug_from_href("/", BASE) == ""


def test_catalog_candidates_filter_and_dedupe():
    html = """
    <a href="/phim-mot"><img src="/p1.jpg"><span>Phim Một</span></a>
    <a href="/phim-mot"><img src="/p1b.jpg"><span>Phim Một (again)</span></a>
    <a href="https://motchilltv.chat/phim-hai"><img data-src="/p2.jpg">Phim Hai</a>
    <a href="/the-loai/hanh-dong"><img src="/g.jpg">Hành Động</a>
    <a href="/quoc-gia/han-quoc"><img src="/c.jpg">Hàn Quốc</a>
    <a href="/tag/hot"><img src="/t.jpg">Hot tag</a>
    <a href="/search?q=x"><img src="/s.jpg">Search link</a>
    <a href="/phim-ba">Phim Ba without image</a>
    <a href="/ab"><img src="/ab.jpg">ab</a>
    <a href="https://ads.example/x"><img src="/ad.jpg">External ad</a>
    <a href="#top"><img src="/top.jpg">Back to top</a>
    """
    entries = find_catalog_candidates(html, BASE)
    assert [e.slug for e in entries] == ["phim-mot", "phim-hai"]
    assert entries[0].title == "Phim Một"
    assert entries[0].poster == "/p1.jpg"
    assert entries[1].poster == "/p2.jpg"


def test_catalog_candidates_capped_at_fifty():
    html = "".join(f'<a href="/phim-{i}"><img src="/p{i}.jpg">Phim số {i}</a>' for i in range(70))
    entries = find_catalog_candidates(html, BASE)
    assert len(entries) == 50
    assert len({e.slug for e in entries}) == 50
    assert entries[0].slug == "phim-0"


def test_server_options_discovery():
    html = """
    <button class="px-2 bg-[#A3765D] text-white">Vietsub #1</button>
    <button class="px-2">Thuyết Minh #1</button>
    <button>Server 2</button>
    <button>Đăng nhập</button>
    <button>   </button>
    <button>Server with a label that is far too long to be a real option</button>
    <button>Vietsub #1</button>
    """
    options = find_server_options(html)
    assert [(o.label, o.is_active) for o in options] == [
        ("Vietsub #1", True),
        ("Thuyết Minh #1", False),
        ("Server 2", False),
    ]


def test_server_options_empty_page():
    assert find_server_options("<div>No player</div>") == []


def test_malformed_href_is_skipped():
    assert slug_from_href("http://[bad", BASE) == ""
    html = '<a href="http://[bad"><img src="/x.jpg">Broken link</a><a href="/phim-ok"><img src="/ok.jpg">Phim Ok</a>'
    assert [e.slug for e in find_catalog_candidates(html, BASE)] == ["phim-ok"]
