from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import parse_qs

from flask import Flask, jsonify, request

from motchill import config
from motchill.models import MetaRecord, slug_from_id
from motchill.scraper import MotchillScraper

logger = logging.getLogger(__name__)

MANIFEST = {
    "id": "org.vietsub.motchill",
    "version": "1.0.0",
    "name": "VietSub Motchill",
    "description": f"Vietnamese movies and TV shows from {config.SOURCE_HOST}",
    "types": ["movie", "series"],
    "resources": ["catalog", "meta", "stream"],
    "catalogs": [
        {
            "type": "movie",
            "id": "vietsub-movies",
            "name": "Vietnamese Movies",
            "extra": [{"name": "search", "isRequired": False}],
        },
        {
            "type": "series",
            "id": "vietsub-series",
            "name": "Vietnamese Series",
            "extra": [{"name": "search", "isRequired": False}],
        },
    ],
    "idPrefixes": [config.ID_PREFIX, "tt"],
}

app = Flask(__name__)
scraper = MotchillScraper()


def parse_content_id(content_id: str) -> tuple[str, Optional[int]]:
    """Split ``<id>[:<season>:<episode>]`` into the base id and episode number."""
    base, _, rest = content_id.partition(":")
    episode = None
    parts = rest.split(":") if rest else []
    if parts and parts[-1].isdigit():
        episode = int(parts[-1])
    return base, episode


def slug_for_id(base_id: str) -> Optional[str]:
    if base_id.startswith(config.ID_PREFIX):
        return slug_from_id(base_id) or None
    slug = scraper.mapping.slug_for(base_id)
    if slug:
        return slug
    entry = scraper.mapping.resolve(base_id)
    return entry.slug if entry else None


@app.after_request
def add_cors_headers(response):
    response.headers["Access-Control-Allow-Origin"] = "*"
    response.headers["Access-Control-Allow-Headers"] = "*"
    return response


@app.route("/")
def health():
    return "VietSub Stremio Addon is running!"


@app.route("/manifest.json")
def manifest():
    return jsonify(MANIFEST)


@app.route("/catalog/<content_type>/<catalog_id>.json")
@app.route("/catalog/<content_type>/<catalog_id>/<extra>.json")
def catalog(content_type: str, catalog_id: str, extra: str = ""):
    search = parse_qs(extra).get("search", [""])[0] or request.args.get("search", "")
    try:
        metas = scraper.get_catalog(content_type, search=search)
    except Exception:
        logger.exception("Catalog error for %s/%s", content_type, catalog_id)
        metas = []
    return jsonify({"metas": metas})


@app.route("/meta/<content_type>/<content_id>.json")
def meta(content_type: str, content_id: str):
    base_id, _ = parse_content_id(content_id)
    slug = slug_for_id(base_id)
    if not slug:
        logger.warning("No slug for meta id %s", content_id)
        return jsonify({"meta": {"id": content_id, "type": content_type, "name": "Unknown"}})
    try:
        record = scraper.get_meta(slug)
    except Exception:
        logger.exception("Meta error for %s", content_id)
        record = MetaRecord.minimal(slug, name="Error loading metadata").to_dict()
    return jsonify({"meta": record})


@app.route("/stream/<content_type>/<content_id>.json")
def stream(content_type: str, content_id: str):
    base_id, episode = parse_content_id(content_id)
    slug = slug_for_id(base_id)
    if not slug:
        logger.warning("No slug for stream id %s", content_id)
        return jsonify({"streams": []})
    try:
        streams = scraper.get_video_sources(slug, episode)
    except Exception:
        logger.exception("Stream error for %s", content_id)
        streams = []
    return jsonify({"streams": streams})


@app.route("/mappings.json")
def mappings():
    return jsonify({"mappings": [entry.to_dict() for entry in scraper.mapping.all()]})


@app.route("/mappings/<slug>.json", methods=["PUT", "POST"])
def upsert_mapping(slug: str):
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "No data provided"}), 400
    if not slug or slug.startswith(config.ID_PREFIX):
        return jsonify({"error": "Invalid slug"}), 400
    entry = scraper.mapping.upsert(
        slug,
        {
            "external_id": data.get("externalId", ""),
            "canonical_title": data.get("canonicalTitle", ""),
            "local_title": data.get("localTitle", ""),
            "aliases": data.get("aliases") or [],
        },
    )
    return jsonify({"mapping": entry.to_dict()})


def run(host: Optional[str] = None, port: Optional[int] = None):
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    host = host or config.HOST
    port = port or config.PORT
    logger.info("VietSub addon running on http://%s:%s", host, port)
    logger.info("Add to Stremio: http://%s:%s/manifest.json", host, port)
    app.run(debug=False, host=host, port=port, threaded=True)


if __name__ == "__main__":
    run()
