from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from motchill import config


def namespaced_id(slug: str) -> str:
    return f"{config.ID_PREFIX}{slug}"


def slug_from_id(content_id: str) -> str:
    return content_id.removeprefix(config.ID_PREFIX)


@dataclass(slots=True)
class CatalogEntry:
    slug: str
    title: str
    poster: str = ""


@dataclass(slots=True)
class MetaRecord:
    id: str
    type: str
    name: str
    poster: Optional[str] = None
    background: Optional[str] = None
    description: Optional[str] = None
    genres: Optional[List[str]] = None
    year: Optional[str] = None
    episode_count: int = 0
    episodes: List[int] = field(default_factory=list)
    aliases: List[str] = field(default_factory=list)

    @classmethod
    def minimal(cls, slug: str, name: str = "Unknown") -> "MetaRecord":
        return cls(id=namespaced_id(slug), type="movie", name=name)

    def to_dict(self) -> dict:
        data = {"id": self.id, "type": self.type, "name": self.name}
        for key in ("poster", "background", "description", "genres", "year"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        if self.type == "series" and self.episode_count:
            data["info"] = [f"Episodes: {self.episode_count}"]
            if self.episodes:
                data["videos"] = [
                    {
                        "id": f"{self.id}:1:{number}",
                        "title": f"Tập {number}",
                        "season": 1,
                        "episode": number,
                    }
                    for number in self.episodes
                ]
        if self.aliases:
            data["aliases"] = list(self.aliases)
        return data


@dataclass(slots=True)
class ServerOption:
    label: str
    is_active: bool = False


@dataclass(slots=True)
class ServerStream:
    label: str
    url: str
    is_active: bool = False


@dataclass(slots=True)
class PlayerState:
    file: str
    sources: List[dict] = field(default_factory=list)


@dataclass(slots=True)
class StreamRecord:
    name: str
    url: str

    def to_dict(self) -> dict:
        return {"name": self.name, "externalUrl": self.url}


@dataclass(slots=True)
class MappingEntry:
    slug: str
    external_id: str = ""
    canonical_title: str = ""
    local_title: str = ""
    aliases: List[str] = field(default_factory=list)

    def titles(self) -> List[str]:
        return [t for t in [self.canonical_title, self.local_title, *self.aliases] if t]

    def to_dict(self) -> dict:
        return {
            "slug": self.slug,
            "externalId": self.external_id,
            "canonicalTitle": self.canonical_title,
            "localTitle": self.local_title,
            "aliases": list(self.aliases),
        }
