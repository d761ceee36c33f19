"""
types_models.py

Typed dataclasses for everything the provider reads from the backends, keeps
in its cache, or hands back to callers.

Purpose
-------
- Supply `from_dict()` factories to convert raw API JSON/dict into typed objects.
- Supply `to_dict()` so the cache can be serialized by an outer application.
- Keep cached entries in the same shape the mirrored API serves them
  (``name_id``, ``latest_modfile``, ``modfiles``), so one parser reads both.

Notes
-----
- Mod ids and file ids are plain ints.
- The official API nests the latest file under ``modfile`` and tags as
  ``[{"name": ...}]``; the mirror and the cache use ``latest_modfile`` and a
  plain list of tag names. `ModEntry.from_dict` accepts both.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List, Dict, Any, Set, Union

from .utils import parse_timestamp


# Enums
class RequiredStatus(str, Enum):
    """Whether every player in a lobby must have the mod installed."""
    REQUIRED_BY_ALL = "RequiredByAll"
    OPTIONAL = "Optional"


class ApprovalStatus(str, Enum):
    """Moderation level of a mod, ordered from most to least trusted."""
    VERIFIED = "Verified"
    APPROVED = "Approved"
    SANDBOX = "Sandbox"


def _tag_names(raw: Any) -> Set[str]:
    names: Set[str] = set()
    for t in raw or []:
        if isinstance(t, dict):
            if t.get("name"):
                names.add(t["name"])
        elif t:
            names.add(str(t))
    return names


@dataclass(frozen=True)
class ModFile:
    """
    One uploaded file (build) of a mod. Immutable once observed.

    Attributes
    ----------
    id : int
        File id.
    date_added : int
        Upload time, unix seconds.
    version : Optional[str]
        Free-text version label chosen by the author.
    changelog : Optional[str]
        Free-text changelog.
    """
    id: int
    date_added: int = 0
    version: Optional[str] = None
    changelog: Optional[str] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ModFile":
        d = d or {}
        added = parse_timestamp(d.get("date_added"))
        return cls(
            id=int(d["id"]),
            date_added=int(added.timestamp()) if added else 0,
            version=d.get("version"),
            changelog=d.get("changelog"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "date_added": self.date_added,
            "version": self.version,
            "changelog": self.changelog,
        }


@dataclass(frozen=True)
class RemoteFile:
    """
    A file as returned by the single-file endpoint: the descriptor plus what is
    needed to download it.
    """
    file: ModFile
    filesize: Optional[int] = None
    download_url: Optional[str] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "RemoteFile":
        d = d or {}
        download = d.get("download") or {}
        url = download.get("binary_url") if isinstance(download, dict) else None
        size = d.get("filesize")
        return cls(
            file=ModFile.from_dict(d),
            filesize=int(size) if size is not None else None,
            download_url=url or d.get("download_url"),
        )

    @property
    def id(self) -> int:
        return self.file.id


@dataclass
class ModEntry:
    """
    Latest known metadata of one mod. The mod id is the cache key and is not
    stored on the entry itself.

    Attributes
    ----------
    slug : str
        URL slug (mod.io ``name_id``).
    name : str
        Display name.
    latest_file_id : Optional[int]
        The file the author marked as current, if any.
    files : List[ModFile]
        All files in backend order.
    tags : Set[str]
        Free-text tags.
    """
    slug: str
    name: str
    latest_file_id: Optional[int] = None
    files: List[ModFile] = field(default_factory=list)
    tags: Set[str] = field(default_factory=set)

    @classmethod
    def from_dict(cls, d: Dict[str, Any], files: Optional[List[Dict[str, Any]]] = None) -> "ModEntry":
        """
        Build an entry from a cached/mirrored document, or from an official API
        mod object plus its separately listed `files`.
        """
        d = d or {}
        latest = d.get("latest_modfile")
        if latest is None and isinstance(d.get("modfile"), dict):
            latest = d["modfile"].get("id")
        raw_files = files if files is not None else (d.get("modfiles") or [])
        return cls(
            slug=d.get("name_id") or d.get("slug") or "",
            name=d.get("name") or "",
            latest_file_id=int(latest) if latest is not None else None,
            files=[ModFile.from_dict(f) for f in raw_files],
            tags=_tag_names(d.get("tags")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name_id": self.slug,
            "name": self.name,
            "latest_modfile": self.latest_file_id,
            "modfiles": [f.to_dict() for f in self.files],
            "tags": sorted(self.tags),
        }

    def find_file(self, file_id: int) -> Optional[ModFile]:
        for f in self.files:
            if f.id == file_id:
                return f
        return None

    def __repr__(self) -> str:
        return f"<ModEntry slug={self.slug!r} latest={self.latest_file_id} files={len(self.files)}>"


@dataclass(frozen=True)
class ModSummary:
    """Minimal record returned by slug searches and batch id lookups."""
    id: int
    slug: Optional[str] = None
    name: Optional[str] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ModSummary":
        d = d or {}
        return cls(id=int(d["id"]), slug=d.get("name_id") or d.get("slug"), name=d.get("name"))


@dataclass(frozen=True)
class ModioTags:
    """Classification derived from a mod's free-text tags."""
    qol: bool = False
    gameplay: bool = False
    audio: bool = False
    visual: bool = False
    framework: bool = False
    versions: List[str] = field(default_factory=list)
    required_status: RequiredStatus = RequiredStatus.OPTIONAL
    approval_status: ApprovalStatus = ApprovalStatus.SANDBOX

    def to_dict(self) -> Dict[str, Any]:
        return {
            "qol": self.qol,
            "gameplay": self.gameplay,
            "audio": self.audio,
            "visual": self.visual,
            "framework": self.framework,
            "versions": list(self.versions),
            "required_status": self.required_status.value,
            "approval_status": self.approval_status.value,
        }


@dataclass
class ModInfo:
    """
    Fully resolved description of a mod at one pinned version.

    Attributes
    ----------
    provider : str
        Id of the provider that resolved it.
    reference : str
        Canonical identity of the mod: the unpinned ``slug#mod_id`` form.
    name : str
        Display name.
    versions : List[str]
        Pinned references for every known file, in backend order.
    resolution : str
        What to download: the exact pinned reference that was resolved.
    suggested_require : bool
        True when the mod is tagged ``RequiredByAll``.
    suggested_dependencies : List[str]
        Unpinned references of the mod's dependencies.
    tags : Optional[ModioTags]
        Tag classification.
    mod_id : Optional[int]
        Numeric mod id.
    """
    provider: str
    reference: str
    name: str
    versions: List[str]
    resolution: str
    suggested_require: bool = False
    suggested_dependencies: List[str] = field(default_factory=list)
    tags: Optional[ModioTags] = None
    mod_id: Optional[int] = None

    def __repr__(self) -> str:
        return f"<ModInfo reference={self.reference!r} name={self.name!r}>"


@dataclass(frozen=True)
class Resolved:
    """Terminal resolution result."""
    info: ModInfo


@dataclass(frozen=True)
class Redirect:
    """Non-terminal result: resolve `reference` next. Always more specific than the input."""
    reference: str


ResolutionResult = Union[Resolved, Redirect]


# Progress events
@dataclass(frozen=True)
class FetchProgress:
    """Cumulative byte count after one received chunk."""
    resolution: str
    bytes_downloaded: int
    total_size: Optional[int] = None


@dataclass(frozen=True)
class FetchComplete:
    """Last event of every fetch."""
    resolution: str


ProgressEvent = Union[FetchProgress, FetchComplete]
