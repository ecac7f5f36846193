# src/orgedit/engine/links.py

"""
Hyperlinks.

Parses `[[target][description]]` links, classifies their targets and
resolves internal targets against a headline index supplied by the host.

Target classification:

    https://example.com         -> http
    file:notes.org / ./notes.org -> file-plain
    ./notes.org::42             -> file-with-line
    id:3F2A-...                 -> internal-id
    *Heading / #custom-id / txt -> internal-search
    file:notes.org::*Heading    -> internal-search (scoped to that file)
    mailto:..., news:...        -> unsupported
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Final, Optional, Protocol, Sequence

from .model import Range


# ---------------------------------------------------------------------
# Link syntax
# ---------------------------------------------------------------------

_LINK_RE = re.compile(r"\[\[(?P<target>[^\]\[]+)\](?:\[(?P<desc>[^\]\[]+)\])?\]")
_SCHEME_RE = re.compile(r"^(?P<scheme>[a-zA-Z][a-zA-Z0-9+.-]*):(?P<rest>.*)$")

_PATH_PREFIXES: Final[tuple[str, ...]] = ("/", "./", "../", "~/")


class LinkType(str, Enum):
    FILE_PLAIN = "file-plain"
    FILE_WITH_LINE = "file-with-line"
    INTERNAL_ID = "internal-id"
    HTTP = "http"
    INTERNAL_SEARCH = "internal-search"
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True, slots=True)
class LinkTarget:
    """
    A classified link target.

    `file` is set for file links and file-scoped searches; `line` for
    file-with-line; `search` holds the search string (`*Heading`,
    `#custom-id` or plain text) and `id` the id of an id: link.
    """

    raw: str
    type: LinkType
    file: Optional[str] = None
    line: Optional[int] = None
    id: Optional[str] = None
    search: Optional[str] = None

    def extract_target(self) -> str:
        """Text suitable as a default link description."""
        if self.search:
            return self.search.lstrip("*#").strip()
        if self.id:
            return self.id
        if self.file:
            return self.file
        return self.raw


@dataclass(frozen=True, slots=True)
class Link:
    target: LinkTarget
    description: Optional[str] = None
    range: Optional[Range] = None

    @classmethod
    def new(cls, target: str, description: Optional[str] = None) -> "Link":
        return cls(target=classify_target(target), description=description)

    def to_string(self) -> str:
        if self.description:
            return f"[[{self.target.raw}][{self.description}]]"
        return f"[[{self.target.raw}]]"

    @classmethod
    def at_pos(cls, line: str, col: int, line_number: int = 0) -> Optional["Link"]:
        """Return the link whose text covers column `col`, if any."""
        for link in parse_links_from_line(line, line_number):
            if link.range is not None and link.range.start_col <= col < link.range.end_col:
                return link
        return None


def parse_links_from_line(line: str, line_number: int) -> list[Link]:
    out: list[Link] = []
    for m in _LINK_RE.finditer(line):
        out.append(
            Link(
                target=classify_target(m.group("target")),
                description=m.group("desc"),
                range=Range(line_number, m.start(), line_number, m.end()),
            )
        )
    return out


def classify_target(raw: str) -> LinkTarget:
    """
    Classify a link target into exactly one LinkType.
    """
    target = raw.strip()

    m = _SCHEME_RE.match(target)
    if m and m.group("rest").startswith(":"):
        # "notes.org::12" is a path with a search option, not a scheme.
        m = None
    scheme = m.group("scheme").lower() if m else ""
    rest = m.group("rest") if m else target

    looks_like_path = target.startswith(_PATH_PREFIXES) or (
        "::" in target and not target.startswith(("*", "#"))
    )

    if scheme in ("http", "https"):
        return LinkTarget(raw=target, type=LinkType.HTTP)

    if scheme == "id":
        return LinkTarget(raw=target, type=LinkType.INTERNAL_ID, id=rest.strip())

    if scheme == "file" or (not scheme and looks_like_path):
        path, _, option = rest.partition("::")
        option = option.strip()
        if not option:
            return LinkTarget(raw=target, type=LinkType.FILE_PLAIN, file=path)
        if option.isdigit():
            return LinkTarget(raw=target, type=LinkType.FILE_WITH_LINE, file=path, line=int(option))
        return LinkTarget(raw=target, type=LinkType.INTERNAL_SEARCH, file=path, search=option)

    if scheme:
        return LinkTarget(raw=target, type=LinkType.UNSUPPORTED)

    return LinkTarget(raw=target, type=LinkType.INTERNAL_SEARCH, search=target)


# ---------------------------------------------------------------------
# Headline index (host collaborator)
# ---------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class HeadlineRef:
    """A headline somewhere in the indexed documents."""

    file: str
    line: int
    title: str
    id: Optional[str] = None
    text: str = ""


class HeadlineIndex(Protocol):
    def find_by_id(self, id: str) -> list[HeadlineRef]: ...

    def find_by_property_match(self, key: str, value: str) -> list[HeadlineRef]: ...

    def find_matching(self, target: str, file: Optional[str] = None) -> list[HeadlineRef]: ...


# ---------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------

class ResolutionStatus(str, Enum):
    RESOLVED = "resolved"
    NOT_FOUND = "not_found"
    AMBIGUOUS = "ambiguous"


@dataclass(frozen=True, slots=True)
class LinkResolution:
    status: ResolutionStatus
    candidates: tuple[HeadlineRef, ...] = field(default_factory=tuple)

    @property
    def headline(self) -> Optional[HeadlineRef]:
        if self.status is ResolutionStatus.RESOLVED:
            return self.candidates[0]
        return None

    @classmethod
    def from_candidates(cls, candidates: Sequence[HeadlineRef]) -> "LinkResolution":
        if not candidates:
            return cls(ResolutionStatus.NOT_FOUND)
        if len(candidates) > 1:
            return cls(ResolutionStatus.AMBIGUOUS, tuple(candidates))
        return cls(ResolutionStatus.RESOLVED, tuple(candidates))


def resolve_internal(
    target: LinkTarget,
    index: HeadlineIndex,
    *,
    current: Optional[HeadlineRef] = None,
) -> LinkResolution:
    """
    Resolve an internal-id or internal-search target.

    Search results exclude the current headline; id lookups do not.
    """
    if target.type is LinkType.INTERNAL_ID:
        return LinkResolution.from_candidates(index.find_by_id(target.id or ""))

    if target.type is not LinkType.INTERNAL_SEARCH:
        raise ValueError(f"Not an internal link: {target.raw}")

    search = target.search or ""
    if search.startswith("#"):
        candidates = index.find_by_property_match("CUSTOM_ID", search[1:])
    else:
        candidates = index.find_matching(search, file=target.file)

    if current is not None:
        candidates = [
            h
            for h in candidates
            if (h.file, h.line) != (current.file, current.line)
            and (current.id is None or h.id != current.id)
        ]
    return LinkResolution.from_candidates(candidates)


# ---------------------------------------------------------------------
# Stored links
# ---------------------------------------------------------------------

class LinkStore:
    """
    Links remembered for completion when inserting a new link.
    """

    def __init__(self) -> None:
        self._links: dict[str, str] = {}

    def store(self, target: str, description: str) -> None:
        self._links[target] = description

    def complete(self, prefix: str) -> list[str]:
        return [t for t in self._links if t.startswith(prefix)]

    def description_for(self, target: str) -> Optional[str]:
        return self._links.get(target)

    def __len__(self) -> int:
        return len(self._links)
