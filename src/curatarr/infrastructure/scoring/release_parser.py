"""Release title parser using guessit plus scene-tag regexes.

Explicit scene markers (``S01E02``, ``WEB-DL``, ``AMZN``...) are read
with regexes first; guessit fills whatever they leave unknown.
"""

from __future__ import annotations

import re
from typing import Any

from guessit import guessit

from curatarr.domain.entities.release import (
    UNKNOWN,
    QualityDescriptor,
    ReleaseAttributes,
)

# --- Resolution ---

_SCREEN_SIZE_TO_RESOLUTION: dict[str, str] = {
    "4320p": "2160p",
    "2160p": "2160p",
    "1080p": "1080p",
    "1080i": "1080p",
    "720p": "720p",
    "576p": "480p",
    "576i": "480p",
    "480p": "480p",
    "480i": "480p",
    "360p": "480p",
}

_RESOLUTION_RE = re.compile(
    r"(?i)\b(?:(2160p|4k|uhd)|(1080[pi])|(720p)|(576p|480p|360p|sd))\b"
)

# --- Source ---

_SOURCE_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    ("remux", re.compile(r"(?i)\bremux\b")),
    ("webrip", re.compile(r"(?i)\bweb[ ._-]?rip\b")),
    ("webdl", re.compile(r"(?i)\bweb[ ._-]?dl\b|\bweb\b")),
    ("bluray", re.compile(r"(?i)\b(?:blu[ ._-]?ray|bdrip|brrip|bd25|bd50)\b")),
    ("hdtv", re.compile(r"(?i)\bhdtv\b")),
    ("dvd", re.compile(r"(?i)\bdvd(?:rip|r|9|5)?\b")),
    ("telesync", re.compile(r"(?i)\b(?:hd)?(?:ts|telesync)\b")),
    ("telecine", re.compile(r"(?i)\b(?:hd)?(?:tc|telecine)\b")),
    ("cam", re.compile(r"(?i)\b(?:hd)?cam(?:rip)?\b")),
    ("screener", re.compile(r"(?i)\b(?:dvd)?scr(?:eener)?\b")),
]

_GUESSIT_SOURCE: dict[str, str] = {
    "Blu-ray": "bluray",
    "Ultra HD Blu-ray": "bluray",
    "Web": "webdl",
    "HDTV": "hdtv",
    "DVD": "dvd",
    "Camera": "cam",
    "HD Camera": "cam",
    "Telesync": "telesync",
    "HD Telesync": "telesync",
    "Telecine": "telecine",
    "HD Telecine": "telecine",
}

# --- Codec / HDR ---

_CODEC_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    ("x265", re.compile(r"(?i)\b(?:x265|h[ .]?265|hevc)\b")),
    ("x264", re.compile(r"(?i)\b(?:x264|h[ .]?264|avc)\b")),
    ("av1", re.compile(r"(?i)\bav1\b")),
    ("xvid", re.compile(r"(?i)\bxvid\b")),
]

_GUESSIT_CODEC: dict[str, str] = {
    "H.265": "x265",
    "H.264": "x264",
    "AV1": "av1",
    "Xvid": "xvid",
}

_HDR_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    ("dolby_vision", re.compile(r"(?i)\b(?:dv|dovi|dolby[ ._-]?vision)\b")),
    ("hdr10plus", re.compile(r"(?i)\bhdr10(?:\+|plus)(?=\W|$)")),
    ("hdr10", re.compile(r"(?i)\bhdr10\b")),
    ("hlg", re.compile(r"(?i)\bhlg\b")),
    ("hdr", re.compile(r"(?i)\bhdr\b")),
]

# --- Streaming services (case matters for the short tags) ---

_STREAMING_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    ("AMZN", re.compile(r"(?i)\b(?:amzn|amazon)\b")),
    ("NF", re.compile(r"\bNF\b|(?i:\bnetflix\b)")),
    ("ATVP", re.compile(r"(?i)\b(?:atvp|atv\+|apple[ ._-]?tv)")),
    ("DSNP", re.compile(r"(?i)\b(?:dsnp|disney\+?)")),
    ("HMAX", re.compile(r"(?i)\bhmax\b")),
    ("MAX", re.compile(r"\bMAX\b")),
    ("PCOK", re.compile(r"(?i)\b(?:pcok|peacock)\b")),
    ("PMTP", re.compile(r"(?i)\b(?:pmtp|paramount\+?)")),
    ("HULU", re.compile(r"(?i)\bhulu\b")),
    ("iT", re.compile(r"\biT\b")),
    ("STAN", re.compile(r"\bSTAN\b")),
    ("CRAV", re.compile(r"(?i)\bcrav\b")),
    ("NOW", re.compile(r"\bNOW\b")),
    ("SHO", re.compile(r"\bSHO\b")),
    ("ROKU", re.compile(r"(?i)\broku\b")),
]

# --- Season / episode ---

_EPISODE_RE = re.compile(
    r"(?i)\bS(\d{1,2})[ ._-]?E(\d{1,3})(?:[ ._-]?(?:E|-E?)(\d{1,3}))?\b"
)
_SEASON_RANGE_RE = re.compile(r"(?i)\bS(\d{1,2})[ ._]?-[ ._]?S?(\d{1,2})\b")
_SEASON_RE = re.compile(r"(?i)\b(?:S|season[ ._-]?)(\d{1,2})\b")
_COMPLETE_RE = re.compile(r"(?i)\bcomplete\b")
_COMPLETE_SERIES_RE = re.compile(r"(?i)\bcomplete[ ._-](?:series|collection)\b")

_REPACK_RE = re.compile(r"(?i)\b(?:repack\d?|rerip)\b")
_PROPER_RE = re.compile(r"(?i)\bproper\b")
_GROUP_RE = re.compile(r"-([A-Za-z0-9]+)(?:\.[a-z0-9]{2,4})?$")
# Tags that follow a hyphen but are not groups ("WEB-DL").
_NOT_GROUPS = frozenset({"DL", "RIP", "HD", "SD"})


def _first_match(
    patterns: list[tuple[str, re.Pattern[str]]], title: str
) -> str | None:
    for label, pattern in patterns:
        if pattern.search(title):
            return label
    return None


def _as_ints(value: Any) -> tuple[int, ...]:
    if value is None:
        return ()
    if isinstance(value, list):
        return tuple(sorted({int(v) for v in value}))
    return (int(value),)


def _resolution(title: str, guess: dict[str, Any], hint: str | None) -> str:
    m = _RESOLUTION_RE.search(title)
    if m:
        return ("2160p", "1080p", "720p", "480p")[m.lastindex - 1]
    screen_size = guess.get("screen_size")
    if screen_size in _SCREEN_SIZE_TO_RESOLUTION:
        return _SCREEN_SIZE_TO_RESOLUTION[screen_size]
    if hint:
        return _SCREEN_SIZE_TO_RESOLUTION.get(hint.lower(), hint.lower())
    return UNKNOWN


def _source(title: str, guess: dict[str, Any], hint: str | None) -> str:
    label = _first_match(_SOURCE_PATTERNS, title)
    if label:
        return label
    source = guess.get("source")
    if isinstance(source, list):
        source = source[0]
    if source in _GUESSIT_SOURCE:
        other = guess.get("other") or []
        if isinstance(other, str):
            other = [other]
        mapped = _GUESSIT_SOURCE[source]
        if "Remux" in other:
            return "remux"
        if mapped == "webdl" and "Rip" in other:
            return "webrip"
        return mapped
    return hint.lower() if hint else UNKNOWN


def _codec(title: str, guess: dict[str, Any], hint: str | None) -> str:
    label = _first_match(_CODEC_PATTERNS, title)
    if label:
        return label
    codec = guess.get("video_codec")
    if codec in _GUESSIT_CODEC:
        return _GUESSIT_CODEC[codec]
    return hint.lower() if hint else UNKNOWN


def _seasons_and_episodes(
    title: str, guess: dict[str, Any]
) -> tuple[tuple[int, ...], tuple[int, ...]]:
    m = _EPISODE_RE.search(title)
    if m:
        start = int(m.group(2))
        end = int(m.group(3)) if m.group(3) else start
        if end < start:
            start, end = end, start
        return (int(m.group(1)),), tuple(range(start, end + 1))

    m = _SEASON_RANGE_RE.search(title)
    if m:
        first, last = sorted((int(m.group(1)), int(m.group(2))))
        return tuple(range(first, last + 1)), ()

    seasons = tuple(sorted({int(s) for s in _SEASON_RE.findall(title)}))
    if seasons:
        return seasons, ()

    if guess.get("type") == "episode":
        return _as_ints(guess.get("season")), _as_ints(guess.get("episode"))
    return (), ()


def parse_release(
    title: str,
    *,
    indexer_id: str | None = None,
    quality: QualityDescriptor | None = None,
) -> ReleaseAttributes:
    """Parse *title* into normalised attributes.

    Provider quality hints in *quality* are used only where the title
    itself carries no information.
    """
    hints = quality or QualityDescriptor()
    guess: dict[str, Any] = dict(guessit(title))

    seasons, episodes = _seasons_and_episodes(title, guess)
    complete = bool(_COMPLETE_SERIES_RE.search(title)) or (
        bool(_COMPLETE_RE.search(title)) and (not seasons or len(seasons) > 1)
    )

    group_match = _GROUP_RE.search(title.strip())
    if group_match and group_match.group(1).upper() not in _NOT_GROUPS:
        release_group = group_match.group(1)
    else:
        release_group = guess.get("release_group")

    return ReleaseAttributes(
        title=title,
        resolution=_resolution(title, guess, hints.resolution),
        source=_source(title, guess, hints.source),
        codec=_codec(title, guess, hints.codec),
        hdr=_first_match(_HDR_PATTERNS, title) or hints.hdr,
        release_group=release_group,
        streaming_service=_first_match(_STREAMING_PATTERNS, title),
        indexer_id=indexer_id,
        seasons=seasons,
        episodes=episodes,
        is_complete_series=complete,
        is_repack=bool(_REPACK_RE.search(title)),
        is_proper=bool(_PROPER_RE.search(title)),
    )
