"""Built-in custom formats and scoring profiles.

Used when no formats or profiles file is configured, and as the base set
that file-defined profiles may extend.
"""

from __future__ import annotations

from curatarr.domain.entities.formats import (
    BANNED_SCORE,
    ConditionType,
    CustomFormat,
    FormatCategory,
    FormatCondition,
)
from curatarr.domain.entities.profile import PackPreference, ScoringProfile

_T = ConditionType


def _cond(
    name: str,
    pattern: str,
    type: ConditionType = ConditionType.RELEASE_TITLE,
    *,
    required: bool = True,
    negate: bool = False,
) -> FormatCondition:
    return FormatCondition(
        name=name, type=type, pattern=pattern, required=required, negate=negate
    )


def _fmt(
    id: str,
    name: str,
    category: FormatCategory,
    score: int,
    *conditions: FormatCondition,
    tags: tuple[str, ...] = (),
) -> CustomFormat:
    return CustomFormat(
        id=id,
        name=name,
        category=category,
        default_score=score,
        conditions=conditions,
        tags=tags,
    )


_R = FormatCategory.RESOLUTION

RESOLUTION_FORMATS: tuple[CustomFormat, ...] = (
    _fmt(
        "2160p-remux", "2160p Remux", _R, 2000,
        _cond("2160p", r"^2160p$", _T.RESOLUTION),
        _cond("remux", r"^remux$", _T.SOURCE),
    ),
    _fmt(
        "2160p-bluray", "2160p Bluray", _R, 1800,
        _cond("2160p", r"^2160p$", _T.RESOLUTION),
        _cond("bluray", r"^bluray$", _T.SOURCE),
    ),
    _fmt(
        "2160p-web", "2160p WEB", _R, 1600,
        _cond("2160p", r"^2160p$", _T.RESOLUTION),
        _cond("webdl", r"^webdl$", _T.SOURCE, required=False),
        _cond("webrip", r"^webrip$", _T.SOURCE, required=False),
    ),
    _fmt(
        "1080p-remux", "1080p Remux", _R, 1500,
        _cond("1080p", r"^1080p$", _T.RESOLUTION),
        _cond("remux", r"^remux$", _T.SOURCE),
    ),
    _fmt(
        "1080p-bluray", "1080p Bluray", _R, 1400,
        _cond("1080p", r"^1080p$", _T.RESOLUTION),
        _cond("bluray", r"^bluray$", _T.SOURCE),
    ),
    _fmt(
        "1080p-webdl", "1080p WEB-DL", _R, 1300,
        _cond("1080p", r"^1080p$", _T.RESOLUTION),
        _cond("webdl", r"^webdl$", _T.SOURCE),
    ),
    _fmt(
        "1080p-webrip", "1080p WEBRip", _R, 1200,
        _cond("1080p", r"^1080p$", _T.RESOLUTION),
        _cond("webrip", r"^webrip$", _T.SOURCE),
    ),
    _fmt(
        "1080p-hdtv", "1080p HDTV", _R, 1000,
        _cond("1080p", r"^1080p$", _T.RESOLUTION),
        _cond("hdtv", r"^hdtv$", _T.SOURCE),
    ),
    _fmt(
        "720p", "720p", _R, 800,
        _cond("720p", r"^720p$", _T.RESOLUTION),
    ),
    _fmt(
        "480p", "SD", _R, 200,
        _cond("480p", r"^480p$", _T.RESOLUTION),
    ),
)

_S = FormatCategory.STREAMING

STREAMING_FORMATS: tuple[CustomFormat, ...] = (
    _fmt("streaming-amzn", "Amazon", _S, 100, _cond("amzn", r"^AMZN$", _T.STREAMING_SERVICE)),
    _fmt("streaming-nf", "Netflix", _S, 100, _cond("nf", r"^NF$", _T.STREAMING_SERVICE)),
    _fmt("streaming-atvp", "Apple TV+", _S, 120, _cond("atvp", r"^ATVP$", _T.STREAMING_SERVICE)),
    _fmt("streaming-dsnp", "Disney+", _S, 100, _cond("dsnp", r"^DSNP$", _T.STREAMING_SERVICE)),
    _fmt("streaming-hmax", "HBO Max", _S, 100, _cond("hmax", r"^HMAX$", _T.STREAMING_SERVICE)),
    _fmt(
        "streaming-max", "Max", _S, 100,
        _cond("max", r"(?-i:\bMAX\b)"),
        _cond("not hmax", r"\bHMAX\b", negate=True),
    ),
    _fmt("streaming-pcok", "Peacock", _S, 80, _cond("pcok", r"^PCOK$", _T.STREAMING_SERVICE)),
    _fmt("streaming-pmtp", "Paramount+", _S, 80, _cond("pmtp", r"^PMTP$", _T.STREAMING_SERVICE)),
    _fmt("streaming-hulu", "Hulu", _S, 80, _cond("hulu", r"^HULU$", _T.STREAMING_SERVICE)),
)

_H = FormatCategory.HDR

HDR_FORMATS: tuple[CustomFormat, ...] = (
    _fmt("hdr-dolby-vision", "Dolby Vision", _H, 300, _cond("dv", r"\b(dv|dovi|dolby[ ._-]?vision)\b")),
    _fmt("hdr-hdr10plus", "HDR10+", _H, 250, _cond("hdr10+", r"\bhdr10(\+|plus)")),
    _fmt("hdr-hdr10", "HDR10", _H, 200, _cond("hdr10", r"\bhdr10\b")),
    _fmt("hdr-hlg", "HLG", _H, 150, _cond("hlg", r"\bhlg\b")),
    _fmt("hdr-generic", "HDR", _H, 100, _cond("hdr", r"\bhdr\b")),
)

_B = FormatCategory.BANNED

BANNED_FORMATS: tuple[CustomFormat, ...] = (
    _fmt("banned-cam", "CAM", _B, 0, _cond("cam", r"^cam$", _T.SOURCE)),
    _fmt("banned-telesync", "Telesync", _B, 0, _cond("ts", r"^telesync$", _T.SOURCE)),
    _fmt("banned-telecine", "Telecine", _B, 0, _cond("tc", r"^telecine$", _T.SOURCE)),
    _fmt("banned-screener", "Screener", _B, 0, _cond("scr", r"^screener$", _T.SOURCE)),
    _fmt("banned-sample", "Sample", _B, 0, _cond("sample", r"\bsample\b")),
    _fmt("banned-upscaled", "Upscaled", _B, 0, _cond("upscale", r"\b(upscaled?|ai[ ._-]?upscale)\b")),
    _fmt("banned-3d", "3D", _B, 0, _cond("3d", r"\b3d\b|\b(h-?sbs|h-?ou)\b")),
)

OTHER_FORMATS: tuple[CustomFormat, ...] = (
    _fmt(
        "enhancement-repack", "Repack/Proper", FormatCategory.ENHANCEMENT, 10,
        _cond("repack", r"\b(repack\d?|rerip)\b", required=False),
        _cond("proper", r"\bproper\b", required=False),
    ),
    _fmt("enhancement-imax", "IMAX", FormatCategory.ENHANCEMENT, 50, _cond("imax", r"\bimax\b")),
    _fmt("codec-x265", "x265", FormatCategory.CODEC, 0, _cond("hevc", r"\b(x265|h[ .]?265|hevc)\b")),
    _fmt("codec-av1", "AV1", FormatCategory.CODEC, 0, _cond("av1", r"\bav1\b")),
    _fmt(
        "audio-atmos", "Atmos", FormatCategory.AUDIO, 50,
        _cond("atmos", r"\batmos\b"),
    ),
    _fmt(
        "audio-lossless", "Lossless audio", FormatCategory.AUDIO, 40,
        _cond("truehd", r"\btrue[ ._-]?hd\b", required=False),
        _cond("dts-hd", r"\bdts[ ._-]?(hd|x)\b", required=False),
        _cond("flac", r"\bflac\b", required=False),
    ),
    _fmt(
        "micro-yts", "YTS/YIFY", FormatCategory.MICRO, -200,
        _cond("group", r"^(yts|yify)", _T.RELEASE_GROUP),
    ),
    _fmt(
        "low-quality-groups", "Low quality groups", FormatCategory.LOW_QUALITY, -500,
        _cond("group", r"^(aroma|lama|telly|sicario|tekno3d)$", _T.RELEASE_GROUP),
    ),
)

DEFAULT_FORMATS: tuple[CustomFormat, ...] = (
    RESOLUTION_FORMATS + STREAMING_FORMATS + HDR_FORMATS + BANNED_FORMATS + OTHER_FORMATS
)

_BANNED_SCORES: dict[str, int] = {f.id: BANNED_SCORE for f in BANNED_FORMATS}


def _profile(
    id: str,
    name: str,
    *,
    min_score: int,
    upgrade_until_score: int,
    min_score_increment: int,
    format_scores: dict[str, int] | None = None,
    **kwargs: object,
) -> ScoringProfile:
    return ScoringProfile(
        id=id,
        name=name,
        min_score=min_score,
        upgrade_until_score=upgrade_until_score,
        min_score_increment=min_score_increment,
        format_scores={**_BANNED_SCORES, **(format_scores or {})},
        pack_preference=PackPreference(),
        **kwargs,  # type: ignore[arg-type]
    )


DEFAULT_PROFILES: tuple[ScoringProfile, ...] = (
    _profile(
        "best",
        "Best quality",
        min_score=0,
        upgrade_until_score=100_000,
        min_score_increment=500,
    ),
    _profile(
        "efficient",
        "Efficient",
        min_score=0,
        upgrade_until_score=25_000,
        min_score_increment=50,
        format_scores={"2160p-remux": -1000, "1080p-remux": -500, "codec-x265": 300},
        movie_max_size_gb=20.0,
        episode_max_size_mb=3000.0,
    ),
    _profile(
        "micro",
        "Micro",
        min_score=-5000,
        upgrade_until_score=10_000,
        min_score_increment=10,
        format_scores={
            "2160p-remux": -3000,
            "2160p-bluray": -2000,
            "1080p-remux": -2000,
            "micro-yts": 500,
            "codec-x265": 500,
            "codec-av1": 600,
        },
        resolution_order=("1080p", "720p", "480p", "2160p", "unknown"),
        movie_max_size_gb=4.0,
        episode_max_size_mb=800.0,
    ),
    _profile(
        "streaming",
        "Streaming",
        min_score=0,
        upgrade_until_score=100_000,
        min_score_increment=1,
        format_scores={"2160p-remux": -500, "1080p-remux": -500},
    ),
)

DEFAULT_PROFILE_ID = "best"


def default_profiles_by_id() -> dict[str, ScoringProfile]:
    return {p.id: p for p in DEFAULT_PROFILES}
