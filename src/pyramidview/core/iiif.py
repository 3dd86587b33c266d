"""IIIF image description parsing.

The image API has two supported schema versions. Both are parsed into the
same :class:`ImageInfo` record right away, so the tiling code never needs to
know which version a server speaks.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pyramidview.config import DEFAULT_TILE_SIZE
from pyramidview.core.types import Size

logger = logging.getLogger(__name__)


class IiifError(Exception):
    """Base error for IIIF description handling."""


class IiifMissingInfo(IiifError):
    """A required field is absent from the description."""


class IiifFormatError(IiifError):
    """A field holds a value we do not understand."""


class IiifDeserializationError(IiifError):
    """The payload is not valid JSON."""


class IndexLookupError(IndexError):
    """Out-of-range lookup into a sequence, canvas list or image list."""

    def __init__(self, kind: str, index: int, count: int) -> None:
        if count:
            message = f"{kind} index {index} out of range (0..{count - 1})"
        else:
            message = f"{kind} index {index} out of range (empty)"
        super().__init__(message)
        self.kind = kind
        self.index = index
        self.count = count


class ImageApiVersion(Enum):
    V2 = 2
    V3 = 3


class ImageFeature(str, Enum):
    BASE_URI_REDIRECT = "baseUriRedirect"
    CANONICAL_LINK_HEADER = "canonicalLinkHeader"
    CORS = "cors"
    JSONLD_MEDIA_TYPE = "jsonldMediaType"
    MIRRORING = "mirroring"
    PROFILE_LINK_HEADER = "profileLinkHeader"
    REGION_BY_PCT = "regionByPct"
    REGION_BY_PX = "regionByPx"
    REGION_SQUARE = "regionSquare"
    ROTATION_ARBITRARY = "rotationArbitrary"
    ROTATION_BY_90S = "rotationBy90s"
    SIZE_BY_CONFINED_WH = "sizeByConfinedWh"
    SIZE_BY_H = "sizeByH"
    SIZE_BY_PCT = "sizeByPct"
    SIZE_BY_W = "sizeByW"
    SIZE_BY_WH = "sizeByWh"
    SIZE_UPSCALING = "sizeUpscaling"
    # Deprecated in 3.0, still served by 2.x servers
    SIZE_BY_WH_LISTED = "sizeByWhListed"
    SIZE_BY_FORCED_WH = "sizeByForcedWh"
    SIZE_ABOVE_FULL = "sizeAboveFull"
    SIZE_BY_DISTORTED_WH = "sizeByDistortedWh"


class ImageFormat(str, Enum):
    JPG = "jpg"
    PNG = "png"
    TIF = "tif"
    GIF = "gif"
    TXT = "txt"
    JP2 = "jp2"
    PDF = "pdf"
    WEBP = "webp"

    @property
    def extension(self) -> str:
        """File extension used in image request URLs."""
        if self is ImageFormat.JP2:
            return "jpg2"
        return self.value


class ImageQuality(str, Enum):
    COLOR = "color"
    GRAY = "gray"
    BITONAL = "bitonal"
    NATIVE = "native"
    DEFAULT = "default"


@dataclass(frozen=True)
class ProfileDetails:
    """Formats, qualities and features declared by one profile entry."""

    formats: tuple[ImageFormat, ...] = ()
    qualities: tuple[ImageQuality, ...] = ()
    supports: frozenset[ImageFeature] = frozenset()


_LEVEL0 = ProfileDetails(
    formats=(ImageFormat.JPG,),
    qualities=(ImageQuality.DEFAULT,),
    supports=frozenset({ImageFeature.SIZE_BY_WH_LISTED}),
)

_LEVEL1 = ProfileDetails(
    formats=(ImageFormat.JPG,),
    qualities=(ImageQuality.DEFAULT,),
    supports=frozenset({
        ImageFeature.SIZE_BY_WH_LISTED,
        ImageFeature.BASE_URI_REDIRECT,
        ImageFeature.CORS,
        ImageFeature.JSONLD_MEDIA_TYPE,
        ImageFeature.REGION_BY_PX,
        ImageFeature.SIZE_BY_H,
        ImageFeature.SIZE_BY_PCT,
        ImageFeature.SIZE_BY_W,
    }),
)

_LEVEL2 = ProfileDetails(
    formats=(ImageFormat.JPG, ImageFormat.PNG),
    qualities=(ImageQuality.DEFAULT, ImageQuality.BITONAL),
    supports=_LEVEL1.supports | {
        ImageFeature.REGION_BY_PCT,
        ImageFeature.ROTATION_BY_90S,
        ImageFeature.SIZE_BY_CONFINED_WH,
        ImageFeature.SIZE_BY_DISTORTED_WH,
        ImageFeature.SIZE_BY_FORCED_WH,
        ImageFeature.SIZE_BY_WH,
    },
)

#: Compliance level names shared by both API versions
COMPLIANCE_PROFILES: dict[str, ProfileDetails] = {
    "level0": _LEVEL0,
    "level1": _LEVEL1,
    "level2": _LEVEL2,
}

_V2_PROFILE_PREFIXES = ("http://iiif.io/api/image/2/", "https://iiif.io/api/image/2/")


@dataclass(frozen=True)
class ImageInfo:
    """Normalized image description, independent of the API version.

    Attributes:
        version: Schema version the description was parsed from
        width: Full resolution width
        height: Full resolution height
        tile_size: Declared tile size, 512x512 when absent
        scaling_sizes: Level sizes from the tile scale factors, ascending by area
        optional_sizes: Whole-image sizes offered by the server, ascending by area
        profiles: Expanded profile entries in declaration order
    """

    version: ImageApiVersion
    width: int
    height: int
    tile_size: Size = Size(DEFAULT_TILE_SIZE, DEFAULT_TILE_SIZE)
    scaling_sizes: list[Size] = field(default_factory=list)
    optional_sizes: list[Size] = field(default_factory=list)
    profiles: list[ProfileDetails] = field(default_factory=list)

    @property
    def full_size(self) -> Size:
        return Size(self.width, self.height)

    @property
    def supported_features(self) -> frozenset[ImageFeature]:
        features: set[ImageFeature] = set()
        for profile in self.profiles:
            features.update(profile.supports)
        return frozenset(features)

    @property
    def preferred_format(self) -> ImageFormat:
        """First format of the first profile."""
        if not self.profiles:
            raise IiifMissingInfo("missing profile")
        if not self.profiles[0].formats:
            raise IiifMissingInfo("missing image format")
        return self.profiles[0].formats[0]


def image_info_url(endpoint: str) -> str:
    """URL of the image description for an image service endpoint."""
    return f"{endpoint}/info.json"


def _parse_enum_list(enum_cls, values: Any, what: str) -> list:
    if values is None:
        return []
    if not isinstance(values, list):
        raise IiifFormatError(f"'{what}' should be a list")
    parsed = []
    for value in values:
        try:
            parsed.append(enum_cls(value))
        except ValueError:
            # Servers advertise vendor extensions we can safely ignore
            logger.debug("Ignoring unknown %s %r", what, value)
    return parsed


def _parse_profile_details(data: dict) -> ProfileDetails:
    return ProfileDetails(
        formats=tuple(_parse_enum_list(ImageFormat, data.get("formats"), "formats")),
        qualities=tuple(_parse_enum_list(ImageQuality, data.get("qualities"), "qualities")),
        supports=frozenset(_parse_enum_list(ImageFeature, data.get("supports"), "supports")),
    )


def _profile_from_v2_url(url: str) -> ProfileDetails:
    for prefix in _V2_PROFILE_PREFIXES:
        if url.startswith(prefix) and url.endswith(".json"):
            name = url[len(prefix):-len(".json")]
            if name in COMPLIANCE_PROFILES:
                return COMPLIANCE_PROFILES[name]
    raise IiifFormatError(f"unexpected profile url {url}")


def _positive_int(value: Any, what: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        raise IiifFormatError(f"{what} should be a positive integer, got {value!r}")
    return value


def _require_int(data: dict, key: str) -> int:
    if key not in data:
        raise IiifMissingInfo(f"missing '{key}'")
    return _positive_int(data[key], f"'{key}'")


def _parse_size_list(values: Any) -> list[Size]:
    if values is None:
        return []
    if not isinstance(values, list):
        raise IiifFormatError("'sizes' should be a list")
    sizes = []
    for entry in values:
        if not isinstance(entry, dict) or "width" not in entry or "height" not in entry:
            raise IiifFormatError(f"invalid size entry {entry!r}")
        sizes.append(
            Size(
                _positive_int(entry["width"], "size width"),
                _positive_int(entry["height"], "size height"),
            )
        )
    return sizes


def _first_tile_entry(data: dict) -> dict | None:
    tiles = data.get("tiles")
    if tiles is None:
        return None
    if not isinstance(tiles, list):
        raise IiifFormatError("'tiles' should be a list")
    if not tiles:
        return None
    first = tiles[0]
    if not isinstance(first, dict) or "width" not in first:
        raise IiifFormatError("tile entry without 'width'")
    return first


def _tile_size(data: dict) -> Size:
    first = _first_tile_entry(data)
    if first is None:
        return Size(DEFAULT_TILE_SIZE, DEFAULT_TILE_SIZE)
    width = _positive_int(first["width"], "tile width")
    height = first.get("height")
    if height is None:
        return Size(width, width)
    return Size(width, _positive_int(height, "tile height"))


def _scaling_sizes(data: dict, width: int, height: int) -> list[Size]:
    sizes: list[Size] = []
    first = _first_tile_entry(data)
    if first is not None:
        factors = first.get("scaleFactors", [])
        if not isinstance(factors, list):
            raise IiifFormatError("'scaleFactors' should be a list")
        for factor in factors:
            factor = _positive_int(factor, "scale factor")
            size = Size(width // factor, height // factor)
            if size.width == 0 or size.height == 0:
                logger.debug("Skipping scale factor %d smaller than one pixel", factor)
                continue
            sizes.append(size)

    full = Size(width, height)
    if full not in sizes:
        sizes.append(full)
    return sorted(sizes, key=lambda s: s.area)


def _optional_sizes(data: dict, width: int, height: int) -> list[Size]:
    sizes = _parse_size_list(data.get("sizes"))
    full = Size(width, height)
    if full not in sizes:
        sizes.append(full)
    return sorted(sizes, key=lambda s: s.area)


def _parse_v2_profiles(data: dict) -> list[ProfileDetails]:
    raw = data.get("profile")
    if raw is None:
        raise IiifMissingInfo("Missing profile")
    entries = raw if isinstance(raw, list) else [raw]
    if not entries:
        raise IiifMissingInfo("Missing profile")

    profiles = []
    for entry in entries:
        if isinstance(entry, str):
            profiles.append(_profile_from_v2_url(entry))
        elif isinstance(entry, dict):
            profiles.append(_parse_profile_details(entry))
        else:
            raise IiifFormatError(f"unexpected profile entry {entry!r}")
    return profiles


def _parse_v3_profiles(data: dict) -> list[ProfileDetails]:
    name = data.get("profile")
    if name is None:
        raise IiifMissingInfo("Missing profile")
    if not isinstance(name, str) or name not in COMPLIANCE_PROFILES:
        raise IiifFormatError(f"unexpected profile {name!r}")

    extra = ProfileDetails(
        formats=tuple(_parse_enum_list(ImageFormat, data.get("extraFormats"), "extraFormats")),
        qualities=tuple(
            _parse_enum_list(ImageQuality, data.get("extraQualities"), "extraQualities")
        ),
        supports=frozenset(
            _parse_enum_list(ImageFeature, data.get("extraFeatures"), "extraFeatures")
        ),
    )
    return [COMPLIANCE_PROFILES[name], extra]


def detect_version(data: dict) -> ImageApiVersion:
    """Decide which schema version a decoded description follows."""
    if data.get("type") == "ImageService3":
        return ImageApiVersion.V3
    if "profile" in data:
        return ImageApiVersion.V2
    raise IiifMissingInfo("cannot tell the image API version (no 'type' or 'profile')")


def parse_image_info(data: dict) -> ImageInfo:
    """Normalize a decoded image description into :class:`ImageInfo`."""
    if not isinstance(data, dict):
        raise IiifFormatError("image description should be a JSON object")

    version = detect_version(data)
    width = _require_int(data, "width")
    height = _require_int(data, "height")

    if version is ImageApiVersion.V3:
        profiles = _parse_v3_profiles(data)
    else:
        profiles = _parse_v2_profiles(data)

    return ImageInfo(
        version=version,
        width=width,
        height=height,
        tile_size=_tile_size(data),
        scaling_sizes=_scaling_sizes(data, width, height),
        optional_sizes=_optional_sizes(data, width, height),
        profiles=profiles,
    )


def parse_image_info_json(payload: str | bytes) -> ImageInfo:
    """Decode and normalize an ``info.json`` payload."""
    try:
        data = json.loads(payload)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise IiifDeserializationError(f"invalid image description JSON: {e}") from e
    info = parse_image_info(data)
    logger.debug(
        "Parsed %s image description %dx%d with %d levels",
        info.version.name,
        info.width,
        info.height,
        len(info.scaling_sizes),
    )
    return info
