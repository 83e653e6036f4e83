"""Interpretation of command results per command kind.

INS output is stringified, FOR needs a sequence, IF a truth value, IMAGE and
LINK descriptors, and HTML a markup string. Anything else is a per-command
error carrying the offending command text.
"""

import base64
import binascii
import dataclasses
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional

from docx_report_engine.shared import (
    CommandExecutionError,
    ImageError,
    NullishCommandResultError,
    ObjectCommandResultError,
)

SUPPORTED_IMAGE_EXTENSIONS = (".png", ".gif", ".jpg", ".jpeg", ".svg")


def _is_structured(value: Any) -> bool:
    return isinstance(value, Mapping) or (
        dataclasses.is_dataclass(value) and not isinstance(value, type)
    )


def _as_mapping(value: Any) -> Optional[Mapping[str, Any]]:
    if isinstance(value, Mapping):
        return value
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    return None


def to_text(result: Any, command: str, reject_nullish: bool = False) -> str:
    """Stringify an INS result.

    Raises:
        NullishCommandResultError: If the result is None and nullish results
            are rejected
        ObjectCommandResultError: If the result is a mapping or dataclass
    """
    if result is None:
        if reject_nullish:
            raise NullishCommandResultError(command)
        return ""
    if _is_structured(result):
        raise ObjectCommandResultError(command, type(result).__name__)
    if isinstance(result, (list, tuple)):
        return ",".join("" if item is None else str(item) for item in result)
    return str(result)


def to_sequence(result: Any, command: str) -> List[Any]:
    """Materialize a FOR result as a list, preserving iteration order."""
    if result is None:
        return []
    if isinstance(result, (str, bytes)) or isinstance(result, Mapping):
        raise CommandExecutionError(
            TypeError(f"FOR expects a sequence, got {type(result).__name__}"), command
        )
    try:
        return list(result)
    except TypeError as e:
        raise CommandExecutionError(e, command) from e


def to_bool(result: Any) -> bool:
    return bool(result)


@dataclass
class ImageDescriptor:
    """Image to insert with IMAGE.

    Attributes:
        width: Width in centimetres
        height: Height in centimetres
        data: Image bytes (or a base64 string)
        extension: File extension including the dot, e.g. ``.png``
        alt: Alternative text
        caption: Text placed under the image
        rotation: Clockwise rotation in degrees
        thumbnail: Raster fallback, required for ``.svg`` images
    """

    width: float
    height: float
    data: bytes
    extension: str
    alt: str = ""
    caption: Optional[str] = None
    rotation: float = 0
    thumbnail: Optional["ImageDescriptor"] = None


@dataclass
class LinkDescriptor:
    """Hyperlink to insert with LINK."""

    url: str
    label: Optional[str] = None

    @property
    def text(self) -> str:
        return self.label if self.label else self.url


def _image_bytes(data: Any, command: str) -> bytes:
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    if isinstance(data, str):
        if data.startswith("data:") and "," in data:
            data = data.split(",", 1)[1]
        try:
            return base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ImageError(ValueError("image data is not valid base64"), command) from e
    raise ImageError(
        TypeError(f"image data must be bytes or base64 text, got {type(data).__name__}"),
        command,
    )


def to_image(
    result: Any,
    command: str,
    reject_nullish: bool = False,
    allow_svg: bool = True,
) -> Optional[ImageDescriptor]:
    """Validate an IMAGE result.

    Returns:
        The descriptor, or None when there is nothing to insert

    Raises:
        ImageError: If the descriptor is incomplete or unsupported
    """
    if result is None:
        if reject_nullish:
            raise NullishCommandResultError(command)
        return None

    fields = _as_mapping(result)
    if fields is None:
        raise ImageError(
            TypeError(f"IMAGE expects an image descriptor, got {type(result).__name__}"),
            command,
        )

    missing = [name for name in ("width", "height", "data", "extension") if fields.get(name) is None]
    if missing:
        raise ImageError(
            ValueError(f"image descriptor is missing {', '.join(missing)}"), command
        )

    extension = str(fields["extension"]).lower()
    if not extension.startswith("."):
        extension = f".{extension}"
    if extension not in SUPPORTED_IMAGE_EXTENSIONS:
        raise ImageError(
            ValueError(
                f"unsupported image extension {extension}; "
                f"use one of {', '.join(SUPPORTED_IMAGE_EXTENSIONS)}"
            ),
            command,
        )
    if extension == ".svg" and not allow_svg:
        raise ImageError(ValueError("svg thumbnails are not supported"), command)

    try:
        width = float(fields["width"])
        height = float(fields["height"])
        rotation = float(fields.get("rotation") or 0)
    except (TypeError, ValueError) as e:
        raise ImageError(e, command) from e
    if width <= 0 or height <= 0:
        raise ImageError(ValueError("image width and height must be positive"), command)

    thumbnail = None
    if extension == ".svg":
        if fields.get("thumbnail") is None:
            raise ImageError(
                ValueError("svg images need a raster thumbnail for older readers"), command
            )
        thumb_fields = dict(_as_mapping(fields["thumbnail"]) or {})
        thumb_fields.setdefault("width", width)
        thumb_fields.setdefault("height", height)
        thumbnail = to_image(thumb_fields, command, allow_svg=False)

    return ImageDescriptor(
        width=width,
        height=height,
        data=_image_bytes(fields["data"], command),
        extension=extension,
        alt=str(fields.get("alt") or ""),
        caption=fields.get("caption"),
        rotation=rotation,
        thumbnail=thumbnail,
    )


def to_link(result: Any, command: str, reject_nullish: bool = False) -> Optional[LinkDescriptor]:
    """Validate a LINK result (a descriptor with ``url`` and optional ``label``)."""
    if result is None:
        if reject_nullish:
            raise NullishCommandResultError(command)
        return None
    if isinstance(result, str):
        return LinkDescriptor(url=result)
    fields = _as_mapping(result)
    if fields is None or not fields.get("url"):
        raise CommandExecutionError(
            ValueError("LINK expects a descriptor with a url"), command
        )
    label = fields.get("label")
    return LinkDescriptor(url=str(fields["url"]), label=None if label is None else str(label))


def to_html(result: Any, command: str, reject_nullish: bool = False) -> Optional[str]:
    """Validate an HTML result."""
    if result is None:
        if reject_nullish:
            raise NullishCommandResultError(command)
        return None
    if not isinstance(result, str):
        raise CommandExecutionError(
            TypeError(f"HTML expects a markup string, got {type(result).__name__}"), command
        )
    return result
