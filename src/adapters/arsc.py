"""Compiled Android resource table (`resources.arsc`) reader.

Only what string resolution needs is decoded:
- the global value string pool,
- each package's type and key string pools,
- simple (and compact) entries of TYPE chunks.

Complex (bag) entries, type specs, library and overlay chunks are skipped. Any
structural violation raises `FormatError`.
"""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass, field

from core.errors import FormatError

logger = logging.getLogger(__name__)

RES_STRING_POOL_TYPE = 0x0001
RES_TABLE_TYPE = 0x0002
RES_TABLE_PACKAGE_TYPE = 0x0200
RES_TABLE_TYPE_TYPE = 0x0201

UTF8_FLAG = 1 << 8

TYPE_FLAG_SPARSE = 0x01
TYPE_FLAG_OFFSET16 = 0x02

ENTRY_FLAG_COMPLEX = 0x0001
ENTRY_FLAG_COMPACT = 0x0008

NO_ENTRY = 0xFFFFFFFF
NO_ENTRY_16 = 0xFFFF

TYPE_STRING = 0x03

APP_PACKAGE_ID = 0x7F
PACKAGE_HEADER_MIN = 284

_CHUNK_HEADER = struct.Struct("<HHI")


@dataclass
class ResourcePackage:
    id: int
    name: str
    # (type name, key name) -> [(is default config, value)]
    _strings: dict[tuple[str, str], list[tuple[bool, str]]] = field(default_factory=dict, repr=False)

    def add(self, type_name: str, key: str, value: str, *, default_config: bool) -> None:
        self._strings.setdefault((type_name, key), []).append((default_config, value))

    def value(self, type_name: str, key: str) -> str | None:
        candidates = self._strings.get((type_name, key))
        if not candidates:
            return None
        for is_default, value in candidates:
            if is_default:
                return value
        return candidates[0][1]


@dataclass
class ResourceTable:
    strings: list[str]
    packages: list[ResourcePackage]

    def main_package(self) -> ResourcePackage:
        """The application package.

        Tables are expected to hold a single package; when several are present the
        application id (0x7f) wins, then the first one.
        """

        if not self.packages:
            raise FormatError("Resource table has no package")
        if len(self.packages) > 1:
            logger.warning("Resource table holds %d packages, picking the app package", len(self.packages))
            for package in self.packages:
                if package.id == APP_PACKAGE_ID:
                    return package
        return self.packages[0]

    def resolve_string(self, package_name: str, key: str) -> str | None:
        """Value of `@string/<key>` in `package_name`; no fallback to other packages."""

        for package in self.packages:
            if package.name == package_name:
                return package.value("string", key)
        return None


def parse(data: bytes) -> ResourceTable:
    try:
        return _parse_table(data)
    except (struct.error, IndexError, UnicodeDecodeError) as exc:
        raise FormatError(f"Malformed resource table: {exc}") from exc


def _chunk_header(data: bytes, offset: int, limit: int) -> tuple[int, int, int]:
    chunk_type, header_size, size = _CHUNK_HEADER.unpack_from(data, offset)
    if header_size < _CHUNK_HEADER.size or size < header_size or offset + size > limit:
        raise FormatError(
            f"Bad chunk 0x{chunk_type:04x} at offset {offset} (header {header_size}, size {size})"
        )
    return chunk_type, header_size, size


def _parse_table(data: bytes) -> ResourceTable:
    if len(data) < 12:
        raise FormatError("Resource table too short")
    chunk_type, header_size, size = _chunk_header(data, 0, len(data))
    if chunk_type != RES_TABLE_TYPE:
        raise FormatError(f"Not a resource table (magic 0x{chunk_type:04x})")
    (package_count,) = struct.unpack_from("<I", data, 8)

    strings: list[str] | None = None
    packages: list[ResourcePackage] = []

    offset = header_size
    while offset < size:
        chunk_type, _, chunk_size = _chunk_header(data, offset, size)
        if chunk_type == RES_STRING_POOL_TYPE and strings is None:
            strings = _parse_string_pool(data, offset)
        elif chunk_type == RES_TABLE_PACKAGE_TYPE:
            if strings is None:
                raise FormatError("Package chunk before the global string pool")
            packages.append(_parse_package(data, offset, strings))
        offset += chunk_size

    if strings is None:
        raise FormatError("Resource table has no global string pool")
    if len(packages) != package_count:
        logger.debug("Header announces %d packages, found %d", package_count, len(packages))
    return ResourceTable(strings=strings, packages=packages)


def _parse_string_pool(data: bytes, offset: int) -> list[str]:
    (
        _,
        header_size,
        size,
        string_count,
        _style_count,
        flags,
        strings_start,
        _styles_start,
    ) = struct.unpack_from("<HHIIIIII", data, offset)
    end = offset + size
    if offset + header_size + 4 * string_count > end or offset + strings_start > end:
        raise FormatError("String pool offsets out of bounds")

    offsets = struct.unpack_from(f"<{string_count}I", data, offset + header_size)
    base = offset + strings_start
    utf8 = bool(flags & UTF8_FLAG)

    out: list[str] = []
    for rel in offsets:
        pos = base + rel
        if pos >= end:
            raise FormatError("String offset out of bounds")
        out.append(_decode_utf8(data, pos, end) if utf8 else _decode_utf16(data, pos, end))
    return out


def _utf8_length(data: bytes, pos: int) -> tuple[int, int]:
    first = data[pos]
    if first & 0x80:
        return ((first & 0x7F) << 8) | data[pos + 1], pos + 2
    return first, pos + 1


def _decode_utf8(data: bytes, pos: int, end: int) -> str:
    _, pos = _utf8_length(data, pos)  # length in UTF-16 units, unused
    length, pos = _utf8_length(data, pos)
    if pos + length > end:
        raise FormatError("UTF-8 string overruns its pool")
    return data[pos : pos + length].decode("utf-8", errors="replace")


def _decode_utf16(data: bytes, pos: int, end: int) -> str:
    (length,) = struct.unpack_from("<H", data, pos)
    pos += 2
    if length & 0x8000:
        (low,) = struct.unpack_from("<H", data, pos)
        length = ((length & 0x7FFF) << 16) | low
        pos += 2
    if pos + 2 * length > end:
        raise FormatError("UTF-16 string overruns its pool")
    return data[pos : pos + 2 * length].decode("utf-16-le")


def _parse_package(data: bytes, offset: int, strings: list[str]) -> ResourcePackage:
    _, header_size, size = _CHUNK_HEADER.unpack_from(data, offset)
    if header_size < PACKAGE_HEADER_MIN:
        raise FormatError(f"Package header too short ({header_size} bytes)")
    (package_id,) = struct.unpack_from("<I", data, offset + 8)
    raw_name = data[offset + 12 : offset + 12 + 256]
    name = raw_name.decode("utf-16-le").split("\x00", 1)[0]
    type_strings_at, _last_public_type, key_strings_at = struct.unpack_from("<III", data, offset + 268)

    end = offset + size
    type_names = _parse_string_pool(data, offset + type_strings_at)
    key_names = _parse_string_pool(data, offset + key_strings_at)
    package = ResourcePackage(id=package_id, name=name)

    pos = offset + header_size
    while pos < end:
        chunk_type, _, chunk_size = _chunk_header(data, pos, end)
        if chunk_type == RES_TABLE_TYPE_TYPE:
            _parse_type_chunk(data, pos, package, type_names, key_names, strings)
        pos += chunk_size

    logger.debug("Parsed package %s (0x%02x)", name, package_id)
    return package


def _entry_offsets(data: bytes, pos: int, count: int, flags: int) -> list[int]:
    if flags & TYPE_FLAG_SPARSE:
        pairs = struct.unpack_from(f"<{2 * count}H", data, pos)
        return [pairs[i + 1] * 4 for i in range(0, len(pairs), 2)]
    if flags & TYPE_FLAG_OFFSET16:
        raw16 = struct.unpack_from(f"<{count}H", data, pos)
        return [v * 4 for v in raw16 if v != NO_ENTRY_16]
    raw32 = struct.unpack_from(f"<{count}I", data, pos)
    return [v for v in raw32 if v != NO_ENTRY]


def _parse_type_chunk(
    data: bytes,
    offset: int,
    package: ResourcePackage,
    type_names: list[str],
    key_names: list[str],
    strings: list[str],
) -> None:
    _, header_size, size = _CHUNK_HEADER.unpack_from(data, offset)
    type_id, flags, _reserved, entry_count, entries_start = struct.unpack_from("<BBHII", data, offset + 8)
    (config_size,) = struct.unpack_from("<I", data, offset + 20)
    default_config = not any(data[offset + 24 : offset + 20 + config_size])

    if not 1 <= type_id <= len(type_names):
        raise FormatError(f"Type id {type_id} outside the type string pool")
    type_name = type_names[type_id - 1]

    end = offset + size
    for rel in _entry_offsets(data, offset + header_size, entry_count, flags):
        entry_at = offset + entries_start + rel
        if entry_at + 8 > end:
            raise FormatError("Resource entry out of bounds")
        entry_size, entry_flags = struct.unpack_from("<HH", data, entry_at)

        if entry_flags & ENTRY_FLAG_COMPACT:
            key_index = entry_size
            data_type = entry_flags >> 8
            (value,) = struct.unpack_from("<I", data, entry_at + 4)
        else:
            if entry_flags & ENTRY_FLAG_COMPLEX:
                continue
            (key_index,) = struct.unpack_from("<I", data, entry_at + 4)
            _value_size, _res0, data_type, value = struct.unpack_from("<HBBI", data, entry_at + entry_size)

        if data_type != TYPE_STRING:
            continue
        if key_index >= len(key_names) or value >= len(strings):
            raise FormatError("Resource entry references a missing string")
        package.add(type_name, key_names[key_index], strings[value], default_config=default_config)
