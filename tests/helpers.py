"""Test helpers: byte-level resource table builder, fake clock, recording transport."""

from __future__ import annotations

import struct
from datetime import datetime, timedelta, timezone
from typing import Callable

import httpx

PASSPHRASE = "y5Y2my5B"
CONFIG_SIZE = 64
NO_ENTRY = 0xFFFFFFFF


# --- resources.arsc builder -------------------------------------------------


def _len8(n: int) -> bytes:
    return bytes([n]) if n < 0x80 else bytes([(n >> 8) | 0x80, n & 0xFF])


def string_pool(strings: list[str], *, utf8: bool = True) -> bytes:
    offsets: list[int] = []
    blob = b""
    for s in strings:
        offsets.append(len(blob))
        if utf8:
            raw = s.encode("utf-8")
            blob += _len8(len(s)) + _len8(len(raw)) + raw + b"\x00"
        else:
            blob += struct.pack("<H", len(s)) + s.encode("utf-16-le") + b"\x00\x00"
    blob += b"\x00" * (-len(blob) % 4)

    header_size = 28
    strings_start = header_size + 4 * len(strings)
    size = strings_start + len(blob)
    flags = 1 << 8 if utf8 else 0
    header = struct.pack("<HHIIIIII", 0x0001, header_size, size, len(strings), 0, flags, strings_start, 0)
    return header + struct.pack(f"<{len(strings)}I", *offsets) + blob


def _config(language: str | None) -> bytes:
    body = bytearray(CONFIG_SIZE - 4)
    if language:
        body[4:6] = language.encode("ascii")
    return struct.pack("<I", CONFIG_SIZE) + bytes(body)


LAYOUTS = ("dense", "offset16", "sparse")


def _entry(index: int, value_index: int, *, compact: bool) -> bytes:
    if compact:
        # key index in the size slot, value type in the high byte of the flags
        return struct.pack("<HHI", index, 0x0008 | (0x03 << 8), value_index)
    return struct.pack("<HHI", 8, 0, index) + struct.pack("<HBBI", 8, 0, 0x03, value_index)


def _bag_entry(index: int) -> bytes:
    # complex entry: header + parent + count, then one (name, Res_value) map item
    return struct.pack("<HHIII", 16, 0x0001, index, 0, 1) + struct.pack("<IHBBI", 0x01010000, 8, 0, 0x10, 7)


def _offset_table(offsets: list[int | None], layout: str) -> tuple[bytes, int, int]:
    """Encode entry offsets; returns (table, entry count, type flags)."""

    if layout == "sparse":
        present = [(index, off) for index, off in enumerate(offsets) if off is not None]
        table = b"".join(struct.pack("<HH", index, off // 4) for index, off in present)
        return table, len(present), 0x01
    if layout == "offset16":
        table = struct.pack(f"<{len(offsets)}H", *(0xFFFF if off is None else off // 4 for off in offsets))
        return table + b"\x00" * (-len(table) % 4), len(offsets), 0x02
    table = struct.pack(f"<{len(offsets)}I", *(NO_ENTRY if off is None else off for off in offsets))
    return table, len(offsets), 0


def _type_chunk(
    keys: list[str],
    values: dict[str, str],
    pool: list[str],
    language: str | None,
    *,
    layout: str = "dense",
    compact: bool = False,
    bags: tuple[str, ...] = (),
) -> bytes:
    offsets: list[int | None] = []
    entries = b""
    for index, key in enumerate(keys):
        if key in bags:
            offsets.append(len(entries))
            entries += _bag_entry(index)
        elif key in values:
            pool.append(values[key])
            offsets.append(len(entries))
            entries += _entry(index, len(pool) - 1, compact=compact)
        else:
            offsets.append(None)

    table, entry_count, flags = _offset_table(offsets, layout)
    header_size = 20 + CONFIG_SIZE
    entries_start = header_size + len(table)
    size = entries_start + len(entries)
    header = struct.pack("<HHIBBHII", 0x0201, header_size, size, 1, flags, 0, entry_count, entries_start)
    return header + _config(language) + table + entries


def _type_spec(entry_count: int) -> bytes:
    return struct.pack("<HHIBBHI", 0x0202, 16, 16 + 4 * entry_count, 1, 0, 0, entry_count) + b"\x00" * (
        4 * entry_count
    )


def _package_chunk(
    name: str,
    package_id: int,
    strings: dict[str, str],
    localized: dict[str, str],
    pool: list[str],
    utf8: bool,
    **entry_options: object,
) -> bytes:
    bags = entry_options.get("bags", ())
    keys = list(dict.fromkeys([*strings, *localized, *bags]))
    type_pool = string_pool(["string"], utf8=utf8)
    key_pool = string_pool(keys, utf8=utf8)
    body = type_pool + key_pool + _type_spec(len(keys)) + _type_chunk(keys, strings, pool, None, **entry_options)
    if localized:
        options = {k: v for k, v in entry_options.items() if k != "bags"}
        body += _type_chunk(keys, localized, pool, "nl", **options)

    header_size = 288
    raw_name = name.encode("utf-16-le").ljust(256, b"\x00")
    header = struct.pack("<HHII", 0x0200, header_size, header_size + len(body), package_id)
    header += raw_name
    header += struct.pack("<IIIII", header_size, 1, header_size + len(type_pool), len(keys), 0)
    return header + body


def build_resource_table(
    strings: dict[str, str],
    *,
    package: str = "com.psa.mym.mypeugeot",
    package_id: int = 0x7F,
    localized: dict[str, str] | None = None,
    utf8: bool = True,
    extra_packages: tuple[tuple[str, int, dict[str, str]], ...] = (),
    layout: str = "dense",
    compact: bool = False,
    bags: tuple[str, ...] = (),
) -> bytes:
    """Single-type (`string`) table; `layout`, `compact` and `bags` shape the main package's entries."""

    pool: list[str] = []
    chunks = _package_chunk(
        package, package_id, strings, localized or {}, pool, utf8, layout=layout, compact=compact, bags=bags
    )
    for extra_name, extra_id, extra_strings in extra_packages:
        chunks += _package_chunk(extra_name, extra_id, extra_strings, {}, pool, utf8)
    global_pool = string_pool(pool, utf8=utf8)
    body = global_pool + chunks
    return struct.pack("<HHII", 0x0002, 12, 12 + len(body), 1 + len(extra_packages)) + body


DEFAULT_STRINGS = {
    "app_name": "MyPeugeot",
    "HOST_BRANDID_PROD": "https://id-dcr.peugeot.com/mobile-services",
    "HOST_PSA_API_PROD": "https://api.groupe-psa.com",
    "nologin_siteCode": "AP_FR_ESP",
}


class FakeClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.requests: list[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(_record)


def token_payload(access: str = "access-1", refresh: str = "refresh-1", expires_in: int = 3600) -> dict:
    return {
        "access_token": access,
        "refresh_token": refresh,
        "expires_in": expires_in,
        "token_type": "Bearer",
        "scope": "profile openid",
        "id_token": "id-token",
    }
