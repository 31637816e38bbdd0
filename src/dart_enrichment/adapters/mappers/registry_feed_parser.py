# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""Registry feed decompression and multi-schema parsing.

Purpose:
    Turn the compressed corporate-code registry download into a normalized
    :class:`RegistryFeed` without leaking zip or XML details to callers.

Layer:
    adapters/mappers

Notes:
    - The upstream has shipped the registry under more than one XML shape.
      Decoding strategies are tried in order:
        1. ``wrapped``: status/message/list under a ``<result>`` element that
           sits below the document root.
        2. ``top_level``: status/message/list as direct children of the root.
        3. ``generic``: the tree is decoded into nested mappings and records
           are located heuristically. Results from this path are flagged
           ``degraded`` and logged as a warning.
    - Whichever strategy wins, callers get the same normalized records.
    - A record that fails field coercion is skipped and counted; unknown
      child elements are ignored.
"""

from __future__ import annotations

import io
import logging
import zipfile
import zlib
from collections.abc import Callable, Iterable, Mapping
from datetime import date, datetime
from typing import Any, cast
from xml.etree.ElementTree import Element  # stdlib typed

from defusedxml import DefusedXmlException
from defusedxml import ElementTree as ET

from dart_enrichment.domain.entities.registry_feed import RegistryFeed
from dart_enrichment.domain.entities.registry_record import RegistryRecord
from dart_enrichment.domain.enums.dart import MarketSegment
from dart_enrichment.domain.exceptions.dart import (
    EmptyUpstreamPayload,
    FeedParseError,
    RecordMappingError,
)

logger = logging.getLogger(__name__)

_RECORD_TAG = "list"
_WRAPPER_TAG = "result"
_GENERIC_SEARCH_DEPTH = 3
_TEXT_ENCODINGS = ("utf-8-sig", "cp949")


class _StrategyFailed(Exception):
    """Internal signal: one decoding strategy could not interpret the document."""


class _Candidate:
    """Raw outcome of one strategy before record normalization."""

    __slots__ = ("status", "message", "items")

    def __init__(
        self,
        status: str | None,
        message: str | None,
        items: list[Mapping[str, Any]],
    ) -> None:
        self.status = status
        self.message = message
        self.items = items


# --------------------------------------------------------------------------- #
# Decompression                                                               #
# --------------------------------------------------------------------------- #


def extract_feed_document(payload: bytes | None) -> str:
    """Return the XML text held by a registry download.

    Args:
        payload: Raw response body, normally a zip archive with one XML entry.

    Returns:
        The decoded XML document.

    Raises:
        EmptyUpstreamPayload: If the payload, the archive or its entry is empty.
        FeedParseError: If the archive is unreadable or the text cannot be decoded.
    """
    if payload is None or not payload.strip():
        raise EmptyUpstreamPayload("Registry feed payload is empty.")

    buffer = io.BytesIO(payload)
    if zipfile.is_zipfile(buffer):
        raw = _read_single_entry(payload)
    elif payload.lstrip().startswith(b"<"):
        # The upstream answers key and quota errors with a bare XML status document.
        logger.warning(
            "dart.registry_feed.uncompressed",
            extra={"payload_bytes": len(payload)},
        )
        raw = payload
    else:
        raise FeedParseError(
            "Registry feed is neither a zip archive nor an XML document.",
            causes=("unrecognized payload signature",),
            details={"payload_bytes": len(payload)},
        )

    text = _decode_text(raw)
    if not text.strip():
        raise EmptyUpstreamPayload("Registry feed document is blank.")
    return text


def _read_single_entry(payload: bytes) -> bytes:
    try:
        with zipfile.ZipFile(io.BytesIO(payload)) as archive:
            members = [info for info in archive.infolist() if not info.is_dir()]
            if not members:
                raise EmptyUpstreamPayload("Registry feed archive has no entries.")
            member = next(
                (m for m in members if m.filename.lower().endswith(".xml")),
                members[0],
            )
            if len(members) > 1:
                logger.info(
                    "dart.registry_feed.multiple_entries",
                    extra={"entries": [m.filename for m in members], "chosen": member.filename},
                )
            return archive.read(member)
    except (zipfile.BadZipFile, zipfile.LargeZipFile, zlib.error, EOFError, OSError) as exc:
        raise FeedParseError(
            "Registry feed archive is unreadable.",
            causes=(f"{type(exc).__name__}: {exc}",),
        ) from exc
    except RuntimeError as exc:  # encrypted or unsupported compression
        raise FeedParseError(
            "Registry feed archive cannot be extracted.",
            causes=(f"{type(exc).__name__}: {exc}",),
        ) from exc


def _decode_text(raw: bytes) -> str:
    for encoding in _TEXT_ENCODINGS:
        try:
            return raw.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise FeedParseError(
        "Registry feed document is not valid UTF-8 or CP949 text.",
        causes=("undecodable text",),
    )


# --------------------------------------------------------------------------- #
# Parsing                                                                     #
# --------------------------------------------------------------------------- #


class RegistryFeedParser:
    """Decode registry documents, trying successive schema interpretations."""

    def __init__(self) -> None:
        self._strategies: tuple[tuple[str, Callable[[Element], _Candidate], bool], ...] = (
            ("wrapped", self._decode_wrapped, False),
            ("top_level", self._decode_top_level, False),
            ("generic", self._decode_generic, True),
        )

    def parse(self, payload: bytes | None) -> RegistryFeed:
        """Decompress and parse a raw registry download."""
        return self.parse_document(extract_feed_document(payload))

    def parse_document(self, text: str) -> RegistryFeed:
        """Parse an XML registry document.

        Raises:
            EmptyUpstreamPayload: If ``text`` is blank.
            FeedParseError: If every strategy fails; ``causes`` holds one
                entry per strategy.
        """
        if not text or not text.strip():
            raise EmptyUpstreamPayload("Registry feed document is blank.")

        root: Element | None = None
        xml_error: str | None = None
        try:
            root = cast(Element, ET.fromstring(text.strip()))
        except (ET.ParseError, DefusedXmlException) as exc:
            xml_error = f"malformed XML: {exc}"

        causes: list[str] = []
        for name, strategy, degraded in self._strategies:
            try:
                if root is None:
                    raise _StrategyFailed(xml_error)
                candidate = strategy(root)
            except _StrategyFailed as exc:
                causes.append(f"{name}: {exc}")
                logger.debug(
                    "dart.registry_feed.strategy_failed",
                    extra={"strategy": name, "cause": str(exc)},
                )
                continue

            feed = self._normalize(candidate, strategy=name, degraded=degraded)
            if degraded:
                logger.warning(
                    "dart.registry_feed.degraded_parse",
                    extra={
                        "strategy": name,
                        "records": len(feed.records),
                        "skipped": feed.skipped,
                        "prior_causes": causes,
                    },
                )
            return feed

        raise FeedParseError(
            "Registry feed could not be decoded by any known schema.",
            causes=causes,
        )

    # ------------------------------------------------------------------ #
    # Strategies                                                         #
    # ------------------------------------------------------------------ #

    def _decode_wrapped(self, root: Element) -> _Candidate:
        wrapper = root.find(_WRAPPER_TAG)
        if wrapper is None:
            raise _StrategyFailed(f"no <{_WRAPPER_TAG}> element below <{root.tag}>")
        return self._from_container(wrapper)

    def _decode_top_level(self, root: Element) -> _Candidate:
        return self._from_container(root)

    def _from_container(self, container: Element) -> _Candidate:
        status = _clean(container.findtext("status"))
        items = [_element_fields(item) for item in container.findall(_RECORD_TAG)]
        if status is None and not items:
            raise _StrategyFailed(f"<{container.tag}> has neither status nor records")
        return _Candidate(status, _clean(container.findtext("message")), items)

    def _decode_generic(self, root: Element) -> _Candidate:
        data = _element_to_data(root)
        if not isinstance(data, Mapping):
            raise _StrategyFailed("document root has no children")

        result = data.get(_WRAPPER_TAG)
        nested = _as_records(result.get(_RECORD_TAG)) if isinstance(result, Mapping) else []
        top_level = _as_records(data.get(_RECORD_TAG))
        source: Mapping[str, Any]
        if nested:
            source, items = cast(Mapping[str, Any], result), nested
        elif top_level:
            source, items = data, top_level
        else:
            source = result if isinstance(result, Mapping) else data
            items = _search_records(data, depth=_GENERIC_SEARCH_DEPTH)

        status = _scalar(source.get("status"))
        if status is None and not items:
            raise _StrategyFailed("no record collection found in decoded tree")
        return _Candidate(status, _scalar(source.get("message")), items)

    # ------------------------------------------------------------------ #
    # Normalization                                                      #
    # ------------------------------------------------------------------ #

    @staticmethod
    def _normalize(candidate: _Candidate, *, strategy: str, degraded: bool) -> RegistryFeed:
        records: dict[str, RegistryRecord] = {}
        skipped = 0
        for item in candidate.items:
            try:
                record = to_registry_record(item)
            except RecordMappingError as exc:
                skipped += 1
                logger.debug(
                    "dart.registry_feed.record_skipped",
                    extra={"reason": exc.message, "details": exc.details},
                )
                continue
            if record.entity_code in records:
                skipped += 1
            records[record.entity_code] = record

        return RegistryFeed(
            records=tuple(records.values()),
            status=candidate.status,
            message=candidate.message,
            skipped=skipped,
            strategy=strategy,
            degraded=degraded,
        )


_DEFAULT_PARSER = RegistryFeedParser()


def parse_registry_document(text: str) -> RegistryFeed:
    """Parse an XML registry document with the default strategy chain."""
    return _DEFAULT_PARSER.parse_document(text)


def parse_registry_feed(payload: bytes | None) -> RegistryFeed:
    """Decompress and parse a raw registry download."""
    return _DEFAULT_PARSER.parse(payload)


def to_registry_record(fields: Mapping[str, Any]) -> RegistryRecord:
    """Coerce one raw feed record into a :class:`RegistryRecord`.

    Raises:
        RecordMappingError: If a field has the wrong shape or fails validation.
    """
    return RegistryRecord(
        entity_code=_text_field(fields, "corp_code") or "",
        legal_name=_text_field(fields, "corp_name") or "",
        english_name=_text_field(fields, "corp_eng_name"),
        listing_code=_text_field(fields, "stock_code"),
        last_modified_date=_date_field(fields, "modify_date"),
        market_segment=MarketSegment.parse(_text_field(fields, "corp_cls")),
    )


# --------------------------------------------------------------------------- #
# Helpers                                                                     #
# --------------------------------------------------------------------------- #


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def _scalar(value: Any) -> str | None:
    return _clean(value) if isinstance(value, str) else None


def _element_fields(item: Element) -> dict[str, Any]:
    return {child.tag: child.text or "" for child in item}


def _element_to_data(elem: Element) -> Any:
    """Decode an element into nested dicts; repeated tags become lists."""
    children = list(elem)
    if not children:
        return elem.text or ""
    data: dict[str, Any] = {}
    for child in children:
        value = _element_to_data(child)
        if child.tag in data:
            existing = data[child.tag]
            if isinstance(existing, list):
                existing.append(value)
            else:
                data[child.tag] = [existing, value]
        else:
            data[child.tag] = value
    return data


def _as_records(value: Any) -> list[Mapping[str, Any]]:
    if isinstance(value, Mapping):
        return [value]
    if isinstance(value, list):
        return [item for item in value if isinstance(item, Mapping)]
    return []


def _looks_like_records(items: Iterable[Mapping[str, Any]]) -> bool:
    return any("corp_code" in item for item in items)


def _search_records(data: Mapping[str, Any], *, depth: int) -> list[Mapping[str, Any]]:
    if depth <= 0:
        return []
    for value in data.values():
        candidates = _as_records(value)
        if candidates and _looks_like_records(candidates):
            return candidates
    for value in data.values():
        if isinstance(value, Mapping):
            found = _search_records(value, depth=depth - 1)
            if found:
                return found
    return []


def _text_field(fields: Mapping[str, Any], name: str) -> str | None:
    value = fields.get(name)
    if value is None:
        return None
    if not isinstance(value, str):
        raise RecordMappingError(
            f"Registry field {name!r} is not a scalar value.",
            details={"field": name, "type": type(value).__name__},
        )
    return _clean(value)


def _date_field(fields: Mapping[str, Any], name: str) -> date | None:
    raw = _text_field(fields, name)
    if raw is None:
        return None
    try:
        return datetime.strptime(raw, "%Y%m%d").date()
    except ValueError as exc:
        raise RecordMappingError(
            f"Registry field {name!r} is not a YYYYMMDD date.",
            details={"field": name, "value": raw},
        ) from exc
