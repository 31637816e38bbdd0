from __future__ import annotations

import io
import logging
import zipfile
from datetime import date

import pytest

from dart_enrichment.adapters.mappers.registry_feed_parser import (
    RegistryFeedParser,
    extract_feed_document,
    parse_registry_document,
    parse_registry_feed,
    to_registry_record,
)
from dart_enrichment.domain.enums.dart import MarketSegment
from dart_enrichment.domain.exceptions.dart import (
    EmptyUpstreamPayload,
    FeedParseError,
    RecordMappingError,
)

SAMSUNG = (
    "<list><corp_code>00126380</corp_code><corp_name>삼성전자</corp_name>"
    "<corp_eng_name>SAMSUNG ELECTRONICS CO,.LTD</corp_eng_name>"
    "<stock_code>005930</stock_code><modify_date>20231120</modify_date></list>"
)
UNLISTED = (
    "<list><corp_code>00434003</corp_code><corp_name> 다코 </corp_name>"
    "<stock_code> </stock_code><modify_date>20170630</modify_date></list>"
)
BROKEN = "<list><corp_code>12</corp_code><corp_name>Bad</corp_name></list>"


def _zip(document: str, *, name: str = "CORPCODE.xml", encoding: str = "utf-8") -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        archive.writestr(name, document.encode(encoding))
    return buffer.getvalue()


def test_top_level_schema_from_zip() -> None:
    payload = _zip(f'<?xml version="1.0" encoding="UTF-8"?><result>{SAMSUNG}{UNLISTED}</result>')

    feed = RegistryFeedParser().parse(payload)

    assert feed.strategy == "top_level"
    assert feed.degraded is False
    assert feed.is_success
    codes = [r.entity_code for r in feed.records]
    assert codes == ["00126380", "00434003"]
    samsung = feed.records[0]
    assert samsung.listing_code == "005930"
    assert samsung.is_listed
    assert samsung.last_modified_date == date(2023, 11, 20)
    unlisted = feed.records[1]
    assert unlisted.legal_name == "다코"
    assert unlisted.listing_code is None


def test_wrapped_schema_reads_status_and_message() -> None:
    document = (
        "<response><result><status>000</status><message>정상</message>"
        f"{SAMSUNG}</result></response>"
    )

    feed = RegistryFeedParser().parse_document(document)

    assert feed.strategy == "wrapped"
    assert feed.status == "000"
    assert feed.message == "정상"
    assert len(feed.records) == 1


def test_status_only_document_reports_upstream_error() -> None:
    feed = RegistryFeedParser().parse(
        b"<result><status>020</status><message>request limit exceeded</message></result>"
    )

    assert feed.status == "020"
    assert feed.records == ()
    assert not feed.is_success


def test_generic_strategy_is_flagged_degraded_and_logged(caplog: pytest.LogCaptureFixture) -> None:
    document = f"<export><data><rows>{SAMSUNG}{UNLISTED}</rows></data></export>"

    with caplog.at_level(logging.WARNING):
        feed = RegistryFeedParser().parse_document(document)

    assert feed.strategy == "generic"
    assert feed.degraded is True
    assert {r.entity_code for r in feed.records} == {"00126380", "00434003"}
    assert any(r.getMessage() == "dart.registry_feed.degraded_parse" for r in caplog.records)


def test_all_strategies_produce_identical_records() -> None:
    parser = RegistryFeedParser()
    wrapped = parser.parse_document(f"<r><result><status>000</status>{SAMSUNG}</result></r>")
    top = parser.parse_document(f"<result>{SAMSUNG}</result>")
    generic = parser.parse_document(f"<r><x><y>{SAMSUNG}</y></x></r>")

    assert wrapped.records == top.records == generic.records


def test_invalid_records_are_skipped_and_duplicates_counted() -> None:
    feed = RegistryFeedParser().parse_document(f"<result>{SAMSUNG}{BROKEN}{SAMSUNG}</result>")

    assert len(feed.records) == 1
    assert feed.skipped == 2


def test_unknown_elements_are_ignored() -> None:
    item = SAMSUNG.replace("</list>", "<extra>ignored</extra></list>")
    feed = RegistryFeedParser().parse_document(f"<result>{item}</result>")
    assert feed.records[0].entity_code == "00126380"


def test_malformed_xml_aggregates_one_cause_per_strategy() -> None:
    with pytest.raises(FeedParseError) as info:
        RegistryFeedParser().parse_document("<result><list>")

    causes = info.value.causes
    assert len(causes) == 3
    assert causes[0].startswith("wrapped:")
    assert causes[1].startswith("top_level:")
    assert causes[2].startswith("generic:")


def test_document_without_records_fails_every_strategy() -> None:
    with pytest.raises(FeedParseError) as info:
        RegistryFeedParser().parse_document("<nothing><here>text</here></nothing>")
    assert len(info.value.causes) == 3


def test_cp949_encoded_entry_is_decoded() -> None:
    payload = _zip(f"<result>{SAMSUNG}</result>", encoding="cp949")
    feed = RegistryFeedParser().parse(payload)
    assert feed.records[0].legal_name == "삼성전자"


def test_xml_entry_is_preferred_in_multi_entry_archive() -> None:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("README.txt", b"not xml")
        archive.writestr("CORPCODE.xml", f"<result>{SAMSUNG}</result>".encode())

    assert extract_feed_document(buffer.getvalue()).startswith("<result>")


@pytest.mark.parametrize("payload", [None, b"", b"   "])
def test_empty_payload_raises_empty_upstream(payload: bytes | None) -> None:
    with pytest.raises(EmptyUpstreamPayload):
        extract_feed_document(payload)


def test_empty_archive_raises_empty_upstream() -> None:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w"):
        pass
    with pytest.raises(EmptyUpstreamPayload):
        extract_feed_document(buffer.getvalue())


def test_garbage_payload_raises_parse_error() -> None:
    with pytest.raises(FeedParseError):
        extract_feed_document(b"\x00\x01garbage")


def test_corrupt_zip_raises_parse_error() -> None:
    payload = bytearray(_zip(f"<result>{SAMSUNG}</result>"))
    # Damage the compressed stream while keeping the central directory intact.
    payload[40:60] = b"\xff" * 20
    with pytest.raises(FeedParseError):
        extract_feed_document(bytes(payload))


def test_to_registry_record_maps_market_segment_and_rejects_bad_code() -> None:
    record = to_registry_record(
        {"corp_code": "00126380", "corp_name": "삼성전자", "corp_cls": "y"}
    )
    assert record.market_segment is MarketSegment.KOSPI

    with pytest.raises(RecordMappingError):
        to_registry_record({"corp_code": "1234", "corp_name": "x"})
    with pytest.raises(RecordMappingError):
        to_registry_record({"corp_code": "00126380", "corp_name": "x", "modify_date": "2023-11"})


def test_module_level_helpers_use_default_chain() -> None:
    document = f"<result><status>000</status><message>정상</message>{SAMSUNG}</result>"

    from_text = parse_registry_document(document)
    from_zip = parse_registry_feed(_zip(document))

    assert from_text.records == from_zip.records
    assert from_zip.status == "000"
    assert from_zip.strategy == "top_level"
