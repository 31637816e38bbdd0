from __future__ import annotations

from datetime import date

import pytest

from dart_enrichment.domain.entities.company_profile import CompanyProfile
from dart_enrichment.domain.entities.disclosure import DisclosureRecord
from dart_enrichment.domain.entities.financial_statement import (
    FinancialStatementLine,
    StatementTarget,
)
from dart_enrichment.domain.entities.partner_company_event import PartnerCompanyEvent
from dart_enrichment.domain.entities.registry_feed import RegistryFeed
from dart_enrichment.domain.entities.registry_record import RegistryRecord
from dart_enrichment.domain.enums.dart import MarketSegment, ReportCode, StatementDivision
from dart_enrichment.domain.exceptions.dart import FeedParseError, RecordMappingError


def test_registry_record_normalizes_fields() -> None:
    record = RegistryRecord(" 00126380 ", " 삼성전자 ", english_name="  ", listing_code=" ")

    assert record.entity_code == "00126380"
    assert record.legal_name == "삼성전자"
    assert record.english_name is None
    assert record.listing_code is None
    assert not record.is_listed


@pytest.mark.parametrize(
    ("code", "name", "listing"),
    [
        ("1234567", "Short", None),
        ("1234567A", "Letters", None),
        ("00126380", "   ", None),
        ("00126380", "Too Long Listing", "0059300"),
    ],
)
def test_registry_record_rejects_invalid_input(code: str, name: str, listing: str | None) -> None:
    with pytest.raises(RecordMappingError):
        RegistryRecord(code, name, listing_code=listing)


def test_record_mapping_error_is_a_parse_error() -> None:
    assert issubclass(RecordMappingError, FeedParseError)
    assert RecordMappingError.code == "RECORD_MAPPING_ERROR"


def test_registry_feed_success_rules() -> None:
    record = RegistryRecord("00126380", "삼성전자")

    assert RegistryFeed(records=(record,)).is_success
    assert not RegistryFeed(records=()).is_success
    assert RegistryFeed(records=(), status="000").is_success
    assert not RegistryFeed(records=(record,), status="013").is_success


def test_market_segment_parse() -> None:
    assert MarketSegment.parse(" y ") is MarketSegment.KOSPI
    assert MarketSegment.parse("K") is MarketSegment.KOSDAQ
    assert MarketSegment.parse("Z") is None
    assert MarketSegment.parse(None) is None


def test_profile_and_disclosure_validation() -> None:
    with pytest.raises(RecordMappingError):
        CompanyProfile(entity_code=" ", legal_name="Name")
    with pytest.raises(RecordMappingError):
        CompanyProfile(entity_code="00126380", legal_name="")
    with pytest.raises(RecordMappingError):
        DisclosureRecord("", "00126380", "보고서", date(2024, 1, 1))
    with pytest.raises(RecordMappingError):
        DisclosureRecord("20240101000001", " ", "보고서", date(2024, 1, 1))

    profile = CompanyProfile(entity_code=" 00126380", legal_name="삼성전자")
    assert profile.entity_code == "00126380"
    assert set(profile.mutable_values()) >= {"legal_name", "founding_date"}
    assert "entity_code" not in profile.mutable_values()


def test_statement_line_target_and_cache_key() -> None:
    line = FinancialStatementLine(
        entity_code="00126380",
        fiscal_year="2023",
        report_code="11011",
        account_name="자산총계",
    )
    target = line.target

    assert target == StatementTarget("00126380", "2023", ReportCode.ANNUAL)
    assert target.cache_key(StatementDivision.SEPARATE) == "00126380_2023_11011_OFS"

    with pytest.raises(RecordMappingError):
        FinancialStatementLine(
            entity_code="00126380", fiscal_year=" ", report_code="11011", account_name="x"
        )


def test_partner_event_accepts_both_key_styles() -> None:
    camel = PartnerCompanyEvent.from_payload({"id": 7, "corpCode": "00126380", "corpName": "A"})
    snake = PartnerCompanyEvent.from_payload({"corp_code": " ", "company_name": "B"})

    assert camel == PartnerCompanyEvent(event_id="7", entity_code="00126380", company_name="A")
    assert snake.event_id is None
    assert snake.entity_code is None
    assert snake.company_name == "B"
