# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""DART JSON payload mappers.

Purpose:
    Map raw DART JSON payloads (company overview, disclosure search, full
    financial statements) into domain entities.

Layer:
    adapters/mappers

Notes:
    - A payload whose embedded status is not "000" means "no data": the
      profile mapper returns None and list mappers return an empty list.
    - List mappers skip rows that fail coercion and report how many were
      dropped so the gateway can log it.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime
from typing import Any

from dart_enrichment.domain.entities.company_profile import CompanyProfile
from dart_enrichment.domain.entities.disclosure import DisclosureRecord
from dart_enrichment.domain.entities.financial_statement import FinancialStatementLine
from dart_enrichment.domain.enums.dart import UPSTREAM_STATUS_SUCCESS, MarketSegment
from dart_enrichment.domain.exceptions.dart import RecordMappingError
from dart_enrichment.infrastructure.external_apis.dart.types import (
    DartCompanyPayload,
    DartDisclosureRow,
    DartFinancialStatementRow,
)


def payload_status(payload: Mapping[str, object]) -> str | None:
    """Return the embedded upstream status, stripped."""
    status = payload.get("status")
    return str(status).strip() if status is not None else None


def is_success(payload: Mapping[str, object]) -> bool:
    """True when the embedded status is the upstream success code."""
    return payload_status(payload) == UPSTREAM_STATUS_SUCCESS


def _text(row: Mapping[str, object], key: str) -> str | None:
    value = row.get(key)
    if value is None:
        return None
    cleaned = str(value).strip()
    if not cleaned or cleaned == "-":
        return None
    return cleaned


def _yyyymmdd(raw: str | None, *, field: str) -> date | None:
    if raw is None:
        return None
    try:
        return datetime.strptime(raw, "%Y%m%d").date()
    except ValueError as exc:
        raise RecordMappingError(
            f"{field} is not a YYYYMMDD date.",
            details={"field": field, "value": raw},
        ) from exc


def map_company_profile(payload: DartCompanyPayload) -> CompanyProfile | None:
    """Map a ``company.json`` payload; None when the upstream has no data.

    Raises:
        RecordMappingError: If a successful payload lacks its anchor fields.
    """
    if not is_success(payload):
        return None
    # est_dt is free-form on some older filings; keep the profile if it is unparseable.
    try:
        founded = _yyyymmdd(_text(payload, "est_dt"), field="est_dt")
    except RecordMappingError:
        founded = None
    return CompanyProfile(
        entity_code=_text(payload, "corp_code") or "",
        legal_name=_text(payload, "corp_name") or "",
        english_name=_text(payload, "corp_name_eng"),
        listing_code=_text(payload, "stock_code"),
        executive_name=_text(payload, "ceo_nm"),
        market_segment=MarketSegment.parse(_text(payload, "corp_cls")),
        jurisdiction_number=_text(payload, "jurir_no"),
        business_number=_text(payload, "bizr_no"),
        address=_text(payload, "adres"),
        homepage_url=_text(payload, "hm_url"),
        ir_url=_text(payload, "ir_url"),
        phone_number=_text(payload, "phn_no"),
        fax_number=_text(payload, "fax_no"),
        industry_code=_text(payload, "induty_code"),
        founding_date=founded,
        fiscal_month=_text(payload, "acc_mt"),
    )


def map_disclosure_row(row: DartDisclosureRow) -> DisclosureRecord:
    """Map one ``list.json`` row.

    Raises:
        RecordMappingError: If the receipt number, entity code or date is invalid.
    """
    receipt_date = _yyyymmdd(_text(row, "rcept_dt"), field="rcept_dt")
    if receipt_date is None:
        raise RecordMappingError(
            "Disclosure rcept_dt is missing.",
            details={"rcept_no": row.get("rcept_no")},
        )
    return DisclosureRecord(
        receipt_number=_text(row, "rcept_no") or "",
        entity_code=_text(row, "corp_code") or "",
        report_name=_text(row, "report_nm") or "",
        receipt_date=receipt_date,
        corp_name=_text(row, "corp_name"),
        listing_code=_text(row, "stock_code"),
        market_segment=MarketSegment.parse(_text(row, "corp_cls")),
        submitter=_text(row, "flr_nm"),
        remark=_text(row, "rm"),
    )


def map_financial_statement_row(
    row: DartFinancialStatementRow,
    *,
    entity_code: str,
    fiscal_year: str,
    report_code: str,
) -> FinancialStatementLine:
    """Map one ``fnlttSinglAcntAll.json`` row.

    The triple defaults to the request's when the row omits it, so every
    line lands in the replacement unit that was asked for.
    """
    account_name = _text(row, "account_nm")
    if account_name is None:
        raise RecordMappingError(
            "Financial statement row has no account_nm.",
            details={"account_id": row.get("account_id")},
        )
    raw_ord = _text(row, "ord")
    try:
        ordinal = int(raw_ord) if raw_ord is not None else None
    except ValueError:
        ordinal = None
    return FinancialStatementLine(
        entity_code=entity_code,
        fiscal_year=fiscal_year,
        report_code=report_code,
        account_name=account_name,
        receipt_number=_text(row, "rcept_no"),
        statement_division=_text(row, "sj_div"),
        statement_name=_text(row, "sj_nm"),
        account_id=_text(row, "account_id"),
        account_detail=_text(row, "account_detail"),
        current_term_name=_text(row, "thstrm_nm"),
        current_term_amount=_text(row, "thstrm_amount"),
        current_term_add_amount=_text(row, "thstrm_add_amount"),
        prior_term_name=_text(row, "frmtrm_nm"),
        prior_term_amount=_text(row, "frmtrm_amount"),
        prior_term_quarter_name=_text(row, "frmtrm_q_nm"),
        prior_term_quarter_amount=_text(row, "frmtrm_q_amount"),
        prior_term_add_amount=_text(row, "frmtrm_add_amount"),
        prior_prior_term_name=_text(row, "bfefrmtrm_nm"),
        prior_prior_term_amount=_text(row, "bfefrmtrm_amount"),
        ordinal=ordinal,
        currency=_text(row, "currency") or _text(row, "currency_cd"),
    )


def payload_rows(payload: Mapping[str, object]) -> list[Mapping[str, Any]]:
    """Return the ``list`` rows of a successful payload, else an empty list."""
    if not is_success(payload):
        return []
    rows = payload.get("list")
    if not isinstance(rows, list):
        return []
    return [row for row in rows if isinstance(row, Mapping)]
