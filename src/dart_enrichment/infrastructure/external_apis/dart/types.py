# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""
DART Types.

Purpose:
    Typed response fragments for the DART OpenAPI JSON endpoints this service
    consumes (company overview, disclosure search, single-company full
    financial statements).

Layer:
    infrastructure

Notes:
    All fields are strings on the wire, including amounts and dates. Every
    payload carries ``status`` and ``message``; the remaining keys are only
    present when ``status == "000"``.
"""

from __future__ import annotations

from typing import TypedDict


class DartStatusPayload(TypedDict, total=False):
    """Status envelope shared by every JSON endpoint."""

    status: str
    message: str


class DartCompanyPayload(DartStatusPayload, total=False):
    """``/api/company.json`` response."""

    corp_code: str
    corp_name: str
    corp_name_eng: str
    stock_name: str
    stock_code: str
    ceo_nm: str
    corp_cls: str
    jurir_no: str
    bizr_no: str
    adres: str
    hm_url: str
    ir_url: str
    phn_no: str
    fax_no: str
    induty_code: str
    est_dt: str
    acc_mt: str


class DartDisclosureRow(TypedDict, total=False):
    """One element of ``list`` in ``/api/list.json``."""

    corp_code: str
    corp_name: str
    stock_code: str
    corp_cls: str
    report_nm: str
    rcept_no: str
    flr_nm: str
    rcept_dt: str
    rm: str


class DartDisclosureSearchPayload(DartStatusPayload, total=False):
    """``/api/list.json`` response."""

    page_no: int
    page_count: int
    total_count: int
    total_page: int
    list: list[DartDisclosureRow]


class DartFinancialStatementRow(TypedDict, total=False):
    """One element of ``list`` in ``/api/fnlttSinglAcntAll.json``."""

    rcept_no: str
    reprt_code: str
    bsns_year: str
    corp_code: str
    sj_div: str
    sj_nm: str
    account_id: str
    account_nm: str
    account_detail: str
    thstrm_nm: str
    thstrm_amount: str
    thstrm_add_amount: str
    frmtrm_nm: str
    frmtrm_amount: str
    frmtrm_q_nm: str
    frmtrm_q_amount: str
    frmtrm_add_amount: str
    bfefrmtrm_nm: str
    bfefrmtrm_amount: str
    ord: str
    currency_cd: str
    currency: str


class DartFinancialStatementPayload(DartStatusPayload, total=False):
    """``/api/fnlttSinglAcntAll.json`` response."""

    list: list[DartFinancialStatementRow]
