# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""DART persistence models.

Tables:
    dart_corp_codes           Registry snapshot, replaced wholesale on sync.
    company_profiles          One row per enriched entity code.
    disclosures               Immutable disclosure receipts.
    financial_statement_data  Statement lines, replaced per
                              (corp_code, bsns_year, reprt_code).
"""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import BigInteger, Date, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import DateTime

from dart_enrichment.infrastructure.database.models.base import Base, TimestampMixin

# SQLite only autoincrements INTEGER PRIMARY KEY columns.
_BigIntId = BigInteger().with_variant(Integer(), "sqlite")


class DartCorpCode(Base):
    """Registry snapshot row."""

    __tablename__ = "dart_corp_codes"

    corp_code: Mapped[str] = mapped_column(String(8), primary_key=True)
    corp_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    corp_eng_name: Mapped[str | None] = mapped_column(String(255))
    stock_code: Mapped[str | None] = mapped_column(String(6), index=True)
    modify_date: Mapped[date | None] = mapped_column(Date)
    corp_cls: Mapped[str | None] = mapped_column(String(1))


class CompanyProfileRow(TimestampMixin, Base):
    """Enriched company overview."""

    __tablename__ = "company_profiles"

    id: Mapped[int] = mapped_column(_BigIntId, primary_key=True, autoincrement=True)
    corp_code: Mapped[str] = mapped_column(String(8), nullable=False, unique=True)
    corp_name: Mapped[str] = mapped_column(String(255), nullable=False)
    corp_name_eng: Mapped[str | None] = mapped_column(String(255))
    stock_code: Mapped[str | None] = mapped_column(String(6))
    ceo_name: Mapped[str | None] = mapped_column(String(255))
    corp_cls: Mapped[str | None] = mapped_column(String(1))
    jurisdiction_number: Mapped[str | None] = mapped_column(String(13))
    business_number: Mapped[str | None] = mapped_column(String(13))
    address: Mapped[str | None] = mapped_column(String(500))
    homepage_url: Mapped[str | None] = mapped_column(String(255))
    ir_url: Mapped[str | None] = mapped_column(String(255))
    phone_number: Mapped[str | None] = mapped_column(String(50))
    fax_number: Mapped[str | None] = mapped_column(String(50))
    industry_code: Mapped[str | None] = mapped_column(String(10))
    established_date: Mapped[date | None] = mapped_column(Date)
    accounting_month: Mapped[str | None] = mapped_column(String(2))


class DisclosureRow(Base):
    """Disclosure receipt."""

    __tablename__ = "disclosures"

    receipt_no: Mapped[str] = mapped_column(String(14), primary_key=True)
    corp_code: Mapped[str] = mapped_column(
        String(8),
        ForeignKey("company_profiles.corp_code"),
        nullable=False,
        index=True,
    )
    corp_name: Mapped[str | None] = mapped_column(String(255))
    stock_code: Mapped[str | None] = mapped_column(String(6))
    corp_cls: Mapped[str | None] = mapped_column(String(1))
    report_name: Mapped[str] = mapped_column(String(500), nullable=False)
    submitter_name: Mapped[str | None] = mapped_column(String(255))
    receipt_date: Mapped[date] = mapped_column(Date, nullable=False)
    remark: Mapped[str | None] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class FinancialStatementRow(Base):
    """One financial statement account line."""

    __tablename__ = "financial_statement_data"
    __table_args__ = (
        Index("ix_financial_statement_data_target", "corp_code", "bsns_year", "reprt_code"),
    )

    id: Mapped[int] = mapped_column(_BigIntId, primary_key=True, autoincrement=True)
    corp_code: Mapped[str] = mapped_column(String(8), nullable=False)
    bsns_year: Mapped[str] = mapped_column(String(4), nullable=False)
    reprt_code: Mapped[str] = mapped_column(String(5), nullable=False)
    rcept_no: Mapped[str | None] = mapped_column(String(14))
    sj_div: Mapped[str | None] = mapped_column(String(10))
    sj_nm: Mapped[str | None] = mapped_column(String(100))
    account_id: Mapped[str | None] = mapped_column(String(255))
    account_nm: Mapped[str] = mapped_column(String(255), nullable=False)
    account_detail: Mapped[str | None] = mapped_column(Text)
    thstrm_nm: Mapped[str | None] = mapped_column(String(50))
    thstrm_amount: Mapped[str | None] = mapped_column(String(50))
    thstrm_add_amount: Mapped[str | None] = mapped_column(String(50))
    frmtrm_nm: Mapped[str | None] = mapped_column(String(50))
    frmtrm_amount: Mapped[str | None] = mapped_column(String(50))
    frmtrm_q_nm: Mapped[str | None] = mapped_column(String(50))
    frmtrm_q_amount: Mapped[str | None] = mapped_column(String(50))
    frmtrm_add_amount: Mapped[str | None] = mapped_column(String(50))
    bfefrmtrm_nm: Mapped[str | None] = mapped_column(String(50))
    bfefrmtrm_amount: Mapped[str | None] = mapped_column(String(50))
    ord: Mapped[int | None] = mapped_column(Integer)
    currency: Mapped[str | None] = mapped_column(String(10))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
