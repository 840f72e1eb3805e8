"""
Routes API : conversion, sous-total unifié, total d'une vente et rapport de période.
"""

import csv
import io
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, Field, field_validator

from caisse.core.config import Settings, get_settings
from caisse.models.constants import InvalidSettingsError
from caisse.models.schemas import (
    Amount,
    CompanySettings,
    Currency,
    DiscountSpec,
    PeriodStats,
    Sale,
    SaleLineItem,
    SaleTotal,
    SubtotalResult,
)
from caisse.services.currency import (
    aggregate,
    calculate_total_with_profit,
    convert,
)
from caisse.services.formatting import format_with_symbol, money
from caisse.services.normalization import normalize_currency
from caisse.services.reporting import calculate_period_stats

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["calcul"])


class ConvertRequest(BaseModel):
    amount: Amount = Field(..., ge=0)
    from_currency: Currency = Field(Currency.HTG, description="Devise source (HTG si absente)")
    to_currency: Currency
    rate: Optional[Amount] = Field(None, description="Taux USD/HTG ; taux configuré si absent")

    @field_validator("from_currency", mode="before")
    @classmethod
    def default_currency(cls, value):
        return normalize_currency(value)


class ConvertResponse(BaseModel):
    amount: Amount
    currency: Currency


class SubtotalRequest(BaseModel):
    items: list[SaleLineItem] = Field(default_factory=list)
    settings: Optional[CompanySettings] = Field(None, description="Paramètres configurés si absents")


class SaleTotalRequest(SubtotalRequest):
    discount: Optional[DiscountSpec] = None


class SaleTotalResponse(BaseModel):
    """Total calculé (valeurs exactes) et libellés arrondis à 2 décimales pour l'affichage."""

    total: SaleTotal
    display: dict[str, str] = Field(default_factory=dict)


class PeriodStatsRequest(BaseModel):
    sales: list[Sale] = Field(default_factory=list)
    items: list[SaleLineItem] = Field(default_factory=list)
    start_date: datetime
    end_date: Optional[datetime] = None
    settings: Optional[CompanySettings] = None


def _company_settings(override: Optional[CompanySettings], settings: Settings) -> CompanySettings:
    return override if override is not None else settings.company_settings()


def _invalid_settings(e: InvalidSettingsError) -> HTTPException:
    logger.warning("Calcul refusé, paramètres invalides: %s", e)
    return HTTPException(status_code=422, detail=str(e))


@router.post("/convert", response_model=ConvertResponse, summary="Convertir un montant HTG/USD")
def convert_amount(payload: ConvertRequest, settings: Settings = Depends(get_settings)) -> ConvertResponse:
    rate = payload.rate if payload.rate is not None else settings.usd_htg_rate
    try:
        amount = convert(payload.amount, payload.from_currency, payload.to_currency, rate)
    except InvalidSettingsError as e:
        raise _invalid_settings(e) from e
    return ConvertResponse(amount=amount, currency=payload.to_currency)


@router.post("/subtotal", response_model=SubtotalResult, summary="Sous-total unifié d'un panier")
def subtotal(payload: SubtotalRequest, settings: Settings = Depends(get_settings)) -> SubtotalResult:
    company = _company_settings(payload.settings, settings)
    try:
        return aggregate(payload.items, company)
    except InvalidSettingsError as e:
        raise _invalid_settings(e) from e


@router.post(
    "/sales/total",
    response_model=SaleTotalResponse,
    summary="Total TTC d'une vente",
    description="Sous-total HT unifié, remise convertie, TVA après remise, total TTC et marge.",
)
def sale_total(payload: SaleTotalRequest, settings: Settings = Depends(get_settings)) -> SaleTotalResponse:
    company = _company_settings(payload.settings, settings)
    try:
        result = calculate_total_with_profit(payload.items, payload.discount, company)
    except InvalidSettingsError as e:
        raise _invalid_settings(e) from e

    logger.info(
        "Total vente: %s ligne(s), TTC %s",
        len(payload.items),
        format_with_symbol(result.total_ttc, result.currency),
    )
    display = {
        name: format_with_symbol(getattr(result, name), result.currency)
        for name in ("subtotal_ht", "discount", "after_discount", "tva", "total_ttc", "profit")
    }
    return SaleTotalResponse(total=result, display=display)


def _period_stats(payload: PeriodStatsRequest, settings: Settings) -> PeriodStats:
    company = _company_settings(payload.settings, settings)
    try:
        return calculate_period_stats(
            payload.sales,
            payload.items,
            company,
            payload.start_date,
            payload.end_date,
        )
    except InvalidSettingsError as e:
        raise _invalid_settings(e) from e


@router.post("/reports/period", response_model=PeriodStats, summary="Statistiques de ventes d'une période")
def period_report(payload: PeriodStatsRequest, settings: Settings = Depends(get_settings)) -> PeriodStats:
    stats = _period_stats(payload, settings)
    logger.info("Rapport période: %s vente(s)", stats.count)
    return stats


@router.post("/reports/period/csv", summary="Rapport de période au format CSV")
def period_report_csv(payload: PeriodStatsRequest, settings: Settings = Depends(get_settings)) -> Response:
    stats = _period_stats(payload, settings)
    return Response(
        content=_period_stats_to_csv(payload, stats),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="rapport_periode.csv"'},
    )


def _period_stats_to_csv(payload: PeriodStatsRequest, stats: PeriodStats) -> str:
    """Une ligne CSV par rapport, montants arrondis à 2 décimales."""
    row = {
        "debut": payload.start_date.isoformat(),
        "fin": payload.end_date.isoformat() if payload.end_date else "",
        "devise": stats.currency.value,
        "nombre_ventes": stats.count,
        "ca_ttc": money(stats.revenue_ttc),
        "ca_ht": money(stats.revenue_ht),
        "marge_nette": money(stats.profit_net),
        "panier_moyen": money(stats.avg_basket),
        "tva_collectee": money(stats.tva_collected),
        "remises": money(stats.total_discount),
    }

    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=row.keys())
    writer.writeheader()
    writer.writerow(row)
    logger.info("Rapport période exporté en CSV (%s vente(s))", stats.count)
    return buffer.getvalue()
