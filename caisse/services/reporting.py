"""
Agrégats de ventes sur une période : CA TTC/HT, marge nette, TVA collectée,
remises et panier moyen, tous exprimés dans la devise d'affichage.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from caisse.models.constants import ZERO
from caisse.models.schemas import (
    CompanySettings,
    PeriodStats,
    Sale,
    SaleLineItem,
    SaleTotal,
)
from caisse.models.validation import validate_company_settings
from caisse.services.currency import calculate_sale_total

logger = logging.getLogger(__name__)


def group_items_by_sale(items: Iterable[SaleLineItem]) -> dict[str, list[SaleLineItem]]:
    """Regroupe les lignes par sale_id. Les lignes sans sale_id sont ignorées."""
    grouped: dict[str, list[SaleLineItem]] = defaultdict(list)
    for item in items:
        if item.sale_id:
            grouped[item.sale_id].append(item)
    return dict(grouped)


def _sale_totals(
    sales: Iterable[Sale],
    items: Iterable[SaleLineItem],
    settings: CompanySettings,
) -> list[SaleTotal]:
    by_sale = group_items_by_sale(items)
    return [calculate_sale_total(sale, by_sale.get(sale.id, []), settings) for sale in sales]


def calculate_revenue_ttc(sales, items, settings: CompanySettings) -> Decimal:
    return sum((t.total_ttc for t in _sale_totals(sales, items, settings)), ZERO)


def calculate_revenue_ht(sales, items, settings: CompanySettings) -> Decimal:
    """CA HT après remise (somme des after_discount)."""
    return sum((t.after_discount for t in _sale_totals(sales, items, settings)), ZERO)


def calculate_net_profit(sales, items, settings: CompanySettings) -> Decimal:
    return sum((t.profit for t in _sale_totals(sales, items, settings)), ZERO)


def calculate_tva_collected(sales, items, settings: CompanySettings) -> Decimal:
    return sum((t.tva for t in _sale_totals(sales, items, settings)), ZERO)


def _as_utc(value: datetime) -> datetime:
    # Les dates naïves sont considérées en UTC pour pouvoir être comparées
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def filter_sales_by_period(
    sales: Iterable[Sale],
    start_date: datetime,
    end_date: Optional[datetime] = None,
) -> list[Sale]:
    """Ventes dont created_at est dans [start_date, end_date] (bornes incluses, fin optionnelle)."""
    start = _as_utc(start_date)
    end = _as_utc(end_date) if end_date is not None else None
    return [
        sale
        for sale in sales
        if _as_utc(sale.created_at) >= start and (end is None or _as_utc(sale.created_at) <= end)
    ]


def calculate_period_stats(
    sales: Sequence[Sale],
    items: Sequence[SaleLineItem],
    settings: CompanySettings,
    start_date: datetime,
    end_date: Optional[datetime] = None,
) -> PeriodStats:
    """
    Statistiques d'une période.

    Chaque vente de la période est calculée une seule fois (total + marge) ;
    la remise convertie de ce calcul alimente aussi total_discount.
    Une période vide donne count=0 et des sommes nulles, avg_basket compris.
    """
    validate_company_settings(settings)

    period_sales = filter_sales_by_period(sales, start_date, end_date)
    sale_ids = {sale.id for sale in period_sales}
    period_items = [item for item in items if item.sale_id and item.sale_id in sale_ids]

    ignored = len(items) - len(period_items)
    if ignored:
        logger.debug("%s ligne(s) hors période ou sans vente ignorée(s)", ignored)

    totals = _sale_totals(period_sales, period_items, settings)

    revenue_ttc = sum((t.total_ttc for t in totals), ZERO)
    count = len(period_sales)

    stats = PeriodStats(
        count=count,
        revenue_ttc=revenue_ttc,
        revenue_ht=sum((t.after_discount for t in totals), ZERO),
        profit_net=sum((t.profit for t in totals), ZERO),
        avg_basket=revenue_ttc / count if count > 0 else ZERO,
        tva_collected=sum((t.tva for t in totals), ZERO),
        total_discount=sum((t.discount for t in totals), ZERO),
        currency=settings.display_currency,
    )
    logger.debug(
        "Période %s -> %s: %s vente(s), CA TTC=%s %s",
        start_date.isoformat(),
        end_date.isoformat() if end_date else "...",
        count,
        revenue_ttc,
        settings.display_currency.value,
    )
    return stats
