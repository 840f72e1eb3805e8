"""
Calcul multi-devises d'une vente : conversion HTG/USD, sous-total unifié,
remise, TVA et marge.

Règles :
- une seule conversion multiplicative/divisive avec le taux USD/HTG, jamais composée ;
- la remise est plafonnée : le montant après remise ne descend jamais sous 0 ;
- la TVA est toujours calculée après remise ;
- aucun arrondi ici, l'arrondi à 2 décimales est une affaire d'affichage.
"""

import logging
from decimal import Decimal
from typing import Iterable, Optional, Union

from caisse.models.constants import HUNDRED, ZERO
from caisse.models.schemas import (
    CompanySettings,
    Currency,
    DiscountSpec,
    Sale,
    SaleLineItem,
    SaleTotal,
    SubtotalResult,
    TotalResult,
)
from caisse.models.validation import validate_company_settings, validate_rate
from caisse.services.normalization import normalize_currency, parse_amount

logger = logging.getLogger(__name__)

CurrencyLike = Union[Currency, str, None]


def convert(
    amount: Decimal,
    from_currency: CurrencyLike,
    to_currency: CurrencyLike,
    rate: Decimal,
) -> Decimal:
    """
    Convertit un montant entre HTG et USD.
    USD -> HTG multiplie par le taux, HTG -> USD divise. Devise source absente => HTG.
    Lève InvalidSettingsError si le taux est <= 0.
    """
    validate_rate(rate)
    source = Currency(normalize_currency(from_currency))
    target = Currency(normalize_currency(to_currency))
    if source == target:
        return amount
    if source == Currency.USD:
        return amount * rate
    return amount / rate


def _unify(htg: Decimal, usd: Decimal, settings: CompanySettings) -> Decimal:
    # Un seul des deux paniers est converti vers la devise d'affichage
    if settings.display_currency == Currency.USD:
        return usd + convert(htg, Currency.HTG, Currency.USD, settings.usd_htg_rate)
    return htg + convert(usd, Currency.USD, Currency.HTG, settings.usd_htg_rate)


def aggregate(items: Iterable[SaleLineItem], settings: CompanySettings) -> SubtotalResult:
    """
    Sous-totaux par devise et sous-total unifié dans la devise d'affichage.
    has_multiple_currencies indique qu'il faut afficher le détail par devise.
    """
    validate_company_settings(settings)
    htg_total = ZERO
    usd_total = ZERO
    for item in items:
        if item.currency == Currency.USD:
            usd_total += item.subtotal
        else:
            htg_total += item.subtotal

    return SubtotalResult(
        htg=htg_total,
        usd=usd_total,
        unified=_unify(htg_total, usd_total, settings),
        display_currency=settings.display_currency,
        has_multiple_currencies=htg_total > 0 and usd_total > 0,
    )


def calculate_total_ttc(
    items: Iterable[SaleLineItem],
    discount: Optional[DiscountSpec],
    settings: CompanySettings,
) -> TotalResult:
    """
    Sous-total HT unifié -> remise convertie -> montant après remise (>= 0)
    -> TVA sur le montant après remise -> total TTC.
    """
    subtotal_ht = aggregate(items, settings).unified

    discount_converted = ZERO
    if discount is not None and discount.amount > 0:
        discount_converted = convert(
            discount.amount,
            discount.currency,
            settings.display_currency,
            settings.usd_htg_rate,
        )

    after_discount = max(ZERO, subtotal_ht - discount_converted)
    tva = after_discount * settings.tva_rate / HUNDRED
    total_ttc = after_discount + tva

    return TotalResult(
        subtotal_ht=subtotal_ht,
        discount=discount_converted,
        after_discount=after_discount,
        tva=tva,
        total_ttc=total_ttc,
        currency=settings.display_currency,
    )


def discount_percent(total: TotalResult) -> Decimal:
    """Part de la remise dans le sous-total HT, en pourcentage (0 si sous-total nul)."""
    if total.subtotal_ht > 0:
        return total.discount / total.subtotal_ht * HUNDRED
    return ZERO


def calculate_profit(
    items: Iterable[SaleLineItem],
    settings: CompanySettings,
    discount_percent: Decimal = ZERO,
) -> Decimal:
    """
    Marge unifiée dans la devise d'affichage, réduite proportionnellement à la remise.
    Approximation : la marge est supposée répartie uniformément sur les lignes.
    """
    validate_company_settings(settings)
    htg_profit = ZERO
    usd_profit = ZERO
    for item in items:
        if item.currency == Currency.USD:
            usd_profit += item.profit_amount
        else:
            htg_profit += item.profit_amount

    unified = _unify(htg_profit, usd_profit, settings)
    return unified * (1 - parse_amount(discount_percent) / HUNDRED)


def calculate_total_with_profit(
    items: Iterable[SaleLineItem],
    discount: Optional[DiscountSpec],
    settings: CompanySettings,
) -> SaleTotal:
    """Total TTC et marge ajustée de la part de remise dans le sous-total HT."""
    items = list(items)
    total = calculate_total_ttc(items, discount, settings)
    profit = calculate_profit(items, settings, discount_percent(total))
    return SaleTotal(**total.model_dump(), profit=profit)


def calculate_sale_total(
    sale: Sale,
    items: Iterable[SaleLineItem],
    settings: CompanySettings,
) -> SaleTotal:
    """Total d'une vente avec sa propre remise."""
    result = calculate_total_with_profit(items, sale.discount, settings)
    logger.debug(
        "Vente %s: HT=%s remise=%s TTC=%s marge=%s %s",
        sale.id,
        result.subtotal_ht,
        result.discount,
        result.total_ttc,
        result.profit,
        result.currency.value,
    )
    return result
