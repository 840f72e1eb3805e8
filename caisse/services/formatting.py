"""
Mise en forme des montants pour l'affichage (tickets, rapports, exports).
Format français : espace fine insécable pour les milliers, virgule décimale.
"""

from decimal import ROUND_HALF_UP, Decimal

from caisse.models.constants import CENT
from caisse.models.schemas import Currency
from caisse.services.normalization import normalize_currency, parse_amount

THOUSANDS_SEPARATOR = "\u202f"
MILLION = Decimal("1000000")
THOUSAND = Decimal("1000")


def money(value) -> Decimal:
    """Arrondi d'affichage à 2 décimales (ROUND_HALF_UP)."""
    return parse_amount(value).quantize(CENT, rounding=ROUND_HALF_UP)


def format_number(value, decimals: int = 2) -> str:
    """
    Formate un nombre à la française : 1234567.891 -> "1 234 567,89".
    """
    quantum = Decimal(1).scaleb(-decimals)
    amount = parse_amount(value).quantize(quantum, rounding=ROUND_HALF_UP)
    formatted = f"{amount:,.{decimals}f}"
    return formatted.replace(",", THOUSANDS_SEPARATOR).replace(".", ",")


def format_compact(value) -> str:
    """Format court pour les cartes/KPI : 1.2M, 3.5K, sinon entier."""
    amount = parse_amount(value)
    if amount >= MILLION:
        return f"{(amount / MILLION).quantize(Decimal('0.1'), rounding=ROUND_HALF_UP)}M"
    if amount >= THOUSAND:
        return f"{(amount / THOUSAND).quantize(Decimal('0.1'), rounding=ROUND_HALF_UP)}K"
    return format_number(amount, 0)


def currency_symbol(currency) -> str:
    return "$" if normalize_currency(currency) == Currency.USD.value else "HTG"


def format_with_symbol(value, currency) -> str:
    """Montant avec symbole : $ devant pour USD, HTG après pour HTG."""
    formatted = format_number(value, 2)
    if normalize_currency(currency) == Currency.USD.value:
        return f"${formatted}"
    return f"{formatted} HTG"
