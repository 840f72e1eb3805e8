"""
Préconditions sur les paramètres société avant tout calcul.
"""

from decimal import Decimal

from caisse.models.constants import InvalidSettingsError
from caisse.models.schemas import CompanySettings


def validate_rate(rate: Decimal) -> None:
    """Lève InvalidSettingsError si le taux USD/HTG est nul ou négatif (division impossible)."""
    if rate is None or rate <= 0:
        raise InvalidSettingsError(
            f"Paramètres invalides: le taux USD/HTG doit être > 0 (reçu: {rate})",
            rate,
        )


def validate_company_settings(settings: CompanySettings) -> None:
    """
    Vérifie que l'instantané des paramètres société permet le calcul.
    Le taux de TVA est déjà contraint (>= 0) par le schéma.
    """
    validate_rate(settings.usd_htg_rate)
