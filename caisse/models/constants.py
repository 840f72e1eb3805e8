from decimal import Decimal
from typing import Optional

DEFAULT_CURRENCY = "HTG"
DEFAULT_USD_HTG_RATE = Decimal("132")
DEFAULT_TVA_RATE = Decimal("10")
DEFAULT_COMPANY_NAME = "QUINCAILLERIE PRO"

# Précision d'affichage des montants (2 décimales)
CENT = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


class InvalidSettingsError(ValueError):
    """Erreur levée lorsque les paramètres société rendent le calcul impossible (taux <= 0, TVA négative, devise inconnue)."""

    def __init__(self, message: str, usd_htg_rate: Optional[Decimal] = None):
        self.usd_htg_rate = usd_htg_rate
        super().__init__(message)
