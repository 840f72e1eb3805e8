"""
Fonctions de normalisation des données reçues par le service.
Les ventes anciennes n'ont pas de devise : elles sont ramenées à HTG ici,
avant que les montants n'atteignent le calcul.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Any

from caisse.models.constants import DEFAULT_CURRENCY, ZERO

SUPPORTED_CURRENCIES = {"HTG", "USD"}


def normalize_currency(value: Any) -> str:
    """
    Retourne le code devise normalisé ("HTG" ou "USD").
    None ou chaîne vide => HTG (compatibilité avec les enregistrements mono-devise).
    Lève ValueError pour un code inconnu.
    """
    if value is None:
        return DEFAULT_CURRENCY
    code = getattr(value, "value", value)
    if not isinstance(code, str):
        raise ValueError(f"Devise invalide: {value!r}")
    code = code.strip().upper()
    if not code:
        return DEFAULT_CURRENCY
    if code not in SUPPORTED_CURRENCIES:
        raise ValueError(f"Devise non supportée: {value!r} (attendu: HTG ou USD)")
    return code


def clean_amount_string(value: str) -> str:
    """
    Nettoie une chaîne représentant un montant avant conversion en Decimal.
    Enlève espaces, symboles monétaires et séparateurs de milliers, garde le décimal.
    """
    if not value or not isinstance(value, str):
        return value
    # \s couvre aussi les espaces insécables
    s = re.sub(r"\s", "", value)
    s = s.replace(",", ".")
    # Garder uniquement chiffres, point décimal et éventuel signe
    s = re.sub(r"[^\d.\-+]", "", s)
    # Plusieurs points : le dernier est le décimal
    parts = s.split(".")
    if len(parts) > 2:
        s = "".join(parts[:-1]) + "." + parts[-1]
    return s


def parse_amount(value: Any) -> Decimal:
    """
    Convertit un montant (str, int, float, Decimal, None) en Decimal.
    None => 0. Les float passent par str() pour éviter les artefacts binaires.
    Lève ValueError si la chaîne n'est pas un nombre.
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Montant invalide: {value!r}")
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    if isinstance(value, str):
        if not value.strip():
            return ZERO
        cleaned = clean_amount_string(value)
        try:
            return Decimal(cleaned)
        except InvalidOperation as e:
            raise ValueError(f"Montant invalide: {value!r}") from e
    raise ValueError(f"Montant invalide: {value!r}")
