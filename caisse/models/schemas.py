"""
Schémas Pydantic : lignes de vente, remises, paramètres société et résultats de calcul.
Les montants sont des Decimal côté Python et des nombres côté JSON.
"""

import enum
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, field_validator

from caisse.models.constants import DEFAULT_TVA_RATE, DEFAULT_USD_HTG_RATE, ZERO
from caisse.services.normalization import normalize_currency, parse_amount


class Currency(str, enum.Enum):
    HTG = "HTG"
    USD = "USD"


Amount = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class SaleLineItem(BaseModel):
    """Une ligne de vente enregistrée (immuable)."""

    model_config = ConfigDict(frozen=True)

    subtotal: Amount = Field(..., ge=0, description="Montant de la ligne dans sa devise de transaction")
    currency: Currency = Field(Currency.HTG, description="Devise de la ligne (HTG si absente)")
    profit_amount: Amount = Field(ZERO, description="Marge enregistrée à la vente (0 si absente)")
    sale_id: Optional[str] = Field(None, description="Identifiant de la vente parente")

    @field_validator("currency", mode="before")
    @classmethod
    def default_currency(cls, value):
        return normalize_currency(value)

    @field_validator("subtotal", "profit_amount", mode="before")
    @classmethod
    def parse_amounts(cls, value):
        return parse_amount(value)


class DiscountSpec(BaseModel):
    """Remise appliquée à une vente. Un montant nul signifie « pas de remise »."""

    model_config = ConfigDict(frozen=True)

    amount: Amount = Field(ZERO, ge=0, description="Montant de la remise")
    currency: Currency = Field(Currency.HTG, description="Devise de la remise (HTG si absente)")

    @field_validator("currency", mode="before")
    @classmethod
    def default_currency(cls, value):
        return normalize_currency(value)

    @field_validator("amount", mode="before")
    @classmethod
    def parse_amounts(cls, value):
        return parse_amount(value)


class CompanySettings(BaseModel):
    """
    Instantané en lecture seule des paramètres société utilisés par le calcul.
    Le taux n'est pas contraint ici : validate_company_settings() le vérifie
    et lève InvalidSettingsError, pour que l'erreur reste une erreur de configuration.
    """

    model_config = ConfigDict(frozen=True)

    usd_htg_rate: Amount = Field(DEFAULT_USD_HTG_RATE, description="1 USD = usd_htg_rate HTG")
    display_currency: Currency = Field(Currency.HTG, description="Devise d'affichage unifiée")
    tva_rate: Amount = Field(DEFAULT_TVA_RATE, ge=0, description="Taux de TVA en pourcentage")

    @field_validator("display_currency", mode="before")
    @classmethod
    def default_currency(cls, value):
        return normalize_currency(value)


class Sale(BaseModel):
    """Vente parente : date et remise. Les lignes sont reliées par sale_id."""

    model_config = ConfigDict(frozen=True)

    id: str
    created_at: datetime
    discount_amount: Amount = Field(ZERO, ge=0)
    discount_currency: Currency = Currency.HTG

    @field_validator("discount_currency", mode="before")
    @classmethod
    def default_currency(cls, value):
        return normalize_currency(value)

    @field_validator("discount_amount", mode="before")
    @classmethod
    def parse_amounts(cls, value):
        return parse_amount(value)

    @property
    def discount(self) -> DiscountSpec:
        return DiscountSpec(amount=self.discount_amount, currency=self.discount_currency)


class SubtotalResult(BaseModel):
    htg: Amount
    usd: Amount
    unified: Amount
    display_currency: Currency
    has_multiple_currencies: bool


class TotalResult(BaseModel):
    """Sous-total HT, remise convertie, montant après remise, TVA et total TTC."""

    subtotal_ht: Amount
    discount: Amount
    after_discount: Amount
    tva: Amount
    total_ttc: Amount
    currency: Currency


class SaleTotal(TotalResult):
    profit: Amount


class PeriodStats(BaseModel):
    count: int = 0
    revenue_ttc: Amount = ZERO
    revenue_ht: Amount = ZERO
    profit_net: Amount = ZERO
    avg_basket: Amount = ZERO
    tva_collected: Amount = ZERO
    total_discount: Amount = ZERO
    currency: Currency = Currency.HTG
