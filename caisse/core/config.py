"""
Configuration de l'application via variables d'environnement.
Utilise Pydantic BaseSettings pour le chargement et la validation.
"""

from decimal import Decimal

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from caisse.models.constants import (
    DEFAULT_COMPANY_NAME,
    DEFAULT_TVA_RATE,
    DEFAULT_USD_HTG_RATE,
    InvalidSettingsError,
)
from caisse.models.schemas import CompanySettings, Currency
from caisse.services.normalization import normalize_currency


class Settings(BaseSettings):
    """Paramètres société chargés depuis l'environnement (ou .env)."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    usd_htg_rate: Decimal = DEFAULT_USD_HTG_RATE
    """Taux de change : 1 USD = usd_htg_rate HTG."""

    display_currency: Currency = Currency.HTG
    """Devise dans laquelle les ventes multi-devises sont unifiées."""

    tva_rate: Decimal = Field(DEFAULT_TVA_RATE, ge=0)
    """Taux de TVA en pourcentage, appliqué après remise."""

    company_name: str = DEFAULT_COMPANY_NAME

    @field_validator("display_currency", mode="before")
    @classmethod
    def default_currency(cls, value):
        return normalize_currency(value)

    def company_settings(self) -> CompanySettings:
        """Instantané en lecture seule passé explicitement aux fonctions de calcul."""
        return CompanySettings(
            usd_htg_rate=self.usd_htg_rate,
            display_currency=self.display_currency,
            tva_rate=self.tva_rate,
        )


def get_settings() -> Settings:
    """
    Retourne l'instance des settings (singleton implicite via dépendance FastAPI).
    Une valeur d'environnement invalide lève InvalidSettingsError.
    """
    try:
        return Settings()
    except ValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise InvalidSettingsError(f"Paramètres invalides: {details}") from e
