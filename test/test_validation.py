"""
Tests unitaires des préconditions sur les paramètres société (validation.py).
"""

from decimal import Decimal

import pytest

from caisse.core.config import Settings, get_settings
from caisse.models.constants import InvalidSettingsError
from caisse.models.schemas import CompanySettings, Currency, DiscountSpec, SaleLineItem
from caisse.models.validation import validate_company_settings, validate_rate
from caisse.services.currency import aggregate, calculate_profit, calculate_total_ttc, convert


@pytest.mark.parametrize("rate", [Decimal("0"), Decimal("-132")])
def test_validate_rate_rejects_non_positive_rate(rate):
    with pytest.raises(InvalidSettingsError) as exc_info:
        validate_rate(rate)
    assert exc_info.value.usd_htg_rate == rate


def test_invalid_settings_error_is_a_value_error():
    assert issubclass(InvalidSettingsError, ValueError)


def test_validate_company_settings_accepts_defaults():
    validate_company_settings(CompanySettings())


def test_convert_with_zero_rate_fails_fast():
    with pytest.raises(InvalidSettingsError):
        convert(Decimal("10"), "USD", "HTG", Decimal("0"))


@pytest.mark.parametrize("rate", [0, -1])
def test_calculations_refuse_invalid_rate(rate):
    settings = CompanySettings(usd_htg_rate=rate, display_currency="HTG", tva_rate=10)
    items = [SaleLineItem(subtotal=100)]

    with pytest.raises(InvalidSettingsError):
        aggregate(items, settings)
    with pytest.raises(InvalidSettingsError):
        calculate_total_ttc(items, DiscountSpec(), settings)
    with pytest.raises(InvalidSettingsError):
        calculate_profit(items, settings)


def test_settings_defaults_and_snapshot():
    settings = Settings(_env_file=None, usd_htg_rate="140.5", display_currency="USD", tva_rate=0)
    company = settings.company_settings()

    assert company.usd_htg_rate == Decimal("140.5")
    assert company.display_currency == Currency.USD
    assert company.tva_rate == 0


def test_settings_read_from_environment(monkeypatch):
    monkeypatch.setenv("USD_HTG_RATE", "131.25")
    monkeypatch.setenv("DISPLAY_CURRENCY", "USD")
    monkeypatch.setenv("TVA_RATE", "8")

    company = Settings(_env_file=None).company_settings()

    assert company.usd_htg_rate == Decimal("131.25")
    assert company.display_currency == Currency.USD
    assert company.tva_rate == 8


def test_get_settings_normalizes_display_currency(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("DISPLAY_CURRENCY", " usd ")

    assert get_settings().display_currency == Currency.USD


@pytest.mark.parametrize("name,value", [("TVA_RATE", "-5"), ("DISPLAY_CURRENCY", "EUR")])
def test_get_settings_invalid_environment_raises_invalid_settings(monkeypatch, tmp_path, name, value):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv(name, value)

    with pytest.raises(InvalidSettingsError) as exc_info:
        get_settings()
    assert name.lower() in str(exc_info.value)
