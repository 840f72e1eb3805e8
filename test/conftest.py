import pytest
from fastapi.testclient import TestClient

from caisse.core.config import Settings, get_settings
from caisse.main import app
from caisse.models.schemas import CompanySettings, SaleLineItem


@pytest.fixture
def htg_settings() -> CompanySettings:
    """Paramètres par défaut de la boutique : 1 USD = 132 HTG, affichage HTG, TVA 10 %."""
    return CompanySettings(usd_htg_rate=132, display_currency="HTG", tva_rate=10)


@pytest.fixture
def usd_settings() -> CompanySettings:
    return CompanySettings(usd_htg_rate=132, display_currency="USD", tva_rate=10)


@pytest.fixture
def mixed_items() -> list[SaleLineItem]:
    """Panier mixte : 1000 HTG (marge 200 HTG) + 10 USD (marge 3 USD)."""
    return [
        SaleLineItem(subtotal=1000, currency="HTG", profit_amount=200),
        SaleLineItem(subtotal=10, currency="USD", profit_amount=3),
    ]


@pytest.fixture
def client():
    """
    Client de test FastAPI avec des paramètres fixes,
    indépendants de l'environnement et d'un éventuel .env.
    """
    app.dependency_overrides[get_settings] = lambda: Settings(
        _env_file=None,
        usd_htg_rate=132,
        display_currency="HTG",
        tva_rate=10,
    )
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def env_client(monkeypatch, tmp_path):
    """
    Client de test qui lit les paramètres depuis l'environnement (get_settings réel).
    Le répertoire courant est isolé pour ignorer un éventuel .env.
    """
    monkeypatch.chdir(tmp_path)
    for name in ("USD_HTG_RATE", "DISPLAY_CURRENCY", "TVA_RATE"):
        monkeypatch.delenv(name, raising=False)
    app.dependency_overrides.clear()
    return TestClient(app)
