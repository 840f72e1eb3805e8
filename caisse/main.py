"""
Application FastAPI : calcul des totaux de vente multi-devises (HTG/USD), remise et TVA.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from caisse.api.routes import router
from caisse.core.config import get_settings
from caisse.models.constants import InvalidSettingsError
from caisse.models.validation import validate_company_settings

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def startup():
    """Vérification des paramètres société au démarrage."""
    try:
        settings = get_settings()
        validate_company_settings(settings.company_settings())
        logger.info(
            "Paramètres chargés: 1 USD = %s HTG, affichage %s, TVA %s%%.",
            settings.usd_htg_rate,
            settings.display_currency.value,
            settings.tva_rate,
        )
    except ValueError as e:
        logger.warning("Paramètres société invalides au démarrage: %s", e)


@asynccontextmanager
async def lifespan(app: FastAPI):
    startup()
    yield


app = FastAPI(
    title="Caisse multi-devises",
    description="Totaux de vente HTG/USD : sous-total unifié, remise, TVA, marge et rapports de période.",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


@app.exception_handler(InvalidSettingsError)
async def invalid_settings_handler(request: Request, exc: InvalidSettingsError):
    """Paramètres société inutilisables (environnement ou requête) : 422 avec le détail."""
    logger.warning("Paramètres invalides sur %s: %s", request.url.path, exc)
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.get("/health")
def health():
    """Endpoint de santé pour vérifier que le service répond."""
    return {"status": "ok"}
