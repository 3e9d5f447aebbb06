from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pricing_config.api.routers.pricing_rules import router as pricing_rules_router
from pricing_config.api.routers.settings import router as settings_router
from pricing_config.core.config import settings
from pricing_config.services.scope_resolver import parse_specificity_weights

# Refuse to start with a specificity policy that breaks the dimension ordering.
parse_specificity_weights(settings.SCOPE_SPECIFICITY_WEIGHTS)

app = FastAPI(title="Pricing Configuration API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(settings_router)
app.include_router(pricing_rules_router)


@app.get("/health")
def health():
    return {"status": "up"}
