from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from linebalancer.balancing.api import router as line_balancing_router
from linebalancer.feature_flags import FeatureFlags

logger = logging.getLogger(__name__)


app = FastAPI(title="Line Balancing Engine")
app.include_router(line_balancing_router)
logger.info(f"Line Balancing API loaded (batch model: {FeatureFlags.get_batch_model().value})")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
def health():
    return {"status": "ok"}
