"""FastAPI application entrypoint."""

from __future__ import annotations

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pixelaudit.api.routes import analysis, config, exclusions, health

app = FastAPI(title="Pixelaudit API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(config.router)
app.include_router(exclusions.router)
app.include_router(analysis.router)


if __name__ == "__main__":
    uvicorn.run("pixelaudit.api.main:app", host="0.0.0.0", port=8000, reload=True)
