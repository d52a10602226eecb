from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sewcraft.api.routers.user_management import router as user_management_router
from sewcraft.api.routers.users import router as users_router
from sewcraft.shared.config import get_settings


logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)

app = FastAPI(title="SewCraft API")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(user_management_router)
app.include_router(users_router)


@app.get("/health")
def health():
    return {"status": "ok"}
