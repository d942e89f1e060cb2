"""
FastAPI app: OAuth2 authorization-code login against a trusted backend.

Decisions:
- .env is loaded before importing flow_auth so FLOW_* and SESSION_* are
  available when settings are built (Ruff E402 suppressed for that).
- The signed SessionMiddleware cookie is the durable store for the session
  credential and the one-shot redirect; its lifetime is SESSION_MAX_AGE_SECONDS.
- Session secret from SESSION_SECRET env; default "change-me" is for dev only.
"""

import logging
import os

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Request
from starlette.middleware.sessions import SessionMiddleware

load_dotenv()

# Load .env before flow_auth so FLOW_* and SESSION_* are set; Ruff E402.
from flow_auth import AuthRoutes, AuthSettings  # noqa: E402
from flow_auth.storage import MappingStore, cached_user  # noqa: E402

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)

settings = AuthSettings.from_env()
auth = AuthRoutes(settings)

app = FastAPI()
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.session_secret,
    max_age=settings.session_max_age,
)
app.include_router(auth.router)


@app.get("/")
async def home(request: Request):
    # cached profile only; protected routes verify against the backend
    user = cached_user(MappingStore(request.session))
    return {"logged_in": bool(user), "user": user}


@app.get("/dashboard")
async def dashboard(user: dict = Depends(auth.require_user)):
    return {"ok": True, "area": "dashboard", "login": user.get("login")}
