from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import date
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field

from subscription_tracker import __version__
from subscription_tracker.auth import authenticate_user, get_config, get_current_user, register_user
from subscription_tracker.auth.crud import get_user_by_id, public_user
from subscription_tracker.config import Config, load_config
from subscription_tracker.db import connect, init_db
from subscription_tracker.errors import NotFoundError, parse_id
from subscription_tracker.subscriptions import service as subscriptions

from .errors import setup_exception_handlers

API_PREFIX = "/api/v1"


def _debug(msg: str) -> None:
    print(f"[api] {msg}")


router = APIRouter()


# -----------------------------
# Health
# -----------------------------


@router.get("/health")
def health() -> Dict[str, Any]:
    return {"status": "ok"}


# -----------------------------
# Auth
# -----------------------------


class SignUpRequest(BaseModel):
    name: str
    email: str
    password: str


class SignInRequest(BaseModel):
    email: str
    password: str


@router.post(f"{API_PREFIX}/auth/sign-up", status_code=status.HTTP_201_CREATED)
def auth_sign_up(payload: SignUpRequest, cfg: Config = Depends(get_config)) -> Dict[str, Any]:
    user, token = register_user(cfg, name=payload.name, email=payload.email, password=payload.password)
    return {"message": "User created successfully", "user": user, "token": token, "success": True}


@router.post(f"{API_PREFIX}/auth/sign-in")
def auth_sign_in(payload: SignInRequest, cfg: Config = Depends(get_config)) -> Dict[str, Any]:
    user, token = authenticate_user(cfg, email=payload.email, password=payload.password)
    return {
        "message": "User signed in successfully",
        "data": {"user": user, "token": token, "success": True},
    }


@router.post(f"{API_PREFIX}/auth/sign-out")
def auth_sign_out() -> Dict[str, Any]:
    """Tokens are stateless; signing out means the client discards its token."""
    return {"message": "User signed out successfully", "success": True}


# -----------------------------
# Users
# -----------------------------


@router.get(f"{API_PREFIX}/users/")
def users_me(
    user: Dict[str, Any] = Depends(get_current_user),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    # Re-read: the account may have been removed since the guard resolved it.
    with connect(cfg.DB_DSN) as conn:
        row = get_user_by_id(conn, int(user["id"]))
    if row is None:
        raise NotFoundError("User not found")
    return {"message": "User profile fetched successfully", "data": {"user": public_user(row), "success": True}}


@router.get(f"{API_PREFIX}/users/{{user_id}}")
def users_get(
    user_id: str,
    _user: Dict[str, Any] = Depends(get_current_user),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    uid = parse_id(user_id)
    with connect(cfg.DB_DSN) as conn:
        row = get_user_by_id(conn, uid)
    if row is None:
        raise NotFoundError("User not found")
    return {"message": "User fetched successfully", "data": {"user": public_user(row), "success": True}}


# -----------------------------
# Subscriptions
# -----------------------------


class SubscriptionPayload(BaseModel):
    """Create / update body. Everything is optional here; the subscription
    validator reports missing required fields all at once."""

    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    price: Optional[float] = None
    currency: Optional[str] = None
    frequency: Optional[str] = None
    category: Optional[str] = None
    payment_method: Optional[str] = Field(default=None, alias="paymentMethod")
    status: Optional[str] = None
    start_date: Optional[date] = Field(default=None, alias="startDate")
    end_date: Optional[date] = Field(default=None, alias="endDate")


class CancelRequest(BaseModel):
    reason: Optional[str] = None


@router.get(f"{API_PREFIX}/subscriptions/")
def subscriptions_list(user: Dict[str, Any] = Depends(get_current_user), cfg: Config = Depends(get_config)) -> Dict[str, Any]:
    subs = subscriptions.list_subscriptions(cfg, user_id=int(user["id"]))
    return {
        "message": "Subscriptions fetched successfully",
        "data": {"subscriptions": subs, "total": len(subs), "success": True},
    }


@router.post(f"{API_PREFIX}/subscriptions/", status_code=status.HTTP_201_CREATED)
def subscriptions_create(
    payload: SubscriptionPayload,
    user: Dict[str, Any] = Depends(get_current_user),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    sub = subscriptions.create_subscription(cfg, user_id=int(user["id"]), fields=payload.model_dump())
    return {"message": "Subscription created successfully", "data": {"subscription": sub, "success": True}}


@router.get(f"{API_PREFIX}/subscriptions/upcoming-renewals")
def subscriptions_upcoming(
    days: Optional[int] = Query(default=None),
    user: Dict[str, Any] = Depends(get_current_user),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    window = int(days) if days is not None else int(cfg.UPCOMING_RENEWALS_DEFAULT_DAYS)
    renewals = subscriptions.upcoming_renewals(cfg, user_id=int(user["id"]), days=window)
    return {
        "message": "Upcoming renewals fetched successfully",
        "data": {
            "renewals": renewals,
            # Per currency; amounts in different currencies are not summed.
            "totalAmount": subscriptions.renewal_totals(renewals),
            "total": len(renewals),
            "days": window,
            "success": True,
        },
    }


@router.get(f"{API_PREFIX}/subscriptions/user/{{user_id}}")
def subscriptions_for_user(
    user_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    result = subscriptions.user_subscriptions(cfg, viewer_id=int(user["id"]), user_id=parse_id(user_id))
    return {"message": "User subscriptions fetched successfully", "data": {**result, "success": True}}


@router.get(f"{API_PREFIX}/subscriptions/{{subscription_id}}")
def subscriptions_get(
    subscription_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    sub = subscriptions.get_subscription(cfg, user_id=int(user["id"]), subscription_id=parse_id(subscription_id))
    return {"message": "Subscription fetched successfully", "data": {"subscription": sub, "success": True}}


@router.put(f"{API_PREFIX}/subscriptions/{{subscription_id}}")
def subscriptions_update(
    subscription_id: str,
    payload: SubscriptionPayload,
    user: Dict[str, Any] = Depends(get_current_user),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    sub = subscriptions.update_subscription(
        cfg,
        user_id=int(user["id"]),
        subscription_id=parse_id(subscription_id),
        changes=payload.model_dump(exclude_unset=True),
    )
    return {"message": "Subscription updated successfully", "data": {"subscription": sub, "success": True}}


@router.put(f"{API_PREFIX}/subscriptions/{{subscription_id}}/cancel")
def subscriptions_cancel(
    subscription_id: str,
    payload: Optional[CancelRequest] = None,
    user: Dict[str, Any] = Depends(get_current_user),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    sub = subscriptions.cancel_subscription(
        cfg,
        user_id=int(user["id"]),
        subscription_id=parse_id(subscription_id),
        reason=payload.reason if payload is not None else None,
    )
    return {"message": "Subscription cancelled successfully", "data": {"subscription": sub, "success": True}}


@router.delete(f"{API_PREFIX}/subscriptions/{{subscription_id}}")
def subscriptions_delete(
    subscription_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    subscriptions.delete_subscription(cfg, user_id=int(user["id"]), subscription_id=parse_id(subscription_id))
    return {"message": "Subscription deleted successfully", "success": True}


@router.get("/")
def root() -> Dict[str, Any]:
    return {"message": "Welcome to the Subscription Tracker API", "success": True}


# -----------------------------
# App factory
# -----------------------------


def create_app(cfg: Config | None = None) -> FastAPI:
    """Build the API around an explicit Config (defaults to `load_config()`)."""
    cfg = cfg or load_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Ensure schema exists.
        init_db(cfg.DB_DSN)
        yield

    app = FastAPI(title="Subscription Tracker API", version=__version__, lifespan=lifespan)
    # Auth deps and handlers read the config from here.
    app.state.cfg = cfg

    # CORS is mainly needed for local development (Vite on :5173 -> API on :8000).
    cors_origins = [o.strip() for o in (cfg.CORS_ALLOW_ORIGINS or "").split(",") if o.strip()]
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    if cfg.LOG_REQUESTS:

        @app.middleware("http")
        async def _log_requests(request: Request, call_next):
            response = await call_next(request)
            _debug(f"{request.method} {request.url.path} -> {response.status_code}")
            return response

    setup_exception_handlers(app)
    app.include_router(router)
    return app
