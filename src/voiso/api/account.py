"""
Account Routes: quota, plan and generation history.

Endpoints:
    GET /v1/quota        - Rolling 24h usage
    GET /v1/plan         - Current plan and its daily limit
    PUT /v1/plan         - Switch plan (clears any per-user override)
    GET /v1/generations  - Recent generations with their voices
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from voiso.api.dependencies import get_current_user, get_services
from voiso.api.schemas import PlanResponse, PlanUpdate, QuotaResponse
from voiso.auth.identity import Identity
from voiso.core.logging import get_logger, info
from voiso.services.factory import ServiceBundle
from voiso.services.validators import validate_plan

router = APIRouter(prefix="/v1", tags=["account"])

_LOG = get_logger("voiso.api.account")


def _plan_body(services: ServiceBundle, user_id: str) -> dict:
    profile = services.repository.get_profile(user_id)
    return {
        "plan": profile.plan if profile is not None else "free",
        "daily_limit": services.quota.limit_for(user_id),
    }


@router.get("/quota", response_model=QuotaResponse)
def get_quota(
    user: Identity = Depends(get_current_user),
    services: ServiceBundle = Depends(get_services),
):
    return services.quota.usage(user.user_id).to_dict()


@router.get("/plan", response_model=PlanResponse)
def get_plan(
    user: Identity = Depends(get_current_user),
    services: ServiceBundle = Depends(get_services),
):
    return _plan_body(services, user.user_id)


@router.put("/plan", response_model=PlanResponse)
def update_plan(
    body: PlanUpdate,
    user: Identity = Depends(get_current_user),
    services: ServiceBundle = Depends(get_services),
):
    plan = validate_plan(body.plan)
    services.repository.set_plan(user.user_id, plan)
    info(_LOG, "plan_updated", plan=plan)
    return _plan_body(services, user.user_id)


@router.get("/generations")
def list_generations(
    limit: int = Query(10, ge=1, le=100),
    user: Identity = Depends(get_current_user),
    services: ServiceBundle = Depends(get_services),
):
    return {"generations": services.generation.history(user.user_id, limit)}
