"""Booking policy endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from apps.api.deps import get_settings_provider
from core.exceptions import InvalidPolicy
from domain.models import BookingPolicy, BookingPolicyUpdate
from services.settings_provider import SettingsProvider


router = APIRouter(tags=["settings"])


@router.get("/settings", response_model=BookingPolicy)
def get_settings(settings_provider: SettingsProvider = Depends(get_settings_provider)):
    """Booking policy currently in force."""
    return settings_provider.get_policy()


@router.put("/admin/settings", response_model=BookingPolicy)
def update_settings(
    update: BookingPolicyUpdate,
    settings_provider: SettingsProvider = Depends(get_settings_provider)
):
    """
    Change booking policy values.

    Omitted fields keep their current value.

    Raises:
        HTTPException: 400 if the resulting policy breaks a settings rule
    """
    try:
        return settings_provider.update_policy(update.model_dump(exclude_none=True), actor="admin")
    except InvalidPolicy as e:
        raise HTTPException(status_code=400, detail={"field": e.field, "message": e.message})
