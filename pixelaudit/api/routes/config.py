"""Configuration endpoints."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException
from pydantic import ValidationError

from pixelaudit.api.schemas.models import ConfigSchema
from pixelaudit.api.services.state import get_settings, reload_settings
from pixelaudit.core.config.presets import list_presets, preset_patch
from pixelaudit.core.config.settings import settings_to_dict

router = APIRouter()


@router.get("/config", response_model=ConfigSchema)
def get_config() -> ConfigSchema:
    """Return the default analysis parameters new sessions start from."""

    return ConfigSchema(**settings_to_dict(get_settings()))


@router.get("/config/presets")
def get_presets() -> dict[str, list[dict[str, object]]]:
    return {"presets": list_presets()}


@router.post("/config/presets/{preset_id}", response_model=ConfigSchema)
def apply_preset(preset_id: str) -> ConfigSchema:
    """Apply a preset by id and return the updated configuration."""

    try:
        patch = preset_patch(preset_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Unknown preset") from None
    settings = reload_settings(patch)
    return ConfigSchema(**settings_to_dict(settings))


@router.post("/config", response_model=ConfigSchema)
def update_config(cfg: ConfigSchema) -> ConfigSchema:
    """Replace the in-memory defaults.

    Only affects this process. Persist configuration via `PXA_` environment
    variables or the YAML config file.
    """

    try:
        settings = reload_settings(cfg.model_dump())
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return ConfigSchema(**settings_to_dict(settings))
