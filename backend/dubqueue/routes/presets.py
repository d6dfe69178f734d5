"""
Preset endpoints.

Presets are addressed by name. Saving under an existing name replaces the
stored snapshot; queued jobs pick it up when they run.
"""

import logging
from typing import List

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, ConfigDict

from ..presets import InvalidPresetNameError, Preset, PresetNotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/presets", tags=["presets"])


class PresetListResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    names: List[str]


class OperationResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    success: bool
    message: str


@router.get("", response_model=PresetListResponse)
async def list_presets_endpoint(request: Request):
    """List preset names, sorted case-insensitively."""
    preset_store = request.app.state.preset_store
    return PresetListResponse(names=preset_store.list_names())


@router.get("/{name}", response_model=Preset)
async def get_preset_endpoint(name: str, request: Request):
    """
    Load one preset.

    Raises:
        404: Preset not found or unreadable
    """
    preset_store = request.app.state.preset_store
    try:
        return preset_store.load(name)
    except PresetNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.put("/{name}", response_model=Preset)
async def save_preset_endpoint(name: str, body: Preset, request: Request):
    """Save ``body`` under ``name`` (the body's own name is ignored)."""
    preset_store = request.app.state.preset_store
    preset = body.renamed(name)
    try:
        preset_store.save(preset)
    except InvalidPresetNameError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except OSError as e:
        logger.error(f"Failed to save preset '{name}': {e}")
        raise HTTPException(status_code=500, detail=f"Failed to save preset: {e}")
    return preset


@router.delete("/{name}", response_model=OperationResponse)
async def delete_preset_endpoint(name: str, request: Request):
    preset_store = request.app.state.preset_store
    if not preset_store.delete(name):
        raise HTTPException(status_code=404, detail=f"Preset not found: {name}")
    return OperationResponse(success=True, message=f"Preset deleted: {name}")
