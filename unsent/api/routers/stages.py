"""
/stages — the emotion stage table and narrative fragments for UI flavor.
"""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request

from ...api.schemas import FragmentOut, StageOut
from ...scoring.stages import get_stage, random_fragment

router = APIRouter(prefix="/stages", tags=["stages"])


def _get_stages(request: Request):
    return request.app.state.stages


@router.get("", response_model=List[StageOut])
def list_stages(stages=Depends(_get_stages)):
    """Return the five stages in ascending score order."""
    return [StageOut(**s.to_dict()) for s in stages]


@router.get("/fragment", response_model=FragmentOut)
def any_fragment(stages=Depends(_get_stages)):
    return FragmentOut(stage=None, fragment=random_fragment(None, stages))


@router.get("/{stage_id}", response_model=StageOut)
def read_stage(stage_id: str, stages=Depends(_get_stages)):
    stage = get_stage(stage_id, stages)
    if stage is None:
        raise HTTPException(status_code=404, detail=f"Unknown stage: {stage_id!r}")
    return StageOut(**stage.to_dict())


@router.get("/{stage_id}/fragment", response_model=FragmentOut)
def stage_fragment(stage_id: str, stages=Depends(_get_stages)):
    if get_stage(stage_id, stages) is None:
        raise HTTPException(status_code=404, detail=f"Unknown stage: {stage_id!r}")
    return FragmentOut(stage=stage_id, fragment=random_fragment(stage_id, stages))
