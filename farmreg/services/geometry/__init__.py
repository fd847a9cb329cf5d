"""Geometry engine router."""

from fastapi import APIRouter, HTTPException, status

from farmreg.services.geometry import api

validate_boundary = api.validate_boundary
FarmBoundarySession = api.FarmBoundarySession

router = APIRouter(prefix="/api/geometry", tags=["geometry"])


def _points(payload: dict) -> list:
    try:
        return api.parse_points(payload)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


if api.EXTERNAL_SERVICES.get("area"):
    @router.post("/area")
    async def area(payload: dict):
        points = _points(payload)
        try:
            return api.area_summary(points)
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


if api.EXTERNAL_SERVICES.get("validate"):
    @router.post("/validate")
    async def validate(payload: dict):
        return api.validate_boundary(_points(payload)).to_dict()
