"""Locations engine router and initialization."""

from fastapi import APIRouter, Query, Request

from farmreg.services.locations import api

LocationResolver = api.LocationResolver
LocationPath = api.LocationPath
build_resolver = api.build_resolver

router = APIRouter(prefix="/api/locations", tags=["locations"])


def _resolver(request: Request) -> LocationResolver:
    return request.app.state.resolver


def _payload(units) -> dict:
    return {"success": True, "data": [unit.to_dict() for unit in units]}


if api.EXTERNAL_SERVICES.get("states"):
    @router.get("/states")
    async def states(request: Request):
        return _payload(_resolver(request).get_states())


if api.EXTERNAL_SERVICES.get("children"):
    @router.get("/local-governments")
    async def local_governments(request: Request, stateId: str = Query("")):
        return _payload(await _resolver(request).get_lgas(stateId))

    @router.get("/wards")
    async def wards(request: Request, lgaId: str = Query("")):
        return _payload(await _resolver(request).get_wards(lgaId))

    @router.get("/polling-units")
    async def polling_units(request: Request, wardId: str = Query("")):
        return _payload(await _resolver(request).get_polling_units(wardId))


if api.EXTERNAL_SERVICES.get("stats"):
    @router.get("/stats")
    async def stats(request: Request):
        return _resolver(request).stats()


async def initialize(resolver: LocationResolver):
    """
    Initialize locations engine.
    """
    return await api.initialize(resolver)
