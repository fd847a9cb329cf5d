"""
Platform app factory and initialization helpers.

Creates the FastAPI application, wires health check, runs engine initializers on
startup, ensures core collections exist, and manages the platform DB lifecycle.
"""

import logging
from contextlib import asynccontextmanager
from typing import Awaitable, Callable, Iterable, Optional

from fastapi import APIRouter, FastAPI, HTTPException, Query, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from farmreg.platform import utils
from farmreg.platform.config import PlatformConfig
from farmreg.platform.db_connection import PlatformDatabase, platform_db
from farmreg.services import geometry, locations

Initializer = Callable[[], Awaitable[None]]

REQUIRED_COLLECTIONS = ["farms"]
logger = logging.getLogger("farmreg.platform")


async def ensure_platform_collections(db) -> None:
    """
    Ensure core collections exist on the platform database.
    """
    existing = set(await db.list_collection_names())
    for name in REQUIRED_COLLECTIONS:
        if name not in existing:
            await db.create_collection(name)
    logger.info("Platform collections ready: %s", REQUIRED_COLLECTIONS)


def _create_lifespan(
    db: PlatformDatabase,
    initializers: Iterable[Initializer],
):
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        db.connect()
        logger.info("Connected platform DB")
        await ensure_platform_collections(db.get_db())
        for init in initializers:
            logger.info("Running initializer %s", getattr(init, "__name__", str(init)))
            await init()
        app.state.engines_ready = True
        yield
        # Shutdown
        db.close()
        logger.info("Closed platform DB")

    return lifespan


def create_app(
    config: Optional[PlatformConfig] = None,
    db: Optional[PlatformDatabase] = None,
    resolver: Optional[locations.LocationResolver] = None,
    engine_initializers: Optional[Iterable[Initializer]] = None,
) -> FastAPI:
    """
    Build the FastAPI app with provided configuration, DB, location resolver and initializers.
    """
    cfg = config or PlatformConfig.from_env()
    database = db or platform_db
    location_resolver = resolver or locations.build_resolver()

    async def initialize_locations():
        await locations.initialize(location_resolver)

    default_initializers = [initialize_locations]
    initializers = list(engine_initializers) if engine_initializers is not None else default_initializers

    app = FastAPI(
        title="Farm Registration Core API",
        version="0.1.0",
        lifespan=_create_lifespan(database, initializers),
    )
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    app.state.config = cfg
    app.state.db = database
    app.state.resolver = location_resolver

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    farms_router = APIRouter(prefix="/api/farms", tags=["farms"])

    @farms_router.post("")
    async def create_farm(payload: dict):
        try:
            cleaned = utils.validate_farm_create(payload)
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

        try:
            names = await location_resolver.resolve_path(cleaned["location"])
        except ValueError as exc:
            logger.warning("Location rejected for farmer '%s': %s", cleaned["farmer_id"], exc)
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
        degraded = [label for label, unit in names.items() if unit["source"] == "synthetic"]
        if degraded:
            logger.warning("Farm for farmer '%s' uses placeholder location data: %s", cleaned["farmer_id"], degraded)

        session = geometry.FarmBoundarySession()
        session.start()
        try:
            for point in cleaned["boundary"]:
                session.add_point(point)
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
        result = session.finish()
        if isinstance(result, geometry.api.BoundaryValidation):
            logger.warning("Boundary rejected for farmer '%s': %s", cleaned["farmer_id"], result.message)
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content={"error": result.message, "validation": result.to_dict()},
            )

        record = utils.build_farm_record(cleaned, names, result)
        await database.farms().insert_one(dict(record))
        logger.info(
            "Farm '%s' created for farmer '%s' (%s/%s/%s) area=%.2f ha",
            record["farm_id"],
            record["farmer_id"],
            cleaned["location"].state_id,
            cleaned["location"].lga_id,
            cleaned["location"].ward_id,
            record["area_hectares"],
        )
        return JSONResponse(
            status_code=status.HTTP_201_CREATED,
            content={
                "ok": True,
                "farm_id": record["farm_id"],
                "area_hectares": record["area_hectares"],
                "location": names,
                "placeholder_location": bool(degraded),
            },
        )

    @farms_router.get("")
    async def list_farms(farmerId: Optional[str] = Query(None)):
        query = {"farmer_id": farmerId} if farmerId else {}
        farms = await database.farms().find(query, {"_id": 0}).to_list(None)
        logger.info("Listed %d farms (farmer=%s)", len(farms), farmerId or "all")
        return {"farms": farms}

    @farms_router.get("/{farm_id}")
    async def get_farm(farm_id: str):
        farm = await database.farms().find_one({"farm_id": farm_id}, {"_id": 0})
        if not farm:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="farm not found")
        return farm

    for router in (locations.router, geometry.router, farms_router):
        app.include_router(router)

    return app
