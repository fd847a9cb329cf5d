"""
Platform-level configuration loader.

Reads environment variables into a simple value object so the rest of the
application can consume strongly named settings instead of hitting os.getenv
throughout the codebase.
"""

import os
from dataclasses import dataclass


@dataclass
class PlatformConfig:
    mongo_url: str
    mongo_db: str
    farms_collection: str = "farms"

    @classmethod
    def from_env(cls) -> "PlatformConfig":
        mongo_url = os.getenv("PLATFORM_MONGO_URL", "mongodb://localhost:27017")
        mongo_db = os.getenv("PLATFORM_DB_NAME", "farmreg")
        farms_collection = os.getenv("PLATFORM_FARMS_COLLECTION", "farms")

        return cls(
            mongo_url=mongo_url,
            mongo_db=mongo_db,
            farms_collection=farms_collection,
        )
