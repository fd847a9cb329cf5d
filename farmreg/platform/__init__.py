"""Platform package: configuration, farm-record store, payload validators."""

from farmreg.platform import utils  # re-export for convenience

__all__ = ["utils"]
