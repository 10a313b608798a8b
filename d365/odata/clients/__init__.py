"""Client facades."""

from .odata_client import ODataClient

__all__ = ["ODataClient"]
