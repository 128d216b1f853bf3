"""
Geolocation resolution for the intake workflow
One bounded attempt at a device fix, falling back to manual placement
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from src.core.constants import MSG_GEOLOCATION_FAILED
from src.core.geo_utils import Coordinates
from src.reports.models import GeoMethod

logger = logging.getLogger(__name__)


class GeolocationError(Exception):
    """Position unavailable (permission denied, no signal, unsupported)."""


class PositionProvider(Protocol):
    """Device positioning capability."""

    async def current_position(self) -> Coordinates:
        ...


class StaticPositionProvider:
    """Provider returning a fixed position, or failing when none is set."""

    def __init__(self, coordinates: Optional[Coordinates] = None):
        self.coordinates = coordinates

    async def current_position(self) -> Coordinates:
        if self.coordinates is None:
            raise GeolocationError("Geolocation is not supported")
        return self.coordinates


@dataclass(frozen=True)
class GeoFix:
    """Outcome of a geolocation attempt."""
    coordinates: Optional[Coordinates]
    method: GeoMethod
    advisory: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.coordinates is not None


class GeolocationPolicy:
    """
    Single-attempt geolocation with a timeout.

    Success yields coordinates with method auto. Any failure yields no
    coordinates, method manual and an advisory asking for manual placement.
    There are no automatic retries.
    """

    def __init__(
        self,
        provider: Optional[PositionProvider] = None,
        timeout: float = 10.0
    ):
        """
        Initialize policy.

        Args:
            provider: Device position provider (None means unsupported)
            timeout: Seconds to wait for a fix
        """
        self.provider = provider
        self.timeout = timeout

    @staticmethod
    def manual_fallback() -> GeoFix:
        return GeoFix(coordinates=None, method=GeoMethod.MANUAL, advisory=MSG_GEOLOCATION_FAILED)

    async def resolve(self) -> GeoFix:
        """Attempt one position fix."""
        if self.provider is None:
            logger.info("No position provider; falling back to manual placement")
            return self.manual_fallback()

        try:
            coordinates = await asyncio.wait_for(
                self.provider.current_position(), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            logger.warning(f"Geolocation timed out after {self.timeout}s")
            return self.manual_fallback()
        except Exception as e:
            logger.warning(f"Geolocation failed: {e}")
            return self.manual_fallback()

        logger.debug(f"Geolocation fix: ({coordinates.lat}, {coordinates.lng})")
        return GeoFix(coordinates=coordinates, method=GeoMethod.AUTO)
