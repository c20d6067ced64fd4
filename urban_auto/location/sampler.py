"""
Geolocation sampler: best-of-N position fixes, reverse-geocoded to an address.

Takes ``sample_count`` sequential high-accuracy fixes with a fixed pause
between them and keeps the one with the lowest reported accuracy radius.
A winner above the advisory threshold still yields an address, with an
advisory asking the user to adjust it manually.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Sequence, TypedDict

from urban_auto.backend.interfaces import LocationDevice, ReverseGeocoder
from urban_auto.config import settings
from urban_auto.errors import BackendError, LocationError, LocationErrorCode
from urban_auto.schemas.location_schema import LocatedAddress, LocationSample

logger = logging.getLogger(__name__)

PERMISSION_GRANTED = "granted"
LOW_ACCURACY_ADVISORY = "We couldn't get an exact location. Please adjust your address manually."


class LocationResult(TypedDict, total=False):
    """Result from LocationSampler.locate."""

    success: bool
    message: str
    error: str
    located: LocatedAddress


def select_best_sample(samples: Sequence[LocationSample]) -> LocationSample:
    """Lowest accuracy value wins; the earliest sample wins a tie."""
    if not samples:
        raise ValueError("No location samples to choose from")
    return min(samples, key=lambda s: s.accuracy)


class LocationSampler:
    """Produces a best-effort address for pre-filling the booking form."""

    def __init__(
        self,
        device: LocationDevice,
        geocoder: ReverseGeocoder,
        sample_count: int = settings.location.sample_count,
        fix_timeout: float = settings.location.fix_timeout_sec,
        pause: float = settings.location.sample_pause_sec,
        advisory_accuracy: float = settings.location.advisory_accuracy,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._device = device
        self._geocoder = geocoder
        self._sample_count = sample_count
        self._fix_timeout = fix_timeout
        self._pause = pause
        self._advisory_accuracy = advisory_accuracy
        self._sleep = sleep

    async def locate(self) -> LocationResult:
        """Run permission check, sampling and reverse geocoding."""
        try:
            await self._ensure_permission()
            samples = await self.collect_samples()
            best = select_best_sample(samples)
            advisory: Optional[str] = None
            if best.accuracy > self._advisory_accuracy:
                advisory = LOW_ACCURACY_ADVISORY
                logger.info("Best fix accuracy %.0f exceeds %.0f", best.accuracy, self._advisory_accuracy)
            address = await self._geocoder.reverse(best.latitude, best.longitude)
        except LocationError as exc:
            logger.warning("Location lookup failed (%s): %s", exc.code.value, exc.message)
            return {"success": False, "error": exc.code.value, "message": exc.message}

        located = LocatedAddress(address=address, sample=best, advisory=advisory)
        return {"success": True, "message": advisory or "Location found", "located": located}

    async def _ensure_permission(self) -> None:
        try:
            status = await self._device.check_permissions()
            if status == PERMISSION_GRANTED:
                return
            status = await self._device.request_permissions()
        except BackendError as exc:
            raise LocationError(LocationErrorCode.PERMISSION_DENIED, exc.message) from exc
        if status != PERMISSION_GRANTED:
            raise LocationError(LocationErrorCode.PERMISSION_DENIED, "Location permission denied")

    async def collect_samples(self) -> list[LocationSample]:
        """Take the configured number of fixes, one at a time."""
        samples: list[LocationSample] = []
        for index in range(self._sample_count):
            if index:
                await self._sleep(self._pause)
            try:
                sample = await asyncio.wait_for(
                    self._device.get_current_position(
                        high_accuracy=True, timeout=self._fix_timeout
                    ),
                    timeout=self._fix_timeout,
                )
            except asyncio.TimeoutError:
                raise LocationError(
                    LocationErrorCode.TIMEOUT,
                    f"Timed out waiting for a location fix after {self._fix_timeout:.0f}s",
                ) from None
            except BackendError as exc:
                raise LocationError(
                    LocationErrorCode.POSITION_UNAVAILABLE,
                    f"Could not get your location: {exc.message}",
                ) from exc
            logger.debug("Fix %d: accuracy %.1f", index + 1, sample.accuracy)
            samples.append(sample)
        return samples
