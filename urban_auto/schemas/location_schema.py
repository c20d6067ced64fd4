"""Location sample and address models."""

from typing import Optional

from pydantic import BaseModel


class LocationSample(BaseModel):
    """One device position fix. Lower ``accuracy`` is better (radius in metres)."""
    latitude: float
    longitude: float
    accuracy: float


class AddressData(BaseModel):
    """Reverse-geocoded address for a coordinate pair."""
    display_name: str
    road: Optional[str] = None
    suburb: Optional[str] = None
    city: Optional[str] = None
    postcode: Optional[str] = None
    lat: float
    lon: float


class LocatedAddress(BaseModel):
    """Sampler output: the address, the winning sample, and any advisory."""
    address: AddressData
    sample: LocationSample
    advisory: Optional[str] = None
