from urban_auto.location.geocoding import ChainedGeocoder, MapplsGeocoder, NominatimGeocoder
from urban_auto.location.sampler import (
    LOW_ACCURACY_ADVISORY,
    LocationSampler,
    select_best_sample,
)

__all__ = [
    "LocationSampler",
    "select_best_sample",
    "LOW_ACCURACY_ADVISORY",
    "NominatimGeocoder",
    "MapplsGeocoder",
    "ChainedGeocoder",
]
