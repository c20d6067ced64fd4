"""Service catalog with categories, subtitles, and feature lists."""

import logging
from typing import Optional

logger = logging.getLogger(__name__)

SERVICE_CATALOG: dict[str, dict] = {
    "oil-change": {
        "name": "Oil Change",
        "subtitle": "Premium Engine Oil Service & Filter Replacement",
        "category": "oil-change",
        "features": ["Synthetic Oil", "Oil Filter", "Fluid Check", "Engine Inspection", "Quick Service"],
    },
    "car-wash": {
        "name": "Car Wash",
        "subtitle": "Professional Cleaning Service At Home",
        "category": "wash",
        "features": ["Pressure Wash", "Deep Vacuum", "Mat Cleaning", "Dashboard Polishing", "Tire Shine"],
    },
    "interior-detailing": {
        "name": "Interior Detailing",
        "subtitle": "Complete Cabin Rejuvenation & Sanitization",
        "category": "detailing",
        "features": ["Deep Cleaning", "Leather Treatment", "Sanitization", "Odor Removal", "AC Vent Cleaning"],
    },
    "exterior-detailing": {
        "name": "Exterior Detailing",
        "subtitle": "Unmatched Shine & Paint Protection",
        "category": "detailing",
        "features": ["Paint Correction", "Chrome Polishing", "Wax Coating", "Glass Treatment", "Wheel Detailing"],
    },
    "periodic-service": {
        "name": "Periodic Service",
        "subtitle": "Expert Maintenance for Peak Performance",
        "category": "general",
        "features": ["Oil Change", "Filter Replacement", "Brake Inspection", "Fluid Top-up", "Multi-point Check"],
    },
    "denting-painting": {
        "name": "Denting & Painting",
        "subtitle": "Precision Body Work & Factory Finish",
        "category": "repair",
        "features": ["Dent Removal", "Scratch Repair", "Full Body Paint", "Color Matching", "Clear Coat"],
    },
    "suspension-fitments": {
        "name": "Suspension & Fitments",
        "subtitle": "Smooth Handling & Ride Comfort",
        "category": "repair",
        "features": ["Shock Absorbers", "Strut Replacement", "Alignment", "Bushing Replacement", "Spring Repair"],
    },
    "clutch-body-parts": {
        "name": "Clutch & Body Parts",
        "subtitle": "Seamless Power Delivery & Component Replacement",
        "category": "repair",
        "features": ["Clutch Plate", "Pressure Plate", "Flywheel Service", "Body Panel Repair", "Parts Replacement"],
    },
    "insurance-claims": {
        "name": "Insurance Claims",
        "subtitle": "Hassle-Free Accident Recovery",
        "category": "general",
        "features": ["Claim Processing", "Documentation Help", "Surveyor Coordination", "Cashless Service", "Quick Settlement"],
    },
    "roadside-assistance": {
        "name": "Roadside Assistance",
        "subtitle": "Reliable Support Whenever You Need It",
        "category": "general",
        "features": ["24/7 Support", "Towing Service", "Battery Jump Start", "Flat Tire Help", "Fuel Delivery"],
    },
    "accidental-repair": {
        "name": "Accidental Repair",
        "subtitle": "Major Collision Repair Specialists",
        "category": "repair",
        "features": ["Frame Straightening", "Panel Replacement", "Structural Repair", "Airbag Replacement", "Full Restoration"],
    },
    "car-dealership": {
        "name": "Car Dealership",
        "subtitle": "Buy & Sell Quality Pre-Owned Vehicles",
        "category": "general",
        "features": ["Verified Vehicles", "Documentation Help", "Fair Pricing", "Inspection Report", "Transfer Assistance"],
    },
}

SERVICE_CATEGORIES: dict[str, str] = {
    "oil-change": "Oil Change",
    "wash": "Car Wash",
    "detailing": "Detailing",
    "repair": "Repairing",
    "general": "General",
}


def get_all_services() -> list[dict]:
    """Return all services with basic info."""
    return [
        {"id": sid, "name": info["name"], "category": info["category"]}
        for sid, info in SERVICE_CATALOG.items()
    ]


def get_services_by_category(category: str) -> list[dict]:
    """Return the services listed under a category id."""
    return [
        {"id": sid, **info}
        for sid, info in SERVICE_CATALOG.items()
        if info["category"] == category
    ]


def get_service_by_id(service_id: str) -> Optional[dict]:
    """Get full details for a service id, or None when it is not in the catalog."""
    info = SERVICE_CATALOG.get(service_id.strip())
    if info is None:
        logger.debug("Unknown service id: %s", service_id)
        return None
    return {"id": service_id.strip(), **info}


def resolve_service_name(service_id: str) -> str:
    """Display name for a service id. Unknown ids are returned unchanged."""
    service = get_service_by_id(service_id)
    return service["name"] if service else service_id.strip()
