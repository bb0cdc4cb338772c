# barbershop/data.py

from typing import Optional

from .errors import ValidationError

# service type -> minutes the barber needs
SERVICES = {
    "haircut": 30,
    "beard": 30,
    "haircut_and_beard": 60,
}

BOOKABLE_DURATIONS = (30, 60)

# a pending request without a slot is treated as holding this much time
TENTATIVE_MINUTES = 30

# the single service sold when customers cannot pick one
FULL_SERVICE_MINUTES = 60


def validate_duration(duration_minutes: Optional[int]) -> int:
    if duration_minutes not in BOOKABLE_DURATIONS:
        raise ValidationError("Duration must be 30 or 60 minutes")
    return duration_minutes


def duration_for_service(service_type: Optional[str], service_selection_enabled: bool = True) -> int:
    if not service_selection_enabled:
        return FULL_SERVICE_MINUTES
    if service_type is None:
        return SERVICES["haircut"]
    if service_type not in SERVICES:
        raise ValidationError("Service not available")
    return SERVICES[service_type]
