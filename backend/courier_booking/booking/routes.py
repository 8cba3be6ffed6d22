"""Route classification from the free-text ``service`` field.

Pure functions, no I/O.
"""

import enum
from dataclasses import dataclass

DEFAULT_SERVICE = "uae-to-pinas"

UAE_DIAL_CODE = "+971"
PHILIPPINES_DIAL_CODE = "+63"


class Route(str, enum.Enum):
    UAE_TO_PINAS = "uae-to-pinas"
    PINAS_TO_UAE = "pinas-to-uae"


# Substrings that mark the reverse (Philippines → UAE) lane.
REVERSE_ROUTE_MARKERS = ("philippines-to-uae", "pinas-to-uae", "ph-to-uae")

# Lanes on which the sender must declare the shipment type and value.
SHIPMENT_DECLARATION_ROUTES = frozenset({Route.PINAS_TO_UAE})


@dataclass(frozen=True)
class DialCodes:
    sender: str
    receiver: str


def derive_route(service: str | None) -> Route:
    """Classify a service identifier into a Route.

    Anything that does not carry a reverse-lane marker, including an empty
    value, falls back to ``Route.UAE_TO_PINAS``.
    """
    service_lower = (service or DEFAULT_SERVICE).lower()
    if any(marker in service_lower for marker in REVERSE_ROUTE_MARKERS):
        return Route.PINAS_TO_UAE
    return Route.UAE_TO_PINAS


def dial_codes_for(route: Route) -> DialCodes:
    if route == Route.PINAS_TO_UAE:
        return DialCodes(sender=PHILIPPINES_DIAL_CODE, receiver=UAE_DIAL_CODE)
    return DialCodes(sender=UAE_DIAL_CODE, receiver=PHILIPPINES_DIAL_CODE)


def requires_shipment_declaration(route: Route) -> bool:
    return route in SHIPMENT_DECLARATION_ROUTES
