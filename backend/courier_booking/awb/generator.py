"""
AWB (air waybill) tracking-code issuance.

Codes are 17 characters: a 2-character route prefix, 2 letters, 3 digits,
2 letters and 8 alphanumerics. Each booking draws its own random code and
checks the bookings collection for a collision, retrying a bounded number of
times. The unique index on ``bookings.awb`` closes the check-then-insert gap.
"""

import logging
import re
import secrets
import string

from courier_booking.booking.routes import Route
from courier_booking.exceptions import GenerationExhaustedError
from courier_booking.store.document_store import BOOKINGS_COLLECTION, DocumentStore

logger = logging.getLogger("courier.awb")

AWB_LENGTH = 17

ROUTE_PREFIXES: dict[Route, str] = {
    Route.UAE_TO_PINAS: "PH",
    Route.PINAS_TO_UAE: "AE",
}

_LETTERS = string.ascii_uppercase
_DIGITS = string.digits
_ALPHANUMERIC = _LETTERS + _DIGITS


def awb_pattern(route: Route) -> re.Pattern:
    prefix = re.escape(ROUTE_PREFIXES[route])
    return re.compile(rf"^{prefix}[A-Z]{{2}}[0-9]{{3}}[A-Z]{{2}}[A-Z0-9]{{8}}$")


def is_valid_awb(code: str, route: Route) -> bool:
    return bool(awb_pattern(route).match(code))


def _random(alphabet: str, count: int) -> str:
    return "".join(secrets.choice(alphabet) for _ in range(count))


def synthesize_awb(route: Route) -> str:
    return (
        ROUTE_PREFIXES[route]
        + _random(_LETTERS, 2)
        + _random(_DIGITS, 3)
        + _random(_LETTERS, 2)
        + _random(_ALPHANUMERIC, 8)
    )


class AwbGenerator:
    def __init__(self, store: DocumentStore, logger: logging.Logger = logger):
        self.store = store
        self._logger = logger

    async def issue_unique(self, route: Route, max_attempts: int = 10) -> str:
        """Return an AWB for ``route`` that no stored booking uses.

        Raises:
            GenerationExhaustedError: ``max_attempts`` consecutive collisions.
        """
        pattern = awb_pattern(route)

        for attempt in range(1, max_attempts + 1):
            code = synthesize_awb(route)
            if not pattern.match(code):
                raise ValueError(f"Generated AWB {code!r} does not match the {route.value} format")

            existing = await self.store.find_one(BOOKINGS_COLLECTION, {"awb": code})
            if existing is None:
                self._logger.info("Issued AWB %s (attempt %d)", code, attempt)
                return code

            self._logger.warning("AWB collision on %s (attempt %d/%d)", code, attempt, max_attempts)

        self._logger.error("AWB generation exhausted after %d attempts for %s", max_attempts, route.value)
        raise GenerationExhaustedError(
            "Could not generate a unique tracking code. Please try again.",
            attempts=max_attempts,
        )
