"""Orderer-side matching flow, driven over the HTTP API.

``MatchingFlow.match`` is the original app flow: list the hall's deliverers,
take the first one and deactivate them. Two orderers running it at the same
time can both get the same deliverer. ``MatchingFlow.claim_match`` goes
through ``POST /match`` instead, where the claim is a conditional update and
only one orderer can win.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)


class MatchingError(Exception):
    """A request failed; the message is what the app shows in its alert."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class NoDeliverersAvailable(MatchingError):
    pass


@dataclass
class Match:
    deliverer: Dict[str, Any]
    released: bool = True
    handshake: Optional[Dict[str, Any]] = None

    @property
    def contact(self) -> Optional[str]:
        return self.deliverer.get("contact")


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"Request failed with status {response.status_code}"
    if isinstance(body, dict):
        return str(body.get("detail") or body.get("error") or response.status_code)
    return f"Request failed with status {response.status_code}"


class MatchingFlow:
    def __init__(self, http: httpx.Client, base_path: str = "/api"):
        self._http = http
        self._base = base_path.rstrip("/")

    def _call(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        try:
            response = self._http.request(method, f"{self._base}{path}", **kwargs)
        except httpx.HTTPError as exc:
            raise MatchingError(str(exc)) from exc
        if not response.is_success:
            raise MatchingError(_error_message(response), response.status_code)
        return response.json()

    def active_deliverers(self, hall_id: Optional[str] = None) -> List[Dict[str, Any]]:
        params = {"hall_id": hall_id} if hall_id else None
        return self._call("GET", "/deliverers/", params=params)["deliverers"]

    def find_deliverer(self, hall_id: str) -> Optional[Dict[str, Any]]:
        """First deliverer in listing order, i.e. the most recently activated."""
        deliverers = self.active_deliverers(hall_id)
        return deliverers[0] if deliverers else None

    def deactivate(self, user_id: str) -> bool:
        try:
            self._call("POST", "/deliverers/deactivate", json={"user_id": user_id})
        except MatchingError as exc:
            logger.warning("Failed to deactivate deliverer %s: %s", user_id, exc)
            return False
        return True

    def match(self, hall_id: str) -> Match:
        deliverer = self.find_deliverer(hall_id)
        if deliverer is None:
            raise NoDeliverersAvailable("No deliverers are active for this hall right now.")
        # The match is shown even if this fails; the deliverer then stays listed.
        released = self.deactivate(deliverer["user_id"])
        return Match(deliverer=deliverer, released=released)

    def claim_match(self, hall_id: str, orderer_id: str) -> Match:
        try:
            body = self._call(
                "POST",
                "/deliverers/match",
                json={"hall_id": hall_id, "orderer_id": orderer_id},
            )
        except MatchingError as exc:
            if exc.status_code == 404:
                raise NoDeliverersAvailable(str(exc), exc.status_code) from exc
            raise
        return Match(deliverer=body["deliverer"], handshake=body["handshake"])

    def handshake(self, handshake_id: str, user_id: str) -> Dict[str, Any]:
        return self._call(
            "GET", f"/handshakes/{handshake_id}", params={"user_id": user_id}
        )["handshake"]

    def verify_pin(self, handshake_id: str, user_id: str, pin: str) -> Dict[str, Any]:
        return self._call(
            "POST",
            f"/handshakes/{handshake_id}/verify",
            json={"user_id": user_id, "pin": pin},
        )["handshake"]


class OrderStep(str, Enum):
    SELECT_HALL = "select_hall"
    SEARCHING = "searching"
    MATCHED = "matched"
    NO_DELIVERERS = "no_deliverers"
    AWAITING_DELIVERER = "awaiting_deliverer"
    CONFIRMED = "confirmed"


@dataclass
class OrderSession:
    """The order screen: which step to render, and the data behind it."""

    flow: MatchingFlow
    orderer_id: str
    step: OrderStep = OrderStep.SELECT_HALL
    hall_id: Optional[str] = None
    match: Optional[Match] = None
    last_error: Optional[str] = None
    history: List[OrderStep] = field(default_factory=list)

    def _go(self, step: OrderStep) -> None:
        self.history.append(self.step)
        self.step = step

    def select_hall(self, hall_id: str) -> OrderStep:
        self.hall_id = hall_id
        self.match = None
        self.last_error = None
        self._go(OrderStep.SEARCHING)
        try:
            self.match = self.flow.claim_match(hall_id, self.orderer_id)
        except NoDeliverersAvailable as exc:
            self.last_error = str(exc)
            self._go(OrderStep.NO_DELIVERERS)
        except MatchingError as exc:
            self.last_error = str(exc)
            self._go(OrderStep.SELECT_HALL)
        else:
            self._go(OrderStep.MATCHED)
        return self.step

    @property
    def my_pin(self) -> Optional[str]:
        if self.match is None or self.match.handshake is None:
            return None
        return self.match.handshake["pin"]

    def _settle(self, handshake: Dict[str, Any]) -> OrderStep:
        self.match.handshake = handshake
        if handshake["status"] == "confirmed":
            self._go(OrderStep.CONFIRMED)
        elif self.step is not OrderStep.AWAITING_DELIVERER:
            self._go(OrderStep.AWAITING_DELIVERER)
        return self.step

    def enter_deliverer_pin(self, pin: str) -> bool:
        """Check the PIN the deliverer read out. Returns True if it was accepted.

        The order is only ``CONFIRMED`` once the deliverer has entered the
        orderer's PIN too; until then the step is ``AWAITING_DELIVERER``.
        """
        if self.step is not OrderStep.MATCHED or self.match is None or not self.match.handshake:
            raise MatchingError("There is no match to confirm.")
        try:
            handshake = self.flow.verify_pin(
                self.match.handshake["id"], self.orderer_id, pin
            )
        except MatchingError as exc:
            self.last_error = str(exc)
            return False
        self.last_error = None
        self._settle(handshake)
        return True

    def refresh(self) -> OrderStep:
        """Poll the handshake while waiting for the deliverer."""
        if self.step is not OrderStep.AWAITING_DELIVERER:
            return self.step
        handshake = self.flow.handshake(self.match.handshake["id"], self.orderer_id)
        return self._settle(handshake)

    def reset(self) -> None:
        self.hall_id = None
        self.match = None
        self.last_error = None
        self._go(OrderStep.SELECT_HALL)
