"""
Test utilities for the async booking client tests.
"""

import json
from collections import Counter
from typing import Any, Dict, List, Optional, Set

import httpx

from dental_booking.services import BookingApiClient


class FakeBookingBackend:
    """
    In-memory stand-in for the booking API, served through httpx.MockTransport.

    Bookings are keyed by (date, time); a second booking for the same key
    answers the way the real backend does, with 409 SLOT_ALREADY_BOOKED.
    """

    def __init__(
        self,
        availability: Optional[List[Dict[str, Any]]] = None,
        slot_duration_minutes: int = 30,
        leaves: Optional[List[Dict[str, Any]]] = None,
    ) -> None:
        self.availability = availability or []
        self.slot_duration_minutes = slot_duration_minutes
        self.leaves = leaves or []
        self.booked: Dict[str, Set[str]] = {}
        self.calls: Counter = Counter()
        self.fail_paths: Set[str] = set()
        self.conflict_body: Optional[Dict[str, Any]] = None
        self.booking_status_override: Optional[int] = None
        self.booking_error_body: Optional[Dict[str, Any]] = None
        # Simulates a read replica that has not seen the latest writes
        self.stale_booked_reads = False

    def book_directly(self, date_str: str, time: str) -> None:
        """Simulate a booking made by another client."""
        self.booked.setdefault(date_str, set()).add(time)

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.calls[path] += 1

        if path in self.fail_paths:
            raise httpx.ConnectError("connection refused", request=request)

        if path.endswith("/schedule"):
            return httpx.Response(200, json={
                "doctor_id": 1,
                "full_name": "Dr. Test",
                "availability": self.availability,
                "slot_duration_minutes": self.slot_duration_minutes,
                "leave": [],
            })

        if path.endswith("/leaves"):
            return httpx.Response(200, json={"success": True, "data": self.leaves})

        if path == "/api/appointments/booked-slots":
            date_str = request.url.params["date"]
            if self.stale_booked_reads:
                return httpx.Response(200, json={"success": True, "data": []})
            return httpx.Response(200, json={"success": True, "data": sorted(self.booked.get(date_str, set()))})

        if path == "/api/appointments" and request.method == "POST":
            body = json.loads(request.content)
            if self.booking_status_override is not None:
                return httpx.Response(
                    self.booking_status_override,
                    json=self.booking_error_body or {"detail": "Validation failed"},
                )
            date_str, time = body["appointment_date"], body["appointment_time"]
            taken = self.booked.setdefault(date_str, set())
            if time in taken:
                return httpx.Response(409, json=self.conflict_body or {
                    "detail": {
                        "code": "SLOT_ALREADY_BOOKED",
                        "message": "This time slot was just booked by someone else. Please choose another.",
                        "booked_slots": sorted(taken),
                    }
                })
            taken.add(time)
            return httpx.Response(201, json={"id": len(taken), **body, "status": "scheduled"})

        return httpx.Response(404, json={"detail": "Not found"})

    def client(self) -> BookingApiClient:
        http_client = httpx.AsyncClient(
            transport=httpx.MockTransport(self.handler),
            base_url="http://booking.test",
        )
        return BookingApiClient(client=http_client)
