"""Command-line helper for the admin side of the rental backend."""
import argparse
import json
import os
import sys
from typing import Any, Dict, Optional

import requests

DEFAULT_HOST = os.getenv("FLEETDESK_URL", "http://localhost:8000")
TIMEOUT = 10


def decode(resp: requests.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return None


def send(method: str, base_url: str, path: str, *, body: Optional[Dict[str, Any]] = None,
         params: Optional[Dict[str, Any]] = None) -> Any:
    """Call the API, print the JSON reply and exit with status 1 on an error response."""
    url = base_url.rstrip("/") + path
    resp = requests.request(method, url, json=body, params=params, timeout=TIMEOUT)
    payload = decode(resp)
    if not resp.ok:
        message = payload.get("error") if isinstance(payload, dict) else None
        print(f"{method} {path} failed with HTTP {resp.status_code}: {message or resp.text}", file=sys.stderr)
        sys.exit(1)
    print(json.dumps(payload, indent=2) if payload is not None else resp.text)
    return payload


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Admin client for the rental backend")
    parser.add_argument("--host", default=DEFAULT_HOST, help="Backend base URL")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("vehicles", help="List vehicles")

    add = sub.add_parser("add-vehicle", help="Register a vehicle")
    add.add_argument("--brand", required=True)
    add.add_argument("--model", required=True)
    add.add_argument("--plate", required=True)
    add.add_argument("--year", type=int, required=True)
    add.add_argument("--color", required=True)
    add.add_argument("--fuel", choices=["petrol", "diesel", "electric", "hybrid"], default="petrol")
    add.add_argument("--mileage", type=int, default=0)
    add.add_argument("--rate-daily", type=float, default=0)

    rentals = sub.add_parser("rentals", help="List rentals")
    rentals.add_argument("--active", action="store_true", help="Only active rentals")

    rent = sub.add_parser("rent", help="Create a rental")
    rent.add_argument("--vehicle", type=int, required=True)
    rent.add_argument("--client", type=int, required=True)
    rent.add_argument("--start", required=True, help="ISO-8601 start")
    rent.add_argument("--end", required=True, help="ISO-8601 planned end")
    rent.add_argument("--mileage", type=int, required=True)
    rent.add_argument("--rate-type", choices=["hourly", "daily", "monthly"], default="daily")
    rent.add_argument("--rate", type=float, required=True)
    rent.add_argument("--booking", type=int, help="Booking request this rental fulfils")

    complete = sub.add_parser("complete", help="Complete a rental")
    complete.add_argument("--rental", type=int, required=True)
    complete.add_argument("--mileage", type=int, required=True)
    complete.add_argument("--deposit-returned", action="store_true")

    bookings = sub.add_parser("bookings", help="List booking requests")
    bookings.add_argument("--status", choices=["pending", "confirmed", "rejected", "completed"])

    confirm = sub.add_parser("confirm", help="Confirm a booking request")
    confirm.add_argument("--request", type=int, required=True)
    confirm.add_argument("--client", type=int, help="Create a rental for this client")
    confirm.add_argument("--notes")

    reject = sub.add_parser("reject", help="Reject a booking request")
    reject.add_argument("--request", type=int, required=True)
    reject.add_argument("--notes")

    available = sub.add_parser("available", help="Cars free for a date range")
    available.add_argument("--from", dest="start", required=True)
    available.add_argument("--to", dest="end", required=True)
    return parser


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    host = args.host

    if args.command == "vehicles":
        send("GET", host, "/api/vehicles")
    elif args.command == "add-vehicle":
        send(
            "POST",
            host,
            "/api/vehicles",
            body={
                "brand": args.brand,
                "model": args.model,
                "licensePlate": args.plate,
                "year": args.year,
                "color": args.color,
                "fuelType": args.fuel,
                "mileage": args.mileage,
                "rateDaily": args.rate_daily,
            },
        )
    elif args.command == "rentals":
        send("GET", host, "/api/rentals/active" if args.active else "/api/rentals")
    elif args.command == "rent":
        send(
            "POST",
            host,
            "/api/rentals",
            body={
                "vehicleId": args.vehicle,
                "clientId": args.client,
                "startDate": args.start,
                "plannedEndDate": args.end,
                "mileageStart": args.mileage,
                "rateType": args.rate_type,
                "rateAmount": args.rate,
                "bookingRequestId": args.booking,
            },
        )
    elif args.command == "complete":
        send(
            "POST",
            host,
            f"/api/rentals/{args.rental}/complete",
            body={"mileageEnd": args.mileage, "depositReturned": args.deposit_returned},
        )
    elif args.command == "bookings":
        send("GET", host, "/api/booking-requests", params={"status": args.status} if args.status else None)
    elif args.command == "confirm":
        body: Dict[str, Any] = {"createRental": args.client is not None, "adminNotes": args.notes}
        if args.client is not None:
            body["clientId"] = args.client
        send("POST", host, f"/api/booking-requests/{args.request}/confirm", body=body)
    elif args.command == "reject":
        send("POST", host, f"/api/booking-requests/{args.request}/reject", body={"adminNotes": args.notes})
    elif args.command == "available":
        send("GET", host, "/api/public/cars/available", params={"from": args.start, "to": args.end})
    else:
        parser.error("Unsupported command")


if __name__ == "__main__":
    main()
