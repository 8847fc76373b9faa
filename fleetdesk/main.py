import logging
import sqlite3
from datetime import date
from typing import Iterator, List, Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Settings, configure_logging
from .db import Database
from .errors import FleetError
from .models import (
    BookingConfirm,
    BookingCreate,
    BookingReceipt,
    BookingReject,
    BookingRequest,
    BookingStats,
    BookingStatusUpdate,
    BookingStatusView,
    Client,
    ClientInput,
    Expense,
    ExpenseCreate,
    MaintenanceCreate,
    MaintenanceRecord,
    Rental,
    RentalCancel,
    RentalComplete,
    RentalCreate,
    RentalUpdate,
    Vehicle,
    VehicleInput,
    WebsiteCar,
)
from .services import BookingWorkflow, Catalog, FleetStore, RentalLifecycle, VehicleEvent, parse_range

logger = logging.getLogger(__name__)


def get_conn(request: Request) -> Iterator[sqlite3.Connection]:
    conn = request.app.state.database.connect()
    try:
        yield conn
    finally:
        conn.close()


def get_bookings(request: Request, conn: sqlite3.Connection = Depends(get_conn)) -> BookingWorkflow:
    return BookingWorkflow(conn, reference_prefix=request.app.state.settings.reference_prefix)


def validation_message(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        parts.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "; ".join(parts) or "Invalid request"


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings()
    app = FastAPI(title="Fleetdesk Rental Backend")
    app.state.settings = settings
    app.state.database = Database(settings.database_path, timeout=settings.database_timeout)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    async def startup() -> None:
        configure_logging(settings.log_level)
        app.state.database.init_schema()
        logger.info("Database ready at %s", settings.database_path)

    @app.exception_handler(FleetError)
    async def fleet_error_handler(request: Request, exc: FleetError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": validation_message(exc)})

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    register_routes(app)
    return app


def register_routes(app: FastAPI) -> None:
    @app.get("/api/health")
    def health(conn: sqlite3.Connection = Depends(get_conn)) -> dict:
        vehicles = conn.execute("SELECT COUNT(*) AS count FROM vehicles").fetchone()["count"]
        return {"status": "ok", "vehicles": vehicles}

    # -------- Vehicles --------
    @app.get("/api/vehicles")
    def list_vehicles(conn: sqlite3.Connection = Depends(get_conn)) -> List[Vehicle]:
        return FleetStore(conn).list_vehicles()

    @app.post("/api/vehicles", status_code=201)
    def create_vehicle(payload: VehicleInput, conn: sqlite3.Connection = Depends(get_conn)) -> Vehicle:
        return FleetStore(conn).create_vehicle(payload)

    @app.get("/api/vehicles/{vehicle_id}")
    def get_vehicle(vehicle_id: int, conn: sqlite3.Connection = Depends(get_conn)) -> Vehicle:
        return FleetStore(conn).get_vehicle(vehicle_id)

    @app.put("/api/vehicles/{vehicle_id}")
    def update_vehicle(vehicle_id: int, payload: VehicleInput, conn: sqlite3.Connection = Depends(get_conn)) -> Vehicle:
        return FleetStore(conn).update_vehicle(vehicle_id, payload)

    @app.delete("/api/vehicles/{vehicle_id}")
    def archive_vehicle(vehicle_id: int, conn: sqlite3.Connection = Depends(get_conn)) -> dict:
        FleetStore(conn).archive_vehicle(vehicle_id)
        return {"success": True}

    @app.post("/api/vehicles/{vehicle_id}/service")
    def service_vehicle(vehicle_id: int, conn: sqlite3.Connection = Depends(get_conn)) -> Vehicle:
        return FleetStore(conn).set_service(vehicle_id, VehicleEvent.SERVICE)

    @app.post("/api/vehicles/{vehicle_id}/release")
    def release_vehicle(vehicle_id: int, conn: sqlite3.Connection = Depends(get_conn)) -> Vehicle:
        return FleetStore(conn).set_service(vehicle_id, VehicleEvent.RELEASE)

    # -------- Clients --------
    @app.get("/api/clients")
    def list_clients(conn: sqlite3.Connection = Depends(get_conn)) -> List[Client]:
        return FleetStore(conn).list_clients()

    @app.post("/api/clients", status_code=201)
    def create_client(payload: ClientInput, conn: sqlite3.Connection = Depends(get_conn)) -> Client:
        return FleetStore(conn).create_client(payload)

    @app.get("/api/clients/{client_id}")
    def get_client(client_id: int, conn: sqlite3.Connection = Depends(get_conn)) -> Client:
        return FleetStore(conn).get_client(client_id)

    @app.put("/api/clients/{client_id}")
    def update_client(client_id: int, payload: ClientInput, conn: sqlite3.Connection = Depends(get_conn)) -> Client:
        return FleetStore(conn).update_client(client_id, payload)

    @app.delete("/api/clients/{client_id}")
    def delete_client(client_id: int, conn: sqlite3.Connection = Depends(get_conn)) -> dict:
        FleetStore(conn).delete_client(client_id)
        return {"success": True}

    # -------- Maintenance --------
    @app.get("/api/maintenance")
    def list_maintenance(conn: sqlite3.Connection = Depends(get_conn)) -> List[MaintenanceRecord]:
        return FleetStore(conn).list_maintenance()

    @app.get("/api/maintenance/vehicle/{vehicle_id}")
    def vehicle_maintenance(vehicle_id: int, conn: sqlite3.Connection = Depends(get_conn)) -> List[MaintenanceRecord]:
        return FleetStore(conn).list_maintenance(vehicle_id)

    @app.post("/api/maintenance", status_code=201)
    def record_maintenance(payload: MaintenanceCreate, conn: sqlite3.Connection = Depends(get_conn)) -> MaintenanceRecord:
        return FleetStore(conn).record_maintenance(payload)

    # -------- Expenses --------
    @app.get("/api/expenses")
    def list_expenses(
        start: Optional[date] = Query(None, alias="from"),
        end: Optional[date] = Query(None, alias="to"),
        conn: sqlite3.Connection = Depends(get_conn),
    ) -> List[Expense]:
        return FleetStore(conn).list_expenses(start, end)

    @app.post("/api/expenses", status_code=201)
    def record_expense(payload: ExpenseCreate, conn: sqlite3.Connection = Depends(get_conn)) -> Expense:
        return FleetStore(conn).record_expense(payload)

    @app.delete("/api/expenses/{expense_id}")
    def delete_expense(expense_id: int, conn: sqlite3.Connection = Depends(get_conn)) -> dict:
        FleetStore(conn).delete_expense(expense_id)
        return {"success": True}

    # -------- Rentals --------
    @app.get("/api/rentals")
    def list_rentals(conn: sqlite3.Connection = Depends(get_conn)) -> List[Rental]:
        return RentalLifecycle(conn).list()

    @app.get("/api/rentals/active")
    def list_active_rentals(conn: sqlite3.Connection = Depends(get_conn)) -> List[Rental]:
        return RentalLifecycle(conn).list(active_only=True)

    @app.get("/api/rentals/{rental_id}")
    def get_rental(rental_id: int, conn: sqlite3.Connection = Depends(get_conn)) -> Rental:
        return RentalLifecycle(conn).get(rental_id)

    @app.post("/api/rentals", status_code=201)
    def create_rental(payload: RentalCreate, conn: sqlite3.Connection = Depends(get_conn)) -> Rental:
        return RentalLifecycle(conn).create(payload)

    @app.put("/api/rentals/{rental_id}")
    def update_rental(rental_id: int, payload: RentalUpdate, conn: sqlite3.Connection = Depends(get_conn)) -> Rental:
        return RentalLifecycle(conn).update(rental_id, payload)

    @app.post("/api/rentals/{rental_id}/complete")
    def complete_rental(rental_id: int, payload: RentalComplete, conn: sqlite3.Connection = Depends(get_conn)) -> Rental:
        return RentalLifecycle(conn).complete(rental_id, payload)

    @app.post("/api/rentals/{rental_id}/cancel")
    def cancel_rental(
        rental_id: int,
        payload: Optional[RentalCancel] = None,
        conn: sqlite3.Connection = Depends(get_conn),
    ) -> Rental:
        return RentalLifecycle(conn).cancel(rental_id, payload or RentalCancel())

    # -------- Booking requests --------
    @app.get("/api/booking-requests")
    def list_booking_requests(
        status: Optional[str] = None,
        bookings: BookingWorkflow = Depends(get_bookings),
    ) -> List[BookingRequest]:
        return bookings.list(status)

    @app.get("/api/booking-requests/stats/summary")
    def booking_stats(bookings: BookingWorkflow = Depends(get_bookings)) -> BookingStats:
        return bookings.stats()

    @app.get("/api/booking-requests/{request_id}")
    def get_booking_request(request_id: int, bookings: BookingWorkflow = Depends(get_bookings)) -> BookingRequest:
        return bookings.get(request_id)

    @app.put("/api/booking-requests/{request_id}/status")
    def set_booking_status(
        request_id: int,
        payload: BookingStatusUpdate,
        bookings: BookingWorkflow = Depends(get_bookings),
    ) -> BookingRequest:
        return bookings.set_status(request_id, payload)

    @app.post("/api/booking-requests/{request_id}/confirm")
    def confirm_booking_request(
        request_id: int,
        payload: Optional[BookingConfirm] = None,
        bookings: BookingWorkflow = Depends(get_bookings),
    ) -> BookingRequest:
        return bookings.confirm(request_id, payload or BookingConfirm())

    @app.post("/api/booking-requests/{request_id}/reject")
    def reject_booking_request(
        request_id: int,
        payload: Optional[BookingReject] = None,
        bookings: BookingWorkflow = Depends(get_bookings),
    ) -> BookingRequest:
        return bookings.reject(request_id, payload or BookingReject())

    # -------- Public website API --------
    @app.get("/api/public/cars")
    def public_cars(conn: sqlite3.Connection = Depends(get_conn)) -> List[WebsiteCar]:
        return Catalog(conn).cars()

    @app.get("/api/public/cars/available")
    def public_available_cars(
        start: Optional[str] = Query(None, alias="from"),
        end: Optional[str] = Query(None, alias="to"),
        conn: sqlite3.Connection = Depends(get_conn),
    ) -> List[WebsiteCar]:
        start_at, end_at = parse_range(start, end)
        return Catalog(conn).available(start_at, end_at)

    @app.get("/api/public/cars/{car_id}")
    def public_car(car_id: str, conn: sqlite3.Connection = Depends(get_conn)) -> WebsiteCar:
        return Catalog(conn).car(car_id)

    @app.post("/api/public/bookings", status_code=201)
    def public_create_booking(
        payload: BookingCreate,
        bookings: BookingWorkflow = Depends(get_bookings),
    ) -> BookingReceipt:
        return bookings.create_from_website(payload)

    @app.get("/api/public/bookings/{reference_code}/status")
    def public_booking_status(
        reference_code: str,
        bookings: BookingWorkflow = Depends(get_bookings),
    ) -> BookingStatusView:
        return bookings.status_by_reference(reference_code)


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=app.state.settings.host, port=app.state.settings.port)
