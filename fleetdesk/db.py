"""SQLite persistence: connections, schema and transactions."""
import json
import re
import sqlite3
from contextlib import contextmanager
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterator, Optional, Union

SCHEMA = """
CREATE TABLE IF NOT EXISTS vehicles (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    brand TEXT NOT NULL,
    model TEXT NOT NULL,
    license_plate TEXT UNIQUE NOT NULL,
    vin TEXT,
    year INTEGER NOT NULL,
    color TEXT NOT NULL,
    fuel_type TEXT NOT NULL DEFAULT 'petrol',
    mileage INTEGER NOT NULL DEFAULT 0,
    status TEXT NOT NULL DEFAULT 'available',
    rate_daily REAL NOT NULL DEFAULT 0,
    rate_3days REAL NOT NULL DEFAULT 0,
    rate_7days REAL NOT NULL DEFAULT 0,
    rate_monthly REAL NOT NULL DEFAULT 0,
    insurance_expiry TEXT,
    inspection_expiry TEXT,
    photo_url TEXT,
    notes TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS clients (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    full_name TEXT NOT NULL,
    phone TEXT NOT NULL,
    phone_alt TEXT,
    email TEXT,
    passport TEXT NOT NULL,
    license_number TEXT NOT NULL,
    license_expiry TEXT NOT NULL,
    birth_date TEXT NOT NULL,
    address TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'active',
    notes TEXT,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS rentals (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    vehicle_id INTEGER NOT NULL REFERENCES vehicles(id),
    client_id INTEGER NOT NULL REFERENCES clients(id),
    start_date TEXT NOT NULL,
    planned_end_date TEXT NOT NULL,
    actual_end_date TEXT,
    mileage_start INTEGER NOT NULL,
    mileage_end INTEGER,
    fuel_level_start INTEGER NOT NULL DEFAULT 100,
    fuel_level_end INTEGER,
    rate_type TEXT NOT NULL DEFAULT 'daily',
    rate_amount REAL NOT NULL,
    deposit REAL NOT NULL DEFAULT 0,
    deposit_returned INTEGER NOT NULL DEFAULT 0,
    payment_method TEXT NOT NULL DEFAULT 'cash',
    payment_status TEXT NOT NULL DEFAULT 'unpaid',
    total_amount REAL NOT NULL DEFAULT 0,
    extras TEXT,
    condition_start TEXT,
    condition_end TEXT,
    notes TEXT,
    status TEXT NOT NULL DEFAULT 'active',
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_rentals_vehicle_status ON rentals (vehicle_id, status);

CREATE TABLE IF NOT EXISTS maintenance (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    vehicle_id INTEGER NOT NULL REFERENCES vehicles(id),
    type TEXT NOT NULL,
    date TEXT NOT NULL,
    mileage INTEGER NOT NULL,
    cost REAL NOT NULL,
    location TEXT NOT NULL,
    description TEXT NOT NULL,
    next_maintenance_mileage INTEGER,
    next_maintenance_date TEXT,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS expenses (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    vehicle_id INTEGER REFERENCES vehicles(id),
    category TEXT NOT NULL,
    amount REAL NOT NULL,
    date TEXT NOT NULL,
    description TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_expenses_date ON expenses (date);

CREATE TABLE IF NOT EXISTS booking_requests (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    reference_code TEXT UNIQUE NOT NULL,
    vehicle_id INTEGER NOT NULL REFERENCES vehicles(id),
    customer_first_name TEXT NOT NULL,
    customer_last_name TEXT NOT NULL,
    customer_email TEXT NOT NULL,
    customer_phone TEXT NOT NULL,
    customer_birth_date TEXT,
    customer_license_number TEXT,
    customer_license_issue_date TEXT,
    start_date TEXT NOT NULL,
    end_date TEXT NOT NULL,
    pickup_location TEXT NOT NULL,
    return_location TEXT NOT NULL,
    additional_services TEXT NOT NULL DEFAULT '[]',
    total_price REAL NOT NULL DEFAULT 0,
    status TEXT NOT NULL DEFAULT 'pending',
    admin_notes TEXT,
    rental_id INTEGER REFERENCES rentals(id),
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_booking_requests_vehicle_status ON booking_requests (vehicle_id, status);
"""

_SNAKE_PART = re.compile(r"_([a-z0-9])")


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_iso(value: Union[datetime, date, None]) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return to_utc(value).isoformat()
    return value.isoformat()


def parse_instant(value: Union[str, datetime]) -> datetime:
    """Parse a stored ISO-8601 timestamp into an aware UTC datetime."""
    if isinstance(value, datetime):
        return to_utc(value)
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return to_utc(datetime.fromisoformat(text))


def to_camel(name: str) -> str:
    return _SNAKE_PART.sub(lambda m: m.group(1).upper(), name)


def row_to_camel(row: sqlite3.Row) -> Dict[str, Any]:
    return {to_camel(key): row[key] for key in row.keys()}


def dumps_json(value: Any) -> str:
    return json.dumps(value or [])


def loads_json(value: Optional[str]) -> Any:
    if not value:
        return []
    return json.loads(value)


class Database:
    def __init__(self, path: str, timeout: float = 5.0) -> None:
        self.path = path
        self.timeout = timeout

    def connect(self) -> sqlite3.Connection:
        # autocommit mode; transactions are opened explicitly by transaction()
        conn = sqlite3.connect(
            self.path,
            timeout=self.timeout,
            isolation_level=None,
            check_same_thread=False,
        )
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def session(self) -> Iterator[sqlite3.Connection]:
        conn = self.connect()
        try:
            yield conn
        finally:
            conn.close()

    def init_schema(self) -> None:
        with self.session() as conn:
            conn.executescript(SCHEMA)


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """Run a block under SQLite's write lock, rolling back on any error."""
    conn.execute("BEGIN IMMEDIATE")
    try:
        yield conn
    except BaseException:
        conn.execute("ROLLBACK")
        raise
    conn.execute("COMMIT")
