"""SQLite storage for the property inventory, clients and saved searches."""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime
from pathlib import Path

from inmo_search.gazetteer import fold
from inmo_search.models.criteria import StructuredCriteria

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS properties (
    property_id   INTEGER PRIMARY KEY AUTOINCREMENT,
    title         TEXT NOT NULL,
    property_type TEXT NOT NULL,
    subtype       TEXT,
    price         REAL,
    currency      TEXT,
    address       TEXT,
    zone          TEXT,
    city          TEXT,
    bedrooms      INTEGER,
    rooms         INTEGER,
    agency        TEXT,
    status        TEXT NOT NULL DEFAULT 'DRAFT',
    created_at    TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_properties_status ON properties(status);
CREATE INDEX IF NOT EXISTS idx_properties_type ON properties(property_type);

CREATE TABLE IF NOT EXISTS clients (
    client_id     INTEGER PRIMARY KEY AUTOINCREMENT,
    full_name     TEXT NOT NULL UNIQUE,
    phone         TEXT,
    source        TEXT,
    created_at    TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_clients_phone ON clients(phone);

CREATE TABLE IF NOT EXISTS searches (
    search_id     INTEGER PRIMARY KEY AUTOINCREMENT,
    client_id     INTEGER NOT NULL REFERENCES clients(client_id),
    property_type TEXT,
    operation     TEXT,
    budget_text   TEXT,
    budget_value  REAL,
    currency      TEXT,
    preferred_locations TEXT,
    bedrooms_min  INTEGER,
    rooms_min     INTEGER,
    parking       TEXT,
    notes         TEXT,
    criteria_json TEXT,  -- StructuredCriteria as JSON
    raw_message   TEXT NOT NULL,
    origin        TEXT NOT NULL DEFAULT 'CUSTOM',
    status        TEXT NOT NULL DEFAULT 'ACTIVE',
    created_at    TEXT NOT NULL DEFAULT (datetime('now'))
);
"""


def connect(db_path: str) -> sqlite3.Connection:
    """Open the database, register helper functions and ensure the schema."""
    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    # Graph nodes may run on executor threads
    conn = sqlite3.connect(db_path, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.create_function("fold", 1, fold, deterministic=True)
    conn.executescript(SCHEMA_SQL)
    conn.commit()
    return conn


class PropertyRepository:
    """Read access to the internal inventory (plus inserts for seeding)."""

    def __init__(self, db_path: str = "data/inmo.db") -> None:
        self.db_path = db_path
        self._conn = connect(db_path)

    def close(self) -> None:
        self._conn.close()

    def add_property(
        self,
        title: str,
        property_type: str,
        price: float | None = None,
        currency: str | None = "USD",
        subtype: str | None = None,
        address: str | None = None,
        zone: str | None = None,
        city: str | None = "Santa Fe",
        bedrooms: int | None = None,
        rooms: int | None = None,
        agency: str | None = None,
        status: str = "APPROVED",
    ) -> int:
        """Insert a property record. Returns its id."""
        cursor = self._conn.execute(
            """
            INSERT INTO properties (
                title, property_type, subtype, price, currency, address,
                zone, city, bedrooms, rooms, agency, status
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                title, property_type, subtype, price, currency, address,
                zone, city, bedrooms, rooms, agency, status,
            ),
        )
        self._conn.commit()
        return cursor.lastrowid

    def search(self, where_sql: str, params: list, limit: int) -> list[dict]:
        """Run a filtered inventory query, cheapest first."""
        sql = (
            "SELECT * FROM properties"
            + (f" WHERE {where_sql}" if where_sql else "")
            + " ORDER BY price IS NULL, price ASC LIMIT ?"
        )
        logger.debug("Inventory query: %s %s", sql, params)
        rows = self._conn.execute(sql, [*params, limit]).fetchall()
        return [dict(row) for row in rows]


class SearchRepository:
    """Client lookup/creation and durable search records."""

    def __init__(self, db_path: str = "data/inmo.db") -> None:
        self.db_path = db_path
        self._conn = connect(db_path)

    def close(self) -> None:
        self._conn.close()

    # -- Clients ----------------------------------------------------------------

    def get_client(self, client_id: int) -> dict | None:
        row = self._conn.execute(
            "SELECT * FROM clients WHERE client_id = ?", (client_id,)
        ).fetchone()
        return dict(row) if row else None

    def find_client(self, name: str | None = None, phone: str | None = None) -> dict | None:
        """Match by phone first, then by exact name."""
        if phone:
            row = self._conn.execute(
                "SELECT * FROM clients WHERE phone = ? ORDER BY client_id LIMIT 1",
                (phone,),
            ).fetchone()
            if row:
                return dict(row)
        if name:
            row = self._conn.execute(
                "SELECT * FROM clients WHERE full_name = ?", (name,)
            ).fetchone()
            if row:
                return dict(row)
        return None

    def create_client(self, name: str, phone: str | None = None, source: str = "WHATSAPP") -> int:
        """Insert a client. Raises sqlite3.IntegrityError if the name is taken."""
        cursor = self._conn.execute(
            "INSERT INTO clients (full_name, phone, source) VALUES (?, ?, ?)",
            (name, phone, source),
        )
        self._conn.commit()
        return cursor.lastrowid

    def find_or_create_client(self, name: str, phone: str | None = None) -> tuple[dict, bool]:
        """Return ``(client, created)``.

        A unique-name violation on insert means another request created the
        client in between; the existing row is fetched instead.
        """
        existing = self.find_client(name=name, phone=phone)
        if existing:
            return existing, False

        try:
            client_id = self.create_client(name, phone)
        except sqlite3.IntegrityError:
            self._conn.rollback()
            logger.info("Client '%s' already exists — re-fetching", name)
            existing = self.find_client(name=name)
            if existing is None:
                raise
            return existing, False

        logger.info("Created client %d (%s)", client_id, name)
        return self.get_client(client_id), True

    # -- Searches ---------------------------------------------------------------

    def create_search(self, client_id: int, criteria: StructuredCriteria, raw_message: str) -> int:
        """Store the inquiry and its criteria as a saved search. Returns its id."""
        budget_text = (
            f"{criteria.currency.value} {criteria.price_max:,.0f}"
            if criteria.price_max is not None
            else None
        )
        cursor = self._conn.execute(
            """
            INSERT INTO searches (
                client_id, property_type, operation, budget_text, budget_value,
                currency, preferred_locations, bedrooms_min, rooms_min, parking,
                notes, criteria_json, raw_message
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                client_id,
                criteria.property_type.value,
                criteria.operation.value,
                budget_text,
                criteria.price_max,
                criteria.currency.value,
                ", ".join(criteria.locations) or None,
                criteria.bedrooms_min,
                criteria.rooms_min,
                "YES" if criteria.has_parking else "NO",
                format_search_notes(criteria, raw_message),
                criteria.model_dump_json(),
                raw_message,
            ),
        )
        self._conn.commit()
        return cursor.lastrowid

    def get_search(self, search_id: int) -> dict | None:
        row = self._conn.execute(
            "SELECT * FROM searches WHERE search_id = ?", (search_id,)
        ).fetchone()
        if not row:
            return None
        search = dict(row)
        search["criteria"] = json.loads(search.pop("criteria_json") or "{}")
        return search


def format_search_notes(criteria: StructuredCriteria, raw_message: str) -> str:
    """Human-readable annotations stored alongside a saved search."""
    lines = [f"Operation: {criteria.operation.value}"]
    if criteria.notes:
        lines.append(criteria.notes)
    if criteria.features:
        lines += ["", "Features: " + ", ".join(criteria.features)]
    lines += ["", "--- Original message ---", raw_message]
    return "\n".join(lines)


def generated_client_name(now: datetime | None = None) -> str:
    """Display name for clients who did not introduce themselves."""
    now = now or datetime.now()
    return f"Cliente WhatsApp {now.strftime('%Y-%m-%d %H:%M:%S')}"
