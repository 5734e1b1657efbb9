"""
Business logic for posted services.

The ``ServiceRequestService`` creates, lists, updates and deletes the
jobs users post, runs the nearby search and manages favourites.  Status
changes made by the owner are restricted to closing a service
(``cancelled``) or finishing accepted work (``completed``); the move to
``in_progress`` belongs to the proposal workflow.
"""

import logging
import math
import sqlite3
from typing import Any, Dict, List, Optional

from ..core.db import Database
from ..core.errors import Conflict, InvalidState, NotFound, ValidationError
from ..core.permissions import require_service_owner
from ..schemas.category import CategoryRef
from ..schemas.common import Pagination
from ..schemas.proposal import ProposalRead
from ..schemas.service import (
    FavoriteRead,
    NearbyServiceRead,
    ServiceCreate,
    ServiceDetail,
    ServiceList,
    ServiceRead,
    ServiceUpdate,
)
from ..schemas.user import UserSummary
from ..utils.formatters import format_distance


logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0
SERVICE_STATUSES = ("pending", "in_progress", "completed", "cancelled")
# Status changes an owner may request through an update.
OWNER_TRANSITIONS = {
    ("pending", "cancelled"),
    ("in_progress", "completed"),
    ("in_progress", "cancelled"),
}
NOT_NULL_FIELDS = ("title", "description", "price", "scheduled_date", "status")
# Schema field name -> column name
UPDATE_COLUMNS = {
    "title": "title",
    "description": "description",
    "price": "price",
    "scheduled_date": "date",
    "location": "location",
    "category_id": "category_id",
    "latitude": "latitude",
    "longitude": "longitude",
    "status": "status",
}

SERVICE_SELECT = """
    SELECT s.id, s.user_id, s.title, s.description, s.price, s.date, s.location,
           s.latitude, s.longitude, s.category_id, s.status, s.created_at,
           c.name AS category_name,
           u.name AS user_name, u.avatar_url AS user_avatar_url,
           u.city AS user_city, u.state AS user_state
    FROM services s
    LEFT JOIN categories c ON c.id = s.category_id
    LEFT JOIN users u ON u.id = s.user_id
"""

PROPOSAL_SELECT = """
    SELECT p.id, p.service_id, p.provider_id, p.price, p.message, p.status, p.created_at,
           u.name AS provider_name, u.avatar_url AS provider_avatar_url
    FROM proposals p
    LEFT JOIN users u ON u.id = p.provider_id
"""


def _like(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two points in kilometres."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def fetch_service_row(conn: sqlite3.Connection | sqlite3.Cursor, service_id: int) -> Optional[sqlite3.Row]:
    return conn.execute(f"{SERVICE_SELECT} WHERE s.id = ?", (service_id,)).fetchone()


def fetch_proposals(
    conn: sqlite3.Connection | sqlite3.Cursor,
    service_id: int,
    provider_id: Optional[int] = None,
) -> List[ProposalRead]:
    """Proposals of a service, newest first, optionally only one provider's."""
    query = f"{PROPOSAL_SELECT} WHERE p.service_id = ?"
    params: list = [service_id]
    if provider_id is not None:
        query += " AND p.provider_id = ?"
        params.append(provider_id)
    query += " ORDER BY p.created_at DESC, p.id DESC"
    return [proposal_from_row(row) for row in conn.execute(query, tuple(params)).fetchall()]


def proposal_from_row(row: sqlite3.Row) -> ProposalRead:
    provider = None
    if row["provider_name"] is not None:
        provider = UserSummary(id=row["provider_id"], name=row["provider_name"], avatar_url=row["provider_avatar_url"])
    return ProposalRead(
        id=row["id"],
        service_id=row["service_id"],
        provider_id=row["provider_id"],
        price=row["price"],
        message=row["message"],
        status=row["status"],
        created_at=row["created_at"],
        provider=provider,
    )


def _service_fields(row: sqlite3.Row, with_owner_location: bool = False) -> Dict[str, Any]:
    category = None
    if row["category_id"] is not None and row["category_name"] is not None:
        category = CategoryRef(id=row["category_id"], name=row["category_name"])
    user = None
    if row["user_name"] is not None:
        user = UserSummary(
            id=row["user_id"],
            name=row["user_name"],
            avatar_url=row["user_avatar_url"],
            city=row["user_city"] if with_owner_location else None,
            state=row["user_state"] if with_owner_location else None,
        )
    return {
        "id": row["id"],
        "title": row["title"],
        "description": row["description"],
        "price": row["price"],
        "scheduled_date": row["date"],
        "location": row["location"],
        "latitude": row["latitude"],
        "longitude": row["longitude"],
        "status": row["status"],
        "created_at": row["created_at"],
        "category": category,
        "user": user,
    }


def service_from_row(row: sqlite3.Row) -> ServiceRead:
    return ServiceRead(**_service_fields(row))


class ServiceRequestService:
    """Service for managing posted services and favourites."""

    def __init__(self, db: Database, nearby_max_results: int = 50) -> None:
        self.db = db
        self.nearby_max_results = nearby_max_results

    @staticmethod
    def _check_category(cursor: sqlite3.Cursor, category_id: Optional[int]) -> None:
        if category_id is None:
            return
        if not cursor.execute("SELECT id FROM categories WHERE id = ?", (category_id,)).fetchone():
            raise ValidationError(f"Category {category_id} does not exist")

    async def create_service(self, actor_id: int, data: ServiceCreate) -> ServiceRead:
        """Post a new service owned by ``actor_id`` with status ``pending``."""
        with self.db.transaction() as cursor:
            self._check_category(cursor, data.category_id)
            cursor.execute(
                """
                INSERT INTO services
                    (user_id, title, description, price, date, location, latitude, longitude, category_id, status)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, 'pending')
                """,
                (
                    actor_id,
                    data.title,
                    data.description,
                    data.price,
                    data.scheduled_date,
                    data.location,
                    data.latitude,
                    data.longitude,
                    data.category_id,
                ),
            )
            service_id = cursor.lastrowid
            row = fetch_service_row(cursor, service_id)
        logger.info("User %s posted service %s", actor_id, service_id)
        return service_from_row(row)

    async def list_services(
        self,
        category: Optional[int] = None,
        q: Optional[str] = None,
        location: Optional[str] = None,
        status: Optional[str] = "pending",
        limit: int = 20,
        offset: int = 0,
    ) -> ServiceList:
        """List services matching the filters, newest first.

        ``q`` matches a case-insensitive substring of the title or the
        description and ``location`` a substring of the location text.
        ``pagination.total`` is the number of matching services.  An empty
        ``status`` lists services in every status.
        """
        if status and status not in SERVICE_STATUSES:
            raise ValidationError(f"Unknown status '{status}'")
        conditions: List[str] = []
        params: list = []
        if category is not None:
            conditions.append("s.category_id = ?")
            params.append(category)
        if q:
            conditions.append("(s.title LIKE ? ESCAPE '\\' OR s.description LIKE ? ESCAPE '\\')")
            params.extend([_like(q), _like(q)])
        if location:
            conditions.append("s.location LIKE ? ESCAPE '\\'")
            params.append(_like(location))
        if status:
            conditions.append("s.status = ?")
            params.append(status)
        where = f" WHERE {' AND '.join(conditions)}" if conditions else ""

        with self.db.connection() as conn:
            rows = conn.execute(
                f"{SERVICE_SELECT}{where} ORDER BY s.created_at DESC, s.id DESC LIMIT ? OFFSET ?",
                (*params, limit, offset),
            ).fetchall()
            total = conn.execute(f"SELECT COUNT(*) AS count FROM services s{where}", tuple(params)).fetchone()
        return ServiceList(
            services=[service_from_row(row) for row in rows],
            pagination=Pagination(limit=limit, offset=offset, total=total["count"]),
        )

    async def get_service(self, service_id: int) -> ServiceDetail:
        """Return one service with its category, owner and proposals."""
        with self.db.connection() as conn:
            row = fetch_service_row(conn, service_id)
            if not row:
                raise NotFound("Service not found")
            proposals = fetch_proposals(conn, service_id)
        return ServiceDetail(**_service_fields(row, with_owner_location=True), proposals=proposals)

    async def update_service(self, service_id: int, actor_id: int, update: ServiceUpdate) -> ServiceRead:
        """Apply a partial update sent by the owner."""
        changes = update.model_dump(exclude_unset=True)
        if not changes:
            raise ValidationError("No fields to update")
        for field_name in NOT_NULL_FIELDS:
            if field_name in changes and changes[field_name] is None:
                raise ValidationError(f"{field_name} cannot be empty")

        with self.db.transaction() as cursor:
            current = cursor.execute("SELECT id, user_id, status FROM services WHERE id = ?", (service_id,)).fetchone()
            if not current:
                raise NotFound("Service not found")
            require_service_owner(actor_id, current, "Only the service owner can edit it")
            if "category_id" in changes:
                self._check_category(cursor, changes["category_id"])
            new_status = changes.get("status")
            if new_status is not None:
                if new_status == current["status"]:
                    del changes["status"]
                elif (current["status"], new_status) not in OWNER_TRANSITIONS:
                    raise InvalidState(f"Cannot change status from {current['status']} to {new_status}")

            if changes:
                assignments = ", ".join(f"{UPDATE_COLUMNS[name]} = ?" for name in changes)
                cursor.execute(
                    f"UPDATE services SET {assignments} WHERE id = ?",
                    (*changes.values(), service_id),
                )
            row = fetch_service_row(cursor, service_id)
        if new_status is not None and new_status != current["status"]:
            logger.info("Service %s moved from %s to %s", service_id, current["status"], new_status)
        return service_from_row(row)

    async def delete_service(self, service_id: int, actor_id: int) -> None:
        """Delete a service together with its proposals and favourites."""
        with self.db.transaction() as cursor:
            current = cursor.execute("SELECT id, user_id FROM services WHERE id = ?", (service_id,)).fetchone()
            if not current:
                raise NotFound("Service not found")
            require_service_owner(actor_id, current, "Only the service owner can delete it")
            cursor.execute("DELETE FROM favorites WHERE service_id = ?", (service_id,))
            cursor.execute("DELETE FROM proposals WHERE service_id = ?", (service_id,))
            cursor.execute("DELETE FROM services WHERE id = ?", (service_id,))
        logger.info("Service %s deleted by user %s", service_id, actor_id)

    async def nearby_services(
        self,
        lat: Optional[float],
        lng: Optional[float],
        radius: float = 10,
    ) -> List[NearbyServiceRead]:
        """Pending services within ``radius`` km of a point, closest first.

        Only services with both coordinates are considered.  At most
        ``nearby_max_results`` services are returned.
        """
        if lat is None or lng is None:
            raise ValidationError("Latitude and longitude are required")
        if radius <= 0:
            raise ValidationError("Radius must be greater than zero")

        with self.db.connection() as conn:
            rows = conn.execute(
                f"{SERVICE_SELECT} WHERE s.status = 'pending' "
                "AND s.latitude IS NOT NULL AND s.longitude IS NOT NULL",
            ).fetchall()

        matches = []
        for row in rows:
            distance = haversine_km(lat, lng, row["latitude"], row["longitude"])
            if distance <= radius:
                matches.append((distance, row))
        matches.sort(key=lambda item: (item[0], item[1]["id"]))

        return [
            NearbyServiceRead(
                **_service_fields(row),
                distance=round(distance, 2),
                distance_label=format_distance(distance),
            )
            for distance, row in matches[: self.nearby_max_results]
        ]

    async def list_favorites(self, actor_id: int) -> List[FavoriteRead]:
        with self.db.connection() as conn:
            favorites = conn.execute(
                "SELECT id, service_id, created_at FROM favorites WHERE user_id = ? "
                "ORDER BY created_at DESC, id DESC",
                (actor_id,),
            ).fetchall()
            result = []
            for favorite in favorites:
                row = fetch_service_row(conn, favorite["service_id"])
                result.append(
                    FavoriteRead(
                        id=favorite["id"],
                        service_id=favorite["service_id"],
                        created_at=favorite["created_at"],
                        service=service_from_row(row) if row else None,
                    )
                )
        return result

    async def add_favorite(self, actor_id: int, service_id: int) -> FavoriteRead:
        try:
            with self.db.transaction() as cursor:
                if not cursor.execute("SELECT id FROM services WHERE id = ?", (service_id,)).fetchone():
                    raise NotFound("Service not found")
                if cursor.execute(
                    "SELECT id FROM favorites WHERE user_id = ? AND service_id = ?",
                    (actor_id, service_id),
                ).fetchone():
                    raise Conflict("Service is already in your favorites")
                cursor.execute(
                    "INSERT INTO favorites (user_id, service_id) VALUES (?, ?)",
                    (actor_id, service_id),
                )
                favorite = cursor.execute(
                    "SELECT id, service_id, created_at FROM favorites WHERE id = ?",
                    (cursor.lastrowid,),
                ).fetchone()
                row = fetch_service_row(cursor, service_id)
        except sqlite3.IntegrityError as exc:
            raise Conflict("Service is already in your favorites") from exc
        return FavoriteRead(
            id=favorite["id"],
            service_id=favorite["service_id"],
            created_at=favorite["created_at"],
            service=service_from_row(row),
        )
