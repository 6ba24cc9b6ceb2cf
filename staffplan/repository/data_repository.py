"""Repository layer responsible for all database access."""

from __future__ import annotations

import json
import random
import sqlite3
from datetime import date, timedelta
from pathlib import Path
from typing import Optional, Sequence
from uuid import uuid4

from staffplan.domain.constraints import validate_proposal_status
from staffplan.domain.models import (
    ActiveProject,
    LeaveRecord,
    ProjectAssignment,
    Proposal,
    StaffMember,
)
from staffplan.domain.optimization_modes import OptimizationMode, normalize_optimization_mode
from staffplan.utils.config import Settings, get_settings
from staffplan.utils.logger import get_logger


logger = get_logger(__name__)


def _parse_date(value: Optional[str]) -> Optional[date]:
    if value is None or value == "":
        return None
    return date.fromisoformat(str(value))


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _placeholders(values: Sequence[object]) -> str:
    return ",".join("?" for _ in values)


def _new_id() -> str:
    return uuid4().hex


class DataRepository:
    """Encapsulates SQLite access so business logic stays storage-agnostic."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._db_path = Path(self._settings.database_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def database_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(self._db_path)
        connection.row_factory = sqlite3.Row
        connection.execute("PRAGMA foreign_keys = ON;")
        return connection

    def initialize_database(self) -> None:
        """Create all persistence artifacts before API startup."""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Tenants (
                        id TEXT PRIMARY KEY,
                        name TEXT NOT NULL,
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Offices (
                        id TEXT PRIMARY KEY,
                        tenant_id TEXT NOT NULL,
                        name TEXT NOT NULL,
                        country TEXT,
                        timezone TEXT,
                        FOREIGN KEY (tenant_id) REFERENCES Tenants(id)
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Staff (
                        id TEXT PRIMARY KEY,
                        tenant_id TEXT NOT NULL,
                        display_name TEXT NOT NULL,
                        job_title TEXT,
                        office_id TEXT,
                        weekly_capacity_hours REAL NOT NULL CHECK (weekly_capacity_hours >= 0),
                        FOREIGN KEY (tenant_id) REFERENCES Tenants(id),
                        FOREIGN KEY (office_id) REFERENCES Offices(id)
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Projects (
                        id TEXT PRIMARY KEY,
                        tenant_id TEXT NOT NULL,
                        name TEXT NOT NULL,
                        client_name TEXT,
                        start_date TEXT,
                        end_date TEXT,
                        status TEXT NOT NULL DEFAULT 'active',
                        FOREIGN KEY (tenant_id) REFERENCES Tenants(id)
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS ProjectAssignments (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        project_id TEXT NOT NULL,
                        staff_id TEXT NOT NULL,
                        allocation_percentage REAL NOT NULL CHECK (allocation_percentage >= 0),
                        FOREIGN KEY (project_id) REFERENCES Projects(id),
                        FOREIGN KEY (staff_id) REFERENCES Staff(id)
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS LeaveRequests (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        tenant_id TEXT NOT NULL,
                        staff_id TEXT NOT NULL,
                        start_date TEXT NOT NULL,
                        end_date TEXT NOT NULL,
                        leave_type TEXT NOT NULL DEFAULT 'annual',
                        status TEXT NOT NULL DEFAULT 'pending',
                        FOREIGN KEY (tenant_id) REFERENCES Tenants(id),
                        FOREIGN KEY (staff_id) REFERENCES Staff(id)
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Proposals (
                        id TEXT PRIMARY KEY,
                        tenant_id TEXT NOT NULL,
                        name TEXT NOT NULL,
                        client_name TEXT,
                        proposed_start_date TEXT,
                        proposed_end_date TEXT,
                        estimated_hours REAL,
                        estimated_hours_per_week REAL,
                        office_scope TEXT,
                        optimization_mode TEXT NOT NULL DEFAULT 'max_feasibility',
                        status TEXT NOT NULL DEFAULT 'draft',
                        notes TEXT,
                        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                        FOREIGN KEY (tenant_id) REFERENCES Tenants(id)
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_staff_tenant_office
                    ON Staff(tenant_id, office_id);
                    """
                )
                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_projects_tenant_status_dates
                    ON Projects(tenant_id, status, start_date, end_date);
                    """
                )
                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_leave_staff_status_dates
                    ON LeaveRequests(staff_id, status, start_date, end_date);
                    """
                )
                conn.commit()
            logger.info("Database initialized at %s", self._db_path)
        except sqlite3.Error as exc:
            raise RuntimeError(f"Database initialization failed: {exc}") from exc

    def seed_demo_data(self, tenant_id: Optional[str] = None, today: Optional[date] = None) -> None:
        """Seed a deterministic demo tenant only when it has no staff yet."""
        tenant_id = tenant_id or self._settings.demo_tenant_id
        rng = random.Random(self._settings.demo_random_seed)
        anchor = today or date.today()
        anchor = anchor - timedelta(days=anchor.weekday())
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    "SELECT COUNT(*) AS count FROM Staff WHERE tenant_id = ?;",
                    (tenant_id,),
                )
                if int(cursor.fetchone()["count"]) > 0:
                    logger.info("Demo data already present; skipping seed")
                    return
        except sqlite3.Error as exc:
            raise RuntimeError(f"Demo data seeding failed: {exc}") from exc

        self.create_tenant(tenant_id, "Demo Consulting")
        offices = [
            ("london", "London", "GB", "Europe/London"),
            ("sydney", "Sydney", "AU", "Australia/Sydney"),
            ("toronto", "Toronto", "CA", "America/Toronto"),
        ]
        for office_id, name, country, timezone in offices:
            self.create_office(tenant_id, name, country=country, timezone=timezone, office_id=office_id)

        roster = [
            ("Avery Chen", "Senior Consultant", "london", 40.0),
            ("Blake Osei", "Consultant", "london", 40.0),
            ("Casey Nguyen", "Analyst", "london", 37.5),
            ("Devon Patel", "Principal", "london", 40.0),
            ("Emery Santos", "Consultant", "sydney", 38.0),
            ("Finley Moore", "Analyst", "sydney", 38.0),
            ("Harper Kim", "Senior Consultant", "sydney", 30.0),
            ("Jordan Reyes", "Consultant", "toronto", 40.0),
            ("Kai Andersen", "Analyst", "toronto", 40.0),
            ("Logan Ito", "Senior Consultant", "toronto", 24.0),
        ]
        staff_ids = [
            self.create_staff(
                tenant_id,
                display_name=name,
                weekly_capacity_hours=capacity,
                office_id=office_id,
                job_title=title,
                staff_id=f"staff-{index + 1:02d}",
            )
            for index, (name, title, office_id, capacity) in enumerate(roster)
        ]

        project_ids: list[str] = []
        for index in range(5):
            start = anchor - timedelta(weeks=rng.randint(0, 8))
            end = anchor + timedelta(weeks=rng.randint(4, 20), days=4)
            project_ids.append(
                self.create_project(
                    tenant_id,
                    name=f"Engagement {index + 1}",
                    client_name=f"Client {chr(ord('A') + index)}",
                    start_date=start,
                    end_date=end,
                    project_id=f"project-{index + 1:02d}",
                )
            )

        for staff_id in staff_ids:
            for project_id in rng.sample(project_ids, rng.randint(0, 2)):
                self.create_assignment(project_id, staff_id, float(rng.choice([20, 25, 40, 50, 60])))

        for staff_id in rng.sample(staff_ids, 4):
            leave_start = anchor + timedelta(weeks=rng.randint(1, 10), days=rng.randint(0, 2))
            self.create_leave_request(
                tenant_id,
                staff_id,
                start_date=leave_start,
                end_date=leave_start + timedelta(days=rng.randint(1, 6)),
                status="approved",
            )

        self.create_proposal(
            Proposal(
                id="proposal-01",
                tenant_id=tenant_id,
                name="Regional operating model review",
                client_name="Client F",
                proposed_start_date=anchor + timedelta(weeks=2, days=2),
                proposed_end_date=anchor + timedelta(weeks=14, days=3),
                estimated_hours=None,
                estimated_hours_per_week=120.0,
                status="submitted",
            )
        )
        self.create_proposal(
            Proposal(
                id="proposal-02",
                tenant_id=tenant_id,
                name="Data platform discovery",
                client_name="Client G",
                proposed_start_date=anchor + timedelta(weeks=4),
                proposed_end_date=anchor + timedelta(weeks=9, days=4),
                estimated_hours=900.0,
                estimated_hours_per_week=None,
                office_scope=("london", "toronto"),
                optimization_mode=OptimizationMode.MULTI_OFFICE_BALANCED,
            )
        )
        logger.info(
            "Demo seed completed | tenant_id=%s | staff=%s | projects=%s",
            tenant_id,
            len(staff_ids),
            len(project_ids),
        )

    def create_tenant(self, tenant_id: str, name: str) -> str:
        with self._connect() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO Tenants (id, name) VALUES (?, ?);",
                (tenant_id, name),
            )
            conn.commit()
        return tenant_id

    def create_office(
        self,
        tenant_id: str,
        name: str,
        *,
        country: Optional[str] = None,
        timezone: Optional[str] = None,
        office_id: Optional[str] = None,
    ) -> str:
        office_id = office_id or _new_id()
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO Offices (id, tenant_id, name, country, timezone)
                VALUES (?, ?, ?, ?, ?);
                """,
                (office_id, tenant_id, name, country, timezone),
            )
            conn.commit()
        return office_id

    def create_staff(
        self,
        tenant_id: str,
        *,
        display_name: str,
        weekly_capacity_hours: float,
        office_id: Optional[str] = None,
        job_title: Optional[str] = None,
        staff_id: Optional[str] = None,
    ) -> str:
        staff_id = staff_id or _new_id()
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO Staff (
                    id,
                    tenant_id,
                    display_name,
                    job_title,
                    office_id,
                    weekly_capacity_hours
                )
                VALUES (?, ?, ?, ?, ?, ?);
                """,
                (staff_id, tenant_id, display_name, job_title, office_id, weekly_capacity_hours),
            )
            conn.commit()
        return staff_id

    def create_project(
        self,
        tenant_id: str,
        *,
        name: str,
        start_date: Optional[date],
        end_date: Optional[date],
        status: str = "active",
        client_name: Optional[str] = None,
        project_id: Optional[str] = None,
    ) -> str:
        project_id = project_id or _new_id()
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO Projects (id, tenant_id, name, client_name, start_date, end_date, status)
                VALUES (?, ?, ?, ?, ?, ?, ?);
                """,
                (project_id, tenant_id, name, client_name, _iso(start_date), _iso(end_date), status),
            )
            conn.commit()
        return project_id

    def create_assignment(
        self,
        project_id: str,
        staff_id: str,
        allocation_percentage: float,
    ) -> int:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO ProjectAssignments (project_id, staff_id, allocation_percentage)
                VALUES (?, ?, ?);
                """,
                (project_id, staff_id, allocation_percentage),
            )
            conn.commit()
            return int(cursor.lastrowid)

    def create_leave_request(
        self,
        tenant_id: str,
        staff_id: str,
        *,
        start_date: date,
        end_date: date,
        leave_type: str = "annual",
        status: str = "pending",
    ) -> int:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO LeaveRequests (tenant_id, staff_id, start_date, end_date, leave_type, status)
                VALUES (?, ?, ?, ?, ?, ?);
                """,
                (tenant_id, staff_id, _iso(start_date), _iso(end_date), leave_type, status),
            )
            conn.commit()
            return int(cursor.lastrowid)

    def create_proposal(self, proposal: Proposal) -> str:
        """Insert a proposal after applying the status/date rule."""
        validate_proposal_status(proposal)
        office_scope = json.dumps(list(proposal.office_scope)) if proposal.office_scope else None
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO Proposals (
                    id,
                    tenant_id,
                    name,
                    client_name,
                    proposed_start_date,
                    proposed_end_date,
                    estimated_hours,
                    estimated_hours_per_week,
                    office_scope,
                    optimization_mode,
                    status,
                    notes
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
                """,
                (
                    proposal.id,
                    proposal.tenant_id,
                    proposal.name,
                    proposal.client_name,
                    _iso(proposal.proposed_start_date),
                    _iso(proposal.proposed_end_date),
                    proposal.estimated_hours,
                    proposal.estimated_hours_per_week,
                    office_scope,
                    proposal.optimization_mode.value,
                    proposal.status,
                    proposal.notes,
                ),
            )
            conn.commit()
        return proposal.id

    def get_proposal(self, tenant_id: str, proposal_id: str) -> Optional[Proposal]:
        """Fetch a proposal only when it belongs to ``tenant_id``."""
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT
                    id,
                    tenant_id,
                    name,
                    client_name,
                    proposed_start_date,
                    proposed_end_date,
                    estimated_hours,
                    estimated_hours_per_week,
                    office_scope,
                    optimization_mode,
                    status,
                    notes
                FROM Proposals
                WHERE id = ? AND tenant_id = ?;
                """,
                (proposal_id, tenant_id),
            )
            row = cursor.fetchone()
            if row is None:
                return None
            office_scope = json.loads(row["office_scope"]) if row["office_scope"] else None
            return Proposal(
                id=str(row["id"]),
                tenant_id=str(row["tenant_id"]),
                name=str(row["name"]),
                client_name=row["client_name"],
                proposed_start_date=_parse_date(row["proposed_start_date"]),
                proposed_end_date=_parse_date(row["proposed_end_date"]),
                estimated_hours=(
                    float(row["estimated_hours"]) if row["estimated_hours"] is not None else None
                ),
                estimated_hours_per_week=(
                    float(row["estimated_hours_per_week"])
                    if row["estimated_hours_per_week"] is not None
                    else None
                ),
                office_scope=tuple(str(item) for item in office_scope) if office_scope else None,
                optimization_mode=normalize_optimization_mode(row["optimization_mode"]),
                status=str(row["status"]),
                notes=row["notes"],
            )

    def list_staff(
        self,
        tenant_id: str,
        office_ids: Optional[Sequence[str]] = None,
    ) -> list[StaffMember]:
        """Return tenant staff, optionally restricted to ``office_ids``."""
        query = """
            SELECT
                s.id,
                s.display_name,
                s.job_title,
                s.office_id,
                s.weekly_capacity_hours,
                o.name AS office_name
            FROM Staff AS s
            LEFT JOIN Offices AS o ON o.id = s.office_id
            WHERE s.tenant_id = ?
        """
        params: list[object] = [tenant_id]
        if office_ids:
            query += f" AND s.office_id IN ({_placeholders(office_ids)})"
            params.extend(office_ids)
        query += " ORDER BY s.id ASC;"
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(query, tuple(params))
            return [
                StaffMember(
                    id=str(row["id"]),
                    display_name=str(row["display_name"]),
                    weekly_capacity_hours=float(row["weekly_capacity_hours"]),
                    office_id=row["office_id"],
                    office_name=row["office_name"],
                    job_title=row["job_title"],
                )
                for row in cursor.fetchall()
            ]

    def list_overlapping_active_projects(
        self,
        tenant_id: str,
        start_date: date,
        end_date: date,
    ) -> list[ActiveProject]:
        """Active dated projects whose inclusive range touches ``[start_date, end_date]``."""
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT id, name, start_date, end_date
                FROM Projects
                WHERE tenant_id = ?
                  AND status = 'active'
                  AND start_date IS NOT NULL
                  AND end_date IS NOT NULL
                  AND start_date <= ?
                  AND end_date >= ?
                ORDER BY id ASC;
                """,
                (tenant_id, end_date.isoformat(), start_date.isoformat()),
            )
            return [
                ActiveProject(
                    id=str(row["id"]),
                    name=str(row["name"]),
                    start_date=date.fromisoformat(row["start_date"]),
                    end_date=date.fromisoformat(row["end_date"]),
                )
                for row in cursor.fetchall()
            ]

    def list_assignments(
        self,
        project_ids: Sequence[str],
        staff_ids: Sequence[str],
    ) -> list[ProjectAssignment]:
        if not project_ids or not staff_ids:
            return []
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                SELECT project_id, staff_id, allocation_percentage
                FROM ProjectAssignments
                WHERE project_id IN ({_placeholders(project_ids)})
                  AND staff_id IN ({_placeholders(staff_ids)})
                ORDER BY staff_id ASC, project_id ASC, id ASC;
                """,
                (*project_ids, *staff_ids),
            )
            return [
                ProjectAssignment(
                    project_id=str(row["project_id"]),
                    staff_id=str(row["staff_id"]),
                    allocation_percentage=float(row["allocation_percentage"]),
                )
                for row in cursor.fetchall()
            ]

    def list_approved_leave(
        self,
        tenant_id: str,
        staff_ids: Sequence[str],
        start_date: date,
        end_date: date,
    ) -> list[LeaveRecord]:
        if not staff_ids:
            return []
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                SELECT staff_id, start_date, end_date, leave_type
                FROM LeaveRequests
                WHERE tenant_id = ?
                  AND status = 'approved'
                  AND staff_id IN ({_placeholders(staff_ids)})
                  AND start_date <= ?
                  AND end_date >= ?
                ORDER BY staff_id ASC, start_date ASC, id ASC;
                """,
                (tenant_id, *staff_ids, end_date.isoformat(), start_date.isoformat()),
            )
            return [
                LeaveRecord(
                    staff_id=str(row["staff_id"]),
                    start_date=date.fromisoformat(row["start_date"]),
                    end_date=date.fromisoformat(row["end_date"]),
                    leave_type=str(row["leave_type"]),
                )
                for row in cursor.fetchall()
            ]
