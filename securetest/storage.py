"""
SecureTest - Storage
SQLite-based storage for users, scan records and activity logs.
"""

import aiosqlite
import json
import secrets
import time
from pathlib import Path
from typing import Optional, List, Dict, Any

from securetest.config import DEFAULT_DB_PATH


SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    username TEXT NOT NULL UNIQUE,
    role TEXT NOT NULL DEFAULT 'user',
    api_token TEXT NOT NULL UNIQUE,
    created_at REAL NOT NULL
);

CREATE TABLE IF NOT EXISTS scans (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    target TEXT NOT NULL,
    scan_type TEXT NOT NULL,
    status TEXT NOT NULL,
    findings TEXT,
    created_at REAL NOT NULL,
    FOREIGN KEY (user_id) REFERENCES users(id)
);

CREATE TABLE IF NOT EXISTS activity_logs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    action TEXT NOT NULL,
    details TEXT,
    timestamp REAL NOT NULL,
    FOREIGN KEY (user_id) REFERENCES users(id)
);

CREATE INDEX IF NOT EXISTS idx_scans_user ON scans(user_id);
CREATE INDEX IF NOT EXISTS idx_activity_logs_user ON activity_logs(user_id);
"""


class Storage:
    """Async SQLite store for scans and activity logs."""

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = Path(db_path or DEFAULT_DB_PATH)
        self._db: Optional[aiosqlite.Connection] = None

    async def connect(self):
        """Initialize database connection and schema."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._db = await aiosqlite.connect(str(self.db_path))
        self._db.row_factory = aiosqlite.Row
        await self._db.execute("PRAGMA journal_mode=WAL")
        await self._db.execute("PRAGMA foreign_keys=ON")
        await self._db.executescript(SCHEMA)
        await self._db.commit()
        print(f"[Storage] Connected to {self.db_path}")

    async def close(self):
        """Close the database connection."""
        if self._db:
            await self._db.close()
            self._db = None

    # ── Users ───────────────────────────────────────────────────

    async def create_user(self, username: str, role: str = "user") -> Dict:
        """Create a user and issue its API token."""
        now = time.time()
        token = secrets.token_hex(24)
        cursor = await self._db.execute(
            "INSERT INTO users (username, role, api_token, created_at) VALUES (?, ?, ?, ?)",
            (username, role, token, now)
        )
        await self._db.commit()
        return {
            "id": cursor.lastrowid,
            "username": username,
            "role": role,
            "api_token": token,
            "created_at": now,
        }

    async def get_user_by_token(self, token: str) -> Optional[Dict]:
        """Resolve an API token to its user."""
        async with self._db.execute("SELECT * FROM users WHERE api_token = ?", (token,)) as cursor:
            row = await cursor.fetchone()
            return dict(row) if row else None

    # ── Scans ───────────────────────────────────────────────────

    async def create_scan(self, user_id: int, target: str, scan_type: str,
                          status: str, findings: Optional[Any] = None) -> Dict:
        """Persist a scan record. ``findings`` is stored as JSON."""
        now = time.time()
        cursor = await self._db.execute(
            """INSERT INTO scans (user_id, target, scan_type, status, findings, created_at)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (user_id, target, scan_type, status,
             json.dumps(findings) if findings is not None else None, now)
        )
        await self._db.commit()
        return {
            "id": cursor.lastrowid,
            "user_id": user_id,
            "target": target,
            "scan_type": scan_type,
            "status": status,
            "findings": findings,
            "created_at": now,
        }

    async def get_scan(self, scan_id: int) -> Optional[Dict]:
        """Get a specific scan."""
        async with self._db.execute("SELECT * FROM scans WHERE id = ?", (scan_id,)) as cursor:
            row = await cursor.fetchone()
            return self._decode_scan(row) if row else None

    async def get_scans_by_user(self, user_id: int) -> List[Dict]:
        """Get all scans owned by a user, newest first."""
        async with self._db.execute(
            "SELECT * FROM scans WHERE user_id = ? ORDER BY created_at DESC, id DESC",
            (user_id,)
        ) as cursor:
            rows = await cursor.fetchall()
            return [self._decode_scan(r) for r in rows]

    @staticmethod
    def _decode_scan(row) -> Dict:
        scan = dict(row)
        if scan.get("findings") is not None:
            scan["findings"] = json.loads(scan["findings"])
        return scan

    # ── Activity Logs ───────────────────────────────────────────

    async def create_activity_log(self, user_id: int, action: str, details: str = "") -> int:
        """Append an activity-log entry."""
        now = time.time()
        cursor = await self._db.execute(
            "INSERT INTO activity_logs (user_id, action, details, timestamp) VALUES (?, ?, ?, ?)",
            (user_id, action, details, now)
        )
        await self._db.commit()
        return cursor.lastrowid

    async def get_activity_logs_by_user(self, user_id: int, limit: int = 100) -> List[Dict]:
        """Get activity history for a user, newest first."""
        async with self._db.execute(
            "SELECT * FROM activity_logs WHERE user_id = ? ORDER BY timestamp DESC, id DESC LIMIT ?",
            (user_id, limit)
        ) as cursor:
            rows = await cursor.fetchall()
            return [dict(r) for r in rows]
