"""
Profile repository - per-user sync preferences.
"""

from .connection import DatabaseConnection
from .converters import row_to_profile
from .models import DBProfile


class ProfileRepository:
    """Repository for user profiles."""

    def __init__(self, db: DatabaseConnection, default_interval: int = 24):
        self._db = db
        self.default_interval = default_interval

    def get_or_create(self, user_id: str) -> DBProfile:
        """Get a user's profile, creating it with defaults if absent."""
        with self._db.conn() as conn:
            conn.execute(
                """INSERT INTO profiles (user_id, sync_interval) VALUES (?, ?)
                   ON CONFLICT(user_id) DO NOTHING""",
                (user_id, self.default_interval)
            )
            row = conn.execute(
                "SELECT * FROM profiles WHERE user_id = ?", (user_id,)
            ).fetchone()
            return row_to_profile(row, self.default_interval)

    def list_all(self) -> list[DBProfile]:
        """List every profile with its sync interval in hours."""
        with self._db.conn() as conn:
            rows = conn.execute("SELECT * FROM profiles ORDER BY user_id").fetchall()
            return [row_to_profile(row, self.default_interval) for row in rows]

    def set_sync_interval(self, user_id: str, hours: int):
        """Set a user's scheduled sync interval."""
        with self._db.conn() as conn:
            conn.execute(
                """INSERT INTO profiles (user_id, sync_interval) VALUES (?, ?)
                   ON CONFLICT(user_id) DO UPDATE SET sync_interval = excluded.sync_interval""",
                (user_id, hours)
            )
