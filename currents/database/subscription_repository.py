"""
Subscription repository - per-user links to shared feeds.
"""

from .connection import DatabaseConnection
from .converters import row_to_subscription
from .models import DBSubscription


class SubscriptionRepository:
    """Repository for (user, feed) subscriptions."""

    def __init__(self, db: DatabaseConnection):
        self._db = db

    def add(self, user_id: str, feed_id: int, current_id: str | None = None) -> bool:
        """Subscribe a user to a feed. Returns False if already subscribed."""
        with self._db.conn() as conn:
            cursor = conn.execute(
                """INSERT INTO subscriptions (user_id, feed_id, current_id)
                   VALUES (?, ?, ?)
                   ON CONFLICT(user_id, feed_id) DO NOTHING""",
                (user_id, feed_id, current_id)
            )
            return cursor.rowcount > 0

    def remove(self, user_id: str, feed_id: int) -> bool:
        """Unsubscribe. The shared feed row is left in place."""
        with self._db.conn() as conn:
            cursor = conn.execute(
                "DELETE FROM subscriptions WHERE user_id = ? AND feed_id = ?",
                (user_id, feed_id)
            )
            return cursor.rowcount > 0

    def list_for_user(self, user_id: str) -> list[DBSubscription]:
        """List a user's subscriptions joined with their feeds."""
        with self._db.conn() as conn:
            rows = conn.execute("""
                SELECT s.user_id, s.feed_id, s.current_id,
                       f.url AS feed_url, f.last_fetched_at,
                       f.title AS feed_title, f.icon_url AS feed_icon_url
                FROM subscriptions s
                JOIN feeds f ON f.id = s.feed_id
                WHERE s.user_id = ?
                ORDER BY f.title COLLATE NOCASE, f.id
            """, (user_id,)).fetchall()
            return [row_to_subscription(row) for row in rows]
