"""
Store Repository - store_config and feature_toggles access
"""
import logging
from typing import Optional

from snackzo.core.database import get_db_connection_dict_with_retry
from snackzo.domain.store import StoreConfig, StoreConfigUpdate

logger = logging.getLogger(__name__)


class StoreRepository:
    """
    Repository for store-wide settings

    store_config holds a single row. feature_toggles is keyed by feature_name.
    """

    def get_config(self) -> Optional[StoreConfig]:
        """
        Load the store configuration row

        Returns:
            StoreConfig or None when the table is empty
        """
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT id, is_open, operating_hours_open, operating_hours_close,
                       delivery_fee, announcement, updated_at
                FROM store_config
                ORDER BY updated_at DESC NULLS LAST
                LIMIT 1
            """)
            row = cursor.fetchone()
            if not row:
                return None

            data = dict(row)
            # Postgres time columns come back as datetime.time
            for field in ["operating_hours_open", "operating_hours_close"]:
                if data.get(field) is not None and not isinstance(data[field], str):
                    data[field] = data[field].strftime("%H:%M")
            if data.get("delivery_fee") is None:
                data.pop("delivery_fee")

            return StoreConfig(**data)

        finally:
            cursor.close()
            conn.close()

    def update_config(self, update: StoreConfigUpdate) -> StoreConfig:
        """
        Apply a partial update, creating the row when it does not exist yet

        Args:
            update: Fields to change (None values are left untouched)

        Returns:
            The stored configuration
        """
        fields = update.model_dump(exclude_none=True)

        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute("SELECT id FROM store_config LIMIT 1")
            existing = cursor.fetchone()

            if not existing:
                cursor.execute("""
                    INSERT INTO store_config (is_open) VALUES (TRUE)
                    RETURNING id
                """)
                existing = cursor.fetchone()

            if fields:
                assignments = ", ".join(f"{name} = %s" for name in fields)
                cursor.execute(
                    f"UPDATE store_config SET {assignments}, updated_at = NOW() WHERE id = %s",
                    list(fields.values()) + [existing["id"]]
                )

            conn.commit()
            logger.info(f"Store config updated: {sorted(fields)}")

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

        return self.get_config()

    def is_feature_enabled(self, feature_name: str, default: bool = True) -> bool:
        """Read a feature toggle; a missing row means the default"""
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT is_enabled FROM feature_toggles
                WHERE feature_name = %s
            """, (feature_name,))
            row = cursor.fetchone()
            return default if row is None else bool(row["is_enabled"])

        finally:
            cursor.close()
            conn.close()

    def set_feature_enabled(self, feature_name: str, enabled: bool) -> None:
        """Upsert a feature toggle"""
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                INSERT INTO feature_toggles (feature_name, is_enabled)
                VALUES (%s, %s)
                ON CONFLICT (feature_name) DO UPDATE SET is_enabled = EXCLUDED.is_enabled
            """, (feature_name, enabled))
            conn.commit()

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()
