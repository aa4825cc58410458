"""
Unit tests for ProductRepository, StoreRepository and PromoRepository

These tests use mocking to test repository logic without requiring a database connection.
"""
from datetime import time
from decimal import Decimal
from unittest.mock import MagicMock, patch

from snackzo.domain.product import Product
from snackzo.domain.store import StoreConfigUpdate
from snackzo.repositories.product_repository import ProductRepository
from snackzo.repositories.promo_repository import PromoRepository
from snackzo.repositories.store_repository import StoreRepository


class TestProductRepositoryFindById:
    """Test suite for ProductRepository.find_by_id()"""

    @patch('snackzo.repositories.product_repository.get_db_connection_dict_with_retry')
    def test_find_by_id_includes_gallery(self, mock_get_conn, mock_db, sample_product_row):
        # Arrange
        mock_conn, mock_cursor = mock_db
        mock_get_conn.return_value = mock_conn
        mock_cursor.fetchone.return_value = sample_product_row
        mock_cursor.fetchall.return_value = [{"image_url": "a.png"}, {"image_url": "b.png"}]

        # Act
        product = ProductRepository().find_by_id(sample_product_row["id"])

        # Assert
        assert isinstance(product, Product)
        assert product.name == "Maggi Masala"
        assert product.images == ["a.png", "b.png"]
        mock_cursor.close.assert_called_once()
        mock_conn.close.assert_called_once()

    @patch('snackzo.repositories.product_repository.get_db_connection_dict_with_retry')
    def test_find_by_id_not_found(self, mock_get_conn, mock_db):
        mock_conn, mock_cursor = mock_db
        mock_get_conn.return_value = mock_conn
        mock_cursor.fetchone.return_value = None

        assert ProductRepository().find_by_id("99999999-9999-9999-9999-999999999999") is None
        assert mock_cursor.execute.call_count == 1

    @patch('snackzo.repositories.product_repository.get_db_connection_dict_with_retry')
    def test_find_by_id_malformed_id(self, mock_get_conn):
        assert ProductRepository().find_by_id("abc") is None
        mock_get_conn.assert_not_called()


class TestProductRepositoryFindAll:
    """Test suite for ProductRepository.find_all()"""

    @patch('snackzo.repositories.product_repository.get_db_connection_dict_with_retry')
    def test_find_all_with_filters(self, mock_get_conn, mock_db, sample_product_row):
        # Arrange
        mock_conn, mock_cursor = mock_db
        mock_get_conn.return_value = mock_conn
        mock_cursor.fetchone.return_value = {"total": 1}
        mock_cursor.fetchall.return_value = [sample_product_row]

        # Act
        products, total = ProductRepository().find_all(
            category_id="cat-1", search="maggi", available_only=True, limit=20, offset=40
        )

        # Assert
        assert total == 1
        assert len(products) == 1
        count_query, count_params = mock_cursor.execute.call_args_list[0][0]
        assert "p.is_available = TRUE AND p.stock > 0" in count_query
        assert count_params == ["cat-1", "%maggi%", "%maggi%"]
        assert mock_cursor.execute.call_args_list[1][0][1][-2:] == [20, 40]

    @patch('snackzo.repositories.product_repository.get_db_connection_dict_with_retry')
    def test_find_all_without_filters(self, mock_get_conn, mock_db):
        mock_conn, mock_cursor = mock_db
        mock_get_conn.return_value = mock_conn
        mock_cursor.fetchone.return_value = {"total": 0}
        mock_cursor.fetchall.return_value = []

        products, total = ProductRepository().find_all()

        assert products == []
        assert total == 0
        assert "1=1" in mock_cursor.execute.call_args_list[0][0][0]


class TestProductStock:

    def test_find_by_ids_keys_by_id(self, sample_product_row):
        cursor = MagicMock()
        cursor.fetchall.return_value = [sample_product_row]

        products = ProductRepository().find_by_ids(cursor, [sample_product_row["id"]])

        assert list(products) == [sample_product_row["id"]]

    def test_find_by_ids_empty(self):
        cursor = MagicMock()

        assert ProductRepository().find_by_ids(cursor, []) == {}
        cursor.execute.assert_not_called()

    def test_find_by_ids_drops_malformed_ids(self, sample_product_row):
        cursor = MagicMock()
        cursor.fetchall.return_value = [sample_product_row]

        ProductRepository().find_by_ids(cursor, [sample_product_row["id"], "abc"])

        assert cursor.execute.call_args[0][1] == ([sample_product_row["id"]],)

    def test_find_by_ids_only_malformed(self):
        cursor = MagicMock()

        assert ProductRepository().find_by_ids(cursor, ["abc", "1; DROP TABLE products"]) == {}
        cursor.execute.assert_not_called()

    def test_decrement_stock_is_guarded(self):
        cursor = MagicMock()
        cursor.rowcount = 1

        assert ProductRepository().decrement_stock(cursor, "p-1", 3) is True
        query, params = cursor.execute.call_args[0]
        assert "stock >= %s" in query
        assert params == (3, "p-1", 3)

    def test_decrement_stock_insufficient(self):
        cursor = MagicMock()
        cursor.rowcount = 0

        assert ProductRepository().decrement_stock(cursor, "p-1", 99) is False


class TestStoreRepository:

    @patch('snackzo.repositories.store_repository.get_db_connection_dict_with_retry')
    def test_get_config_formats_time_columns(self, mock_get_conn, mock_db):
        mock_conn, mock_cursor = mock_db
        mock_get_conn.return_value = mock_conn
        mock_cursor.fetchone.return_value = {
            "id": "cfg-1", "is_open": True,
            "operating_hours_open": time(20, 0), "operating_hours_close": time(3, 0),
            "delivery_fee": None, "announcement": None, "updated_at": None,
        }

        config = StoreRepository().get_config()

        assert config.operating_hours_open == "20:00"
        assert config.operating_hours_close == "03:00"
        assert config.delivery_fee == Decimal("10")

    @patch('snackzo.repositories.store_repository.get_db_connection_dict_with_retry')
    def test_get_config_with_null_master_switch(self, mock_get_conn, mock_db):
        mock_conn, mock_cursor = mock_db
        mock_get_conn.return_value = mock_conn
        mock_cursor.fetchone.return_value = {
            "id": "cfg-1", "is_open": None,
            "operating_hours_open": time(20, 0), "operating_hours_close": time(3, 0),
            "delivery_fee": Decimal("15"), "announcement": None, "updated_at": None,
        }

        config = StoreRepository().get_config()

        assert config.is_open is None
        assert config.delivery_fee == Decimal("15")

    @patch('snackzo.repositories.store_repository.get_db_connection_dict_with_retry')
    def test_get_config_empty_table(self, mock_get_conn, mock_db):
        mock_conn, mock_cursor = mock_db
        mock_get_conn.return_value = mock_conn
        mock_cursor.fetchone.return_value = None

        assert StoreRepository().get_config() is None

    @patch('snackzo.repositories.store_repository.get_db_connection_dict_with_retry')
    def test_update_config_only_sets_given_fields(self, mock_get_conn, mock_db):
        # Arrange
        mock_conn, mock_cursor = mock_db
        mock_get_conn.return_value = mock_conn
        mock_cursor.fetchone.side_effect = [{"id": "cfg-1"}, None]

        # Act
        StoreRepository().update_config(StoreConfigUpdate(is_open=False))

        # Assert
        query, params = mock_cursor.execute.call_args_list[1][0]
        assert query.startswith("UPDATE store_config SET is_open = %s")
        assert params == [False, "cfg-1"]
        mock_conn.commit.assert_called_once()

    @patch('snackzo.repositories.store_repository.get_db_connection_dict_with_retry')
    def test_missing_feature_toggle_uses_default(self, mock_get_conn, mock_db):
        mock_conn, mock_cursor = mock_db
        mock_get_conn.return_value = mock_conn
        mock_cursor.fetchone.return_value = None

        assert StoreRepository().is_feature_enabled("snackzopay_gateway") is True
        assert StoreRepository().is_feature_enabled("snackzopay_gateway", default=False) is False

    @patch('snackzo.repositories.store_repository.get_db_connection_dict_with_retry')
    def test_feature_toggle_value(self, mock_get_conn, mock_db):
        mock_conn, mock_cursor = mock_db
        mock_get_conn.return_value = mock_conn
        mock_cursor.fetchone.return_value = {"is_enabled": False}

        assert StoreRepository().is_feature_enabled("snackzopay_gateway") is False


class TestPromoRepository:

    def test_find_by_code_on_callers_cursor(self):
        cursor = MagicMock()
        cursor.fetchone.return_value = {"id": "promo-1", "code": "WELCOME10"}

        promo = PromoRepository().find_by_code("welcome10", cursor=cursor)

        assert promo["id"] == "promo-1"
        assert "UPPER(code) = UPPER(%s)" in cursor.execute.call_args[0][0]

    def test_increment_usage_guarded_by_limit(self):
        cursor = MagicMock()
        cursor.rowcount = 0

        assert PromoRepository().increment_usage(cursor, "promo-1") is False
        assert "usage_limit IS NULL" in cursor.execute.call_args[0][0]
        assert "usage_limit <= 0" in cursor.execute.call_args[0][0]
