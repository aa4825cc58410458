"""
API tests for the back office: store settings, query console, orders and SnackzoPay admin
"""
from decimal import Decimal
from unittest.mock import patch

from snackzo.core.auth import get_current_user, TokenUser
from snackzo.core.errors import OrderStatusError, NotFoundError
from snackzo.domain.order import Order
from snackzo.domain.payment import PaymentStats
from snackzo.domain.store import StoreConfig
from snackzo.domain.wallet import WalletSummary
from snackzo.main import app
from snackzo.services.store_status_service import evaluate_store_status


class TestRoleChecks:

    @patch('snackzo.core.auth.fetch_user_roles')
    def test_customer_cannot_open_admin_routes(self, mock_roles, client):
        app.dependency_overrides[get_current_user] = lambda: TokenUser(id="user-1")
        mock_roles.return_value = []

        response = client.get("/api/v1/admin/store")

        assert response.status_code == 403
        mock_roles.assert_called_once_with("user-1")

    @patch('snackzo.api.admin_orders.OrderStatusService')
    @patch('snackzo.core.auth.fetch_user_roles')
    def test_runner_can_update_status_but_not_list(self, mock_roles, mock_service_cls, client, sample_order_row):
        app.dependency_overrides[get_current_user] = lambda: TokenUser(id="runner-1")
        mock_roles.return_value = ["runner"]
        mock_service_cls.return_value.update_status.return_value = Order(**{**sample_order_row, "status": "packed"})

        update = client.patch("/api/v1/admin/orders/abc/status", json={"status": "packed"})
        listing = client.get("/api/v1/admin/orders/")

        assert update.status_code == 200
        assert listing.status_code == 403

    def test_anonymous_is_unauthorized(self, client):
        response = client.get("/api/v1/admin/payments/stats")

        assert response.status_code == 401


class TestStoreSettingsAPI:

    @patch('snackzo.api.admin.StoreStatusService')
    def test_update_settings(self, mock_service_cls, client, admin, now_utc):
        # Arrange
        config = StoreConfig(is_open=False)
        service = mock_service_cls.return_value
        service.update_settings.return_value = config
        service.get_status.return_value = evaluate_store_status(config, now_utc)

        # Act
        response = client.put("/api/v1/admin/store", json={"is_open": False})

        # Assert
        assert response.status_code == 200
        assert response.json()["data"]["status"]["status_text"] == "Temporarily Closed"

    @patch('snackzo.api.admin.StoreStatusService')
    def test_bad_hours_are_rejected(self, mock_service_cls, client, admin):
        mock_service_cls.return_value.update_settings.side_effect = ValueError("Invalid time '27:00', expected HH:MM")

        response = client.put("/api/v1/admin/store", json={"operating_hours_close": "27:00"})

        assert response.status_code == 400

    def test_negative_delivery_fee(self, client, admin):
        response = client.put("/api/v1/admin/store", json={"delivery_fee": -5})

        assert response.status_code == 422


class TestQueryConsoleAPI:

    def test_templates(self, client, admin):
        response = client.get("/api/v1/admin/query/templates")

        assert len(response.json()["data"]) == 6

    def test_generate(self, client, admin):
        response = client.post("/api/v1/admin/query/generate", json={"text": "Find user with phone 9876543210"})

        data = response.json()["data"]
        assert data["query"] == "SELECT * FROM profiles WHERE phone LIKE %s"
        assert data["params"] == ["%9876543210%"]

    def test_run_rejects_writes(self, client, admin):
        response = client.post("/api/v1/admin/query/run", json={"query": "DELETE FROM orders"})

        assert response.status_code == 400

    @patch('snackzo.services.query_assistant_service.get_db_connection_dict_with_retry')
    def test_run_returns_rows(self, mock_get_conn, client, admin, mock_db):
        mock_conn, mock_cursor = mock_db
        mock_get_conn.return_value = mock_conn
        mock_cursor.fetchmany.return_value = [{"total": 42}]

        response = client.post("/api/v1/admin/query/run", json={"query": "SELECT COUNT(*) as total FROM orders"})

        assert response.status_code == 200
        assert response.json()["data"]["rows"] == [{"total": 42}]

    @patch('snackzo.services.query_assistant_service.get_db_connection_dict_with_retry')
    def test_database_errors_are_reported(self, mock_get_conn, client, admin, mock_db):
        mock_conn, mock_cursor = mock_db
        mock_get_conn.return_value = mock_conn
        mock_cursor.execute.side_effect = [None, Exception('relation "nope" does not exist')]

        response = client.post("/api/v1/admin/query/run", json={"query": "SELECT * FROM nope"})

        assert response.status_code == 400
        assert "does not exist" in response.json()["detail"]


class TestAdminOrdersAPI:

    @patch('snackzo.api.admin_orders.OrderStatusService')
    def test_list(self, mock_service_cls, client, admin, sample_order_row):
        mock_service_cls.return_value.list_orders.return_value = ([Order(**sample_order_row)], 1)

        response = client.get("/api/v1/admin/orders/?status=placed&search=asha")

        assert response.status_code == 200
        assert response.json()["count"] == 1
        mock_service_cls.return_value.list_orders.assert_called_once_with(
            status="placed", search="asha", limit=50, offset=0
        )

    @patch('snackzo.api.admin_orders.OrderStatusService')
    def test_illegal_transition_is_conflict(self, mock_service_cls, client, admin):
        mock_service_cls.return_value.update_status.side_effect = OrderStatusError("Cannot move order from placed to delivered")

        response = client.patch("/api/v1/admin/orders/abc/status", json={"status": "delivered"})

        assert response.status_code == 409

    def test_unknown_status_value(self, client, admin):
        response = client.patch("/api/v1/admin/orders/abc/status", json={"status": "lost"})

        assert response.status_code == 422

    @patch('snackzo.api.admin_orders.OrderStatusService')
    def test_bulk_update(self, mock_service_cls, client, admin):
        mock_service_cls.return_value.bulk_update.return_value = {"updated": 2, "failed": 0, "results": []}

        response = client.post("/api/v1/admin/orders/bulk-status", json={"order_ids": ["a", "b"], "status": "packed"})

        assert response.json()["data"]["updated"] == 2
        mock_service_cls.return_value.bulk_update.assert_called_once_with(["a", "b"], "packed")

    @patch('snackzo.api.admin_orders.OrderStatusService')
    def test_assign_runner_missing_order(self, mock_service_cls, client, admin):
        mock_service_cls.return_value.assign_runner.side_effect = NotFoundError("Order abc not found")

        response = client.post("/api/v1/admin/orders/abc/assign", json={"runner_id": "runner-1"})

        assert response.status_code == 404


class TestAdminPaymentsAPI:

    @patch('snackzo.api.admin_payments.PaymentGatewayService')
    def test_stats_include_gateway_switch(self, mock_gateway_cls, client, admin):
        gateway = mock_gateway_cls.return_value
        gateway.get_stats.return_value = PaymentStats(
            total_captured=Decimal("1200"), successful=2, failed=1, pending=7, count=10, success_rate=67
        )
        gateway.is_enabled.return_value = True

        response = client.get("/api/v1/admin/payments/stats")

        data = response.json()["data"]
        assert data["total_captured"] == 1200.0
        assert data["success_rate"] == 67
        assert data["gateway_enabled"] is True

    @patch('snackzo.api.admin_payments.PaymentGatewayService')
    def test_list_sessions(self, mock_gateway_cls, client, admin):
        mock_gateway_cls.return_value.list_sessions.return_value = ([], 0)

        response = client.get("/api/v1/admin/payments/sessions?status=failed")

        assert response.json()["total"] == 0
        assert mock_gateway_cls.return_value.list_sessions.call_args.kwargs["status"] == "failed"

    def test_list_sessions_rejects_unknown_filter(self, client, admin):
        response = client.get("/api/v1/admin/payments/sessions?status=refunded")

        assert response.status_code == 422

    @patch('snackzo.services.payment_gateway_service.PaymentSessionRepository')
    @patch('snackzo.services.payment_gateway_service.StoreRepository')
    def test_export_is_xlsx(self, mock_store_cls, mock_repo_cls, client, admin):
        mock_repo_cls.return_value.find_all.return_value = ([], 0)

        response = client.get("/api/v1/admin/payments/export")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith(
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
        )
        assert "attachment; filename=SnackzoPay_" in response.headers["content-disposition"]
        assert response.content[:2] == b"PK"

    @patch('snackzo.services.payment_gateway_service.PaymentSessionRepository')
    @patch('snackzo.services.payment_gateway_service.StoreRepository')
    def test_disable_gateway_needs_confirmation(self, mock_store_cls, mock_repo_cls, client, admin):
        response = client.put("/api/v1/admin/payments/gateway", json={"enabled": False})

        assert response.status_code == 400
        mock_store_cls.return_value.set_feature_enabled.assert_not_called()

    @patch('snackzo.api.admin_payments.PaymentGatewayService')
    def test_expire_stale(self, mock_gateway_cls, client, admin):
        mock_gateway_cls.return_value.expire_stale_sessions.return_value = 4

        response = client.post("/api/v1/admin/payments/expire-stale")

        assert response.json()["data"] == {"expired": 4}


class TestAdminWalletAPI:

    @patch('snackzo.api.admin.WalletService')
    def test_credit(self, mock_service_cls, client, admin):
        mock_service_cls.return_value.admin_credit.return_value = WalletSummary(user_id="user-1", balance=Decimal("150"))

        response = client.post("/api/v1/admin/wallet/credit", json={"user_id": "user-1", "amount": "50"})

        assert response.status_code == 200
        assert response.json()["data"]["balance"] == 150.0
        mock_service_cls.return_value.admin_credit.assert_called_once_with("user-1", Decimal("50"), None)

    @patch('snackzo.api.admin.WalletService')
    def test_credit_to_unknown_user(self, mock_service_cls, client, admin):
        mock_service_cls.return_value.admin_credit.side_effect = NotFoundError("User ghost not found")

        response = client.post("/api/v1/admin/wallet/credit", json={"user_id": "ghost", "amount": "50"})

        assert response.status_code == 404

    def test_credit_cap(self, client, admin):
        response = client.post("/api/v1/admin/wallet/credit", json={"user_id": "user-1", "amount": "20000"})

        assert response.status_code == 422
