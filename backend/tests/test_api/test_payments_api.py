"""
API tests for the SnackzoPay gateway endpoints
"""
import pytest
from unittest.mock import patch
from urllib.parse import urlparse, parse_qs

from snackzo.core.auth import get_current_user_optional
from snackzo.core.errors import NotFoundError, SessionExpiredError, GatewayDisabledError
from snackzo.domain.payment import PaymentSession
from snackzo.main import app


@pytest.fixture
def session(sample_session_row):
    return PaymentSession(**sample_session_row)


class TestCreateSession:

    @patch('snackzo.api.payments.PaymentGatewayService')
    def test_guest_session_with_qr_code(self, mock_gateway_cls, client, session):
        # Arrange
        mock_gateway_cls.return_value.initiate_session.return_value = session

        # Act
        response = client.post("/api/v1/payments/sessions", json={
            "amount": "149", "order_ref": "ORD-1", "guest_name": "Ravi", "return_url": "/checkout",
        })

        # Assert
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["id"] == session.id
        assert "/pay/confirm?" in data["confirm_url"]
        assert parse_qs(urlparse(data["qr_code_url"]).query)["data"] == [data["confirm_url"]]
        kwargs = mock_gateway_cls.return_value.initiate_session.call_args.kwargs
        assert kwargs["user_id"] is None
        assert kwargs["guest_name"] == "Ravi"

    @patch('snackzo.api.payments.PaymentGatewayService')
    def test_signed_in_payer(self, mock_gateway_cls, client, customer, session):
        mock_gateway_cls.return_value.initiate_session.return_value = session
        app.dependency_overrides[get_current_user_optional] = lambda: customer

        response = client.post("/api/v1/payments/sessions", json={"amount": "149"})

        assert response.status_code == 201
        assert mock_gateway_cls.return_value.initiate_session.call_args.kwargs["user_id"] == "user-1"

    @patch('snackzo.core.auth.AuthConfig.get_jwt_secret', side_effect=ValueError("SUPABASE_JWT_SECRET is not set"))
    @patch('snackzo.api.payments.PaymentGatewayService')
    def test_token_without_jwt_secret_pays_as_guest(self, mock_gateway_cls, mock_secret, client, session):
        # Arrange
        mock_gateway_cls.return_value.initiate_session.return_value = session

        # Act
        response = client.post(
            "/api/v1/payments/sessions",
            json={"amount": "149"},
            headers={"Authorization": "Bearer some.token.value"},
        )

        # Assert
        assert response.status_code == 201
        assert mock_gateway_cls.return_value.initiate_session.call_args.kwargs["user_id"] is None

    @patch('snackzo.api.payments.PaymentGatewayService')
    def test_foreign_return_url_is_rejected(self, mock_gateway_cls, client):
        response = client.post("/api/v1/payments/sessions", json={
            "amount": "149", "return_url": "https://evil.example/steal",
        })

        assert response.status_code == 400
        mock_gateway_cls.return_value.initiate_session.assert_not_called()

    def test_amount_must_be_positive(self, client):
        response = client.post("/api/v1/payments/sessions", json={"amount": "0"})

        assert response.status_code == 422

    @patch('snackzo.api.payments.PaymentGatewayService')
    def test_disabled_gateway_is_conflict(self, mock_gateway_cls, client):
        mock_gateway_cls.return_value.initiate_session.side_effect = GatewayDisabledError("SnackzoPay is currently unavailable")

        response = client.post("/api/v1/payments/sessions", json={"amount": "149"})

        assert response.status_code == 409


class TestSessionLifecycle:

    @patch('snackzo.api.payments.PaymentGatewayService')
    def test_unknown_session(self, mock_gateway_cls, client):
        mock_gateway_cls.return_value.get_session.side_effect = NotFoundError("Payment session x not found")

        response = client.get("/api/v1/payments/sessions/x")

        assert response.status_code == 404

    @patch('snackzo.repositories.payment_session_repository.get_db_connection_dict_with_retry')
    def test_malformed_session_id_is_not_found(self, mock_get_conn, client):
        # Act
        response = client.post("/api/v1/payments/sessions/sess-1/complete", json={"success": True, "method": "upi"})

        # Assert
        assert response.status_code == 404
        mock_get_conn.assert_not_called()

    @patch('snackzo.api.payments.PaymentGatewayService')
    def test_success_redirects_with_transaction(self, mock_gateway_cls, client, sample_session_row):
        # Arrange
        paid = PaymentSession(**{**sample_session_row, "status": "success", "transaction_id": "pay_ABCDEFGHIJKLMN"})
        mock_gateway_cls.return_value.complete_session.return_value = paid

        # Act
        response = client.post(f"/api/v1/payments/sessions/{paid.id}/complete", json={
            "success": True, "method": "cards", "return_url": "/checkout",
        })

        # Assert
        assert response.status_code == 200
        redirect = response.json()["data"]["redirect_url"]
        query = parse_qs(urlparse(redirect).query)
        assert query["status"] == ["success"]
        assert query["transaction_id"] == ["pay_ABCDEFGHIJKLMN"]
        mock_gateway_cls.return_value.complete_session.assert_called_once_with(paid.id, success=True, method="cards")

    @patch('snackzo.api.payments.PaymentGatewayService')
    def test_failure_stays_on_gateway(self, mock_gateway_cls, client, sample_session_row):
        failed = PaymentSession(**{**sample_session_row, "status": "failed"})
        mock_gateway_cls.return_value.complete_session.return_value = failed

        response = client.post(f"/api/v1/payments/sessions/{failed.id}/complete", json={"success": False})

        assert response.status_code == 200
        assert response.json()["data"]["redirect_url"] is None
        assert response.json()["data"]["status"] == "failed"

    @patch('snackzo.api.payments.PaymentGatewayService')
    def test_expired_session_is_conflict(self, mock_gateway_cls, client):
        mock_gateway_cls.return_value.complete_session.side_effect = SessionExpiredError("Payment session has expired")

        response = client.post("/api/v1/payments/sessions/s-1/complete", json={"success": True})

        assert response.status_code == 409

    @patch('snackzo.api.payments.PaymentGatewayService')
    def test_cancel_redirects_back(self, mock_gateway_cls, client, sample_session_row):
        cancelled = PaymentSession(**{**sample_session_row, "status": "cancelled"})
        mock_gateway_cls.return_value.cancel_session.return_value = cancelled

        response = client.post(f"/api/v1/payments/sessions/{cancelled.id}/cancel?return_url=/wallet")

        assert response.status_code == 200
        assert response.json()["data"]["redirect_url"] == "/wallet?status=cancelled"

    @patch('snackzo.api.payments.PaymentGatewayService')
    def test_foreign_return_url_leaves_session_untouched(self, mock_gateway_cls, client):
        response = client.post("/api/v1/payments/sessions/s-1/complete", json={
            "success": True, "return_url": "https://evil.example/x",
        })

        assert response.status_code == 400
        mock_gateway_cls.return_value.complete_session.assert_not_called()

    @patch('snackzo.api.payments.PaymentGatewayService')
    def test_cancel_with_foreign_return_url(self, mock_gateway_cls, client):
        response = client.post("/api/v1/payments/sessions/s-1/cancel?return_url=https://evil.example/x")

        assert response.status_code == 400
        mock_gateway_cls.return_value.cancel_session.assert_not_called()

    @patch('snackzo.api.payments.PaymentGatewayService')
    def test_gateway_status(self, mock_gateway_cls, client):
        mock_gateway_cls.return_value.is_enabled.return_value = False

        response = client.get("/api/v1/payments/gateway")

        assert response.json()["data"] == {"enabled": False}
