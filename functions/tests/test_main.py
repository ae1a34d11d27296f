import unittest
from unittest.mock import patch, MagicMock, call
from datetime import datetime, timezone
import base64
import json
import sys
import os

from freezegun import freeze_time
from firebase_admin import auth
from flask import Flask

# Add the functions directory to the Python path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from main import (
    generate_receipt,
    get_receipt,
    pending_receipt,
    recognize_payment,
    recognize_receipt,
    refresh_rent_statuses,
)
from models.entities import PaymentStatus, TransactionCategory
from models.recognition import RecognizedTenantPayment, RecognizedTransaction
from services.converters import tenant_converter, transaction_converter, user_profile_converter
from services.errors import RecognitionError
from tests.constants import PNG_DATA_URI, PROFILE, TENANTS, TRANSACTIONS, UID


class MockEvent:
    """A mock event object for testing Cloud Functions."""
    def __init__(self):
        self.headers = {}


# Custom Mock Request class to simulate firebase_functions.https_fn.Request
class MockRequest:
    def __init__(self, json_data=None, args_data=None, token="valid-token"):
        self._json_data = json_data
        self._args_data = args_data if args_data is not None else {}
        self.headers = {"Authorization": f"Bearer {token}"} if token else {}

    def get_json(self, silent=True):
        return self._json_data

    @property
    def args(self):
        return self._args_data


def _tenants():
    return [tenant_converter.from_wire(k, v) for k, v in TENANTS.items()]


class TestRefreshRentStatuses(unittest.TestCase):

    def setUp(self):
        self.app = Flask(__name__)

    @freeze_time("2025-03-02")
    @patch('main.set_tenant_payment_status', return_value=True)
    @patch('main.get_all_tenants')
    def test_moves_tenants_to_due_and_overdue(self, mock_get_all_tenants, mock_set_status):
        mock_get_all_tenants.return_value = _tenants()

        with self.app.app_context():
            refresh_rent_statuses(MockEvent())

        mock_set_status.assert_has_calls([
            call("tenant-john", PaymentStatus.DUE),
            call("tenant-asha", PaymentStatus.OVERDUE),
        ])
        self.assertEqual(mock_set_status.call_count, 2)

    @freeze_time("2025-02-01")
    @patch('main.set_tenant_payment_status')
    @patch('main.get_all_tenants')
    def test_nothing_to_move(self, mock_get_all_tenants, mock_set_status):
        mock_get_all_tenants.return_value = _tenants()[2:]

        with self.app.app_context():
            refresh_rent_statuses(MockEvent())

        mock_set_status.assert_not_called()

    @patch('main.set_tenant_payment_status')
    @patch('main.get_all_tenants', return_value=[])
    def test_no_tenants(self, mock_get_all_tenants, mock_set_status):
        with self.app.app_context():
            refresh_rent_statuses(MockEvent())

        mock_get_all_tenants.assert_called_once()
        mock_set_status.assert_not_called()


@patch('main.auth.verify_id_token', return_value={"uid": UID})
class TestGenerateReceipt(unittest.TestCase):

    def setUp(self):
        self.req_data = {
            "tenantId": "tenant-john",
            "paymentDate": "2025-03-04T00:00:00Z",
            "month": "March 2025",
        }

    @patch('main.CLOUD_FUNCTION_BASE_URL', 'https://test.com')
    @patch('main.set_tenant_receipt_url', return_value=True)
    @patch('main.upload_to_storage')
    @patch('main.generate_rent_receipt_pdf', return_value=b'test_pdf_content')
    @patch('main.new_receipt_number', return_value="test-uuid")
    @patch('main.get_user_profile')
    @patch('main.get_tenant')
    def test_generate_receipt_success(self, mock_get_tenant, mock_get_profile, mock_receipt_number,
                                      mock_generate_pdf, mock_upload, mock_set_url, mock_verify):
        tenant = _tenants()[0]
        profile = user_profile_converter.from_wire(UID, PROFILE)
        mock_get_tenant.return_value = tenant
        mock_get_profile.return_value = profile
        mock_upload.return_value = f"Users/{UID}/receipts/test-uuid.pdf"

        response = generate_receipt(MockRequest(json_data=self.req_data))

        expected_url = f"https://test.com/get_receipt?owner_id={UID}&receipt_number=test-uuid"
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data, expected_url.encode())
        mock_verify.assert_called_once_with("valid-token")
        payment_date = datetime(2025, 3, 4, tzinfo=timezone.utc)
        mock_generate_pdf.assert_called_once_with(tenant, "March 2025", payment_date, "test-uuid", profile=profile)
        mock_upload.assert_called_once_with(b'test_pdf_content', UID, "test-uuid", file_type="receipts")
        mock_set_url.assert_called_once_with("tenant-john", expected_url, payment_date, "March 2025")

    @patch('main.get_tenant', return_value=None)
    def test_unknown_tenant(self, mock_get_tenant, mock_verify):
        response = generate_receipt(MockRequest(json_data=self.req_data))
        self.assertEqual(response.status_code, 404)

    @patch('main.get_tenant')
    def test_invalid_body(self, mock_get_tenant, mock_verify):
        response = generate_receipt(MockRequest(json_data={"tenantId": "tenant-john", "month": "March 2025"}))

        self.assertEqual(response.status_code, 400)
        mock_get_tenant.assert_not_called()

    def test_empty_body(self, mock_verify):
        self.assertEqual(generate_receipt(MockRequest(json_data=None)).status_code, 400)

    @patch('main.get_tenant')
    def test_missing_token(self, mock_get_tenant, mock_verify):
        response = generate_receipt(MockRequest(json_data=self.req_data, token=None))

        self.assertEqual(response.status_code, 401)
        mock_verify.assert_not_called()
        mock_get_tenant.assert_not_called()

    @patch('main.get_tenant')
    def test_rejected_token(self, mock_get_tenant, mock_verify):
        mock_verify.side_effect = auth.InvalidIdTokenError("bad token")

        response = generate_receipt(MockRequest(json_data=self.req_data))

        self.assertEqual(response.status_code, 401)
        mock_get_tenant.assert_not_called()

    @patch('main.set_tenant_receipt_url')
    @patch('main.upload_to_storage', return_value=None)
    @patch('main.generate_rent_receipt_pdf', return_value=b'test_pdf_content')
    @patch('main.get_user_profile', return_value=None)
    @patch('main.get_tenant')
    def test_upload_failure(self, mock_get_tenant, mock_get_profile, mock_generate_pdf, mock_upload,
                            mock_set_url, mock_verify):
        mock_get_tenant.return_value = _tenants()[0]

        response = generate_receipt(MockRequest(json_data=self.req_data))

        self.assertEqual(response.status_code, 500)
        mock_set_url.assert_not_called()


class TestGetReceipt(unittest.TestCase):

    @patch('main.download_from_storage', return_value=b'test_pdf_content')
    def test_get_receipt_success(self, mock_download):
        req = MockRequest(args_data={"owner_id": UID, "receipt_number": "test-uuid"}, token=None)

        response = get_receipt(req)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data, b'test_pdf_content')
        self.assertEqual(response.headers['Content-Type'], 'application/pdf')
        mock_download.assert_called_once_with(f"Users/{UID}/receipts/test-uuid.pdf")

    @patch('main.download_from_storage', return_value=None)
    def test_get_receipt_not_found(self, mock_download):
        req = MockRequest(args_data={"owner_id": UID, "receipt_number": "missing"}, token=None)
        self.assertEqual(get_receipt(req).status_code, 404)

    def test_get_receipt_missing_identifiers(self):
        req = MockRequest(args_data={"receipt_number": "test-uuid"}, token=None)
        self.assertEqual(get_receipt(req).status_code, 400)


@patch('main.auth.verify_id_token', return_value={"uid": UID})
class TestPendingReceipt(unittest.TestCase):

    @patch('main.get_property', return_value=None)
    @patch('main.get_user_profile', return_value=None)
    @patch('main.get_tenant')
    def test_returns_base64_pdf(self, mock_get_tenant, mock_get_profile, mock_get_property, mock_verify):
        mock_get_tenant.return_value = _tenants()[0]

        response = pending_receipt(MockRequest(json_data={"tenantId": "tenant-john"}))

        self.assertEqual(response.status_code, 200)
        body = json.loads(response.data)
        self.assertEqual(body['fileName'], "Pending_Receipt_John_Doe.pdf")
        self.assertTrue(base64.b64decode(body['pdfBase64']).startswith(b"%PDF"))
        mock_get_property.assert_called_once_with("property-sunrise")

    def test_missing_tenant_id(self, mock_verify):
        self.assertEqual(pending_receipt(MockRequest(json_data={})).status_code, 400)

    @patch('main.get_tenant', return_value=None)
    def test_unknown_tenant(self, mock_get_tenant, mock_verify):
        self.assertEqual(pending_receipt(MockRequest(json_data={"tenantId": "nope"})).status_code, 404)


@patch('main.auth.verify_id_token', return_value={"uid": UID})
class TestRecognizeReceipt(unittest.TestCase):

    @patch('main.get_all_transactions')
    @patch('main.recognize_transaction')
    def test_flags_duplicate(self, mock_recognize, mock_get_transactions, mock_verify):
        mock_recognize.return_value = RecognizedTransaction(
            title="Rent from John", amount=1200, date="2025-01-05", category=TransactionCategory.RENT_RECEIVED,
        )
        mock_get_transactions.return_value = [
            transaction_converter.from_wire(k, v) for k, v in TRANSACTIONS.items()
        ]

        response = recognize_receipt(MockRequest(json_data={"photoDataUri": PNG_DATA_URI}))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(json.loads(response.data), {
            'title': "Rent from John",
            'amount': 1200.0,
            'date': "2025-01-05T00:00:00+00:00",
            'category': "Rent Received",
            'type': "income",
            'merchant': None,
            'duplicateOf': "txn-rent-jan",
        })

    def test_rejects_non_data_uri(self, mock_verify):
        response = recognize_receipt(MockRequest(json_data={"photoDataUri": "https://example.com/a.png"}))
        self.assertEqual(response.status_code, 400)

    @patch('main.recognize_transaction', side_effect=RecognitionError("nothing parsable"))
    def test_unreadable_image(self, mock_recognize, mock_verify):
        response = recognize_receipt(MockRequest(json_data={"photoDataUri": PNG_DATA_URI}))
        self.assertEqual(response.status_code, 422)


@patch('main.auth.verify_id_token', return_value={"uid": UID})
class TestRecognizePayment(unittest.TestCase):

    @patch('main.recognize_tenant_payment')
    @patch('main.get_all_tenants')
    def test_matches_recognized_tenant(self, mock_get_all_tenants, mock_recognize, mock_verify):
        mock_get_all_tenants.return_value = _tenants()
        mock_recognize.return_value = RecognizedTenantPayment(tenant_name="john doe", amount=1200)

        response = recognize_payment(MockRequest(json_data={"photoDataUri": PNG_DATA_URI}))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(json.loads(response.data), {'tenantName': "john doe", 'amount': 1200.0, 'tenantId': "tenant-john"})
        request = mock_recognize.call_args.args[0]
        self.assertEqual([t.name for t in request.tenants], ["John Doe", "Asha Patel", "Ravi Kumar"])

    @patch('main.recognize_tenant_payment')
    @patch('main.get_all_tenants', return_value=[])
    def test_unmatched_tenant(self, mock_get_all_tenants, mock_recognize, mock_verify):
        mock_recognize.return_value = RecognizedTenantPayment(tenant_name="Stranger", amount=50)
        request = {"photoDataUri": PNG_DATA_URI, "tenants": [{"name": "Stranger", "rentAmount": 50}]}

        response = recognize_payment(MockRequest(json_data=request))

        self.assertEqual(json.loads(response.data)['tenantId'], None)

    def test_missing_token(self, mock_verify):
        response = recognize_payment(MockRequest(json_data={"photoDataUri": PNG_DATA_URI}, token=None))
        self.assertEqual(response.status_code, 401)


if __name__ == '__main__':
    unittest.main()
