"""HTTP client for the booking API.

A transport shim: every method maps to one endpoint and the server owns all
business rules. Prescriptions and orders are cached locally so they can still
be shown when the server is unreachable.
"""

import logging

import requests

from telemed_booking.config import Settings
from telemed_booking.offline_storage import OfflineStorage

logger = logging.getLogger(__name__)


class ApiClientError(Exception):
    """Raised when an API call fails."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class OfflineError(ApiClientError):
    """Raised when the server cannot be reached at all."""
    pass


class TelemedClient:
    """Client for the telemedicine REST API."""

    def __init__(
        self,
        base_url: str | None = None,
        storage: OfflineStorage | None = None,
        timeout: float = 10,
        session: requests.Session | None = None,
    ):
        settings = Settings.from_env() if base_url is None or storage is None else None
        self.base_url = (base_url or settings.api_url).rstrip("/")
        self.storage = storage or OfflineStorage(settings.offline_cache_path)
        self.timeout = timeout
        self.session = session or requests.Session()

    # Auth

    def login(self, email: str, password: str, role: str) -> dict:
        return self._request("POST", "/api/auth/login", json={"email": email, "password": password, "role": role})

    def register_doctor(self, **doctor_data) -> dict:
        return self._request("POST", "/api/auth/register-doctor", json=doctor_data)

    # Doctors and slots

    def get_doctors(self, specialty: str | None = None) -> list[dict]:
        params = {"specialty": specialty} if specialty else None
        return self._request("GET", "/api/doctors", params=params)

    def get_doctor(self, doctor_id: str) -> dict:
        return self._request("GET", f"/api/doctors/{doctor_id}")

    def add_time_slot(self, doctor_id: str, date: str, time: str) -> dict:
        return self._request("POST", f"/api/doctors/{doctor_id}/slots", json={"date": date, "time": time})

    def get_available_slots(self, doctor_id: str) -> list[dict]:
        return self._request("GET", f"/api/doctors/{doctor_id}/slots")

    # Patients

    def create_patient(self, **patient_data) -> dict:
        return self._request("POST", "/api/patients", json=patient_data)

    def get_patients(self) -> list[dict]:
        return self._request("GET", "/api/patients")

    def get_patient(self, patient_id: str) -> dict:
        return self._request("GET", f"/api/patients/{patient_id}")

    def update_patient(self, patient_id: str, **updates) -> dict:
        return self._request("PUT", f"/api/patients/{patient_id}", json=updates)

    def delete_patient(self, patient_id: str) -> dict:
        return self._request("DELETE", f"/api/patients/{patient_id}")

    # Consultations

    def book_consultation(self, patient_id: str, doctor_id: str, slot_id: str, is_critical: bool = False) -> dict:
        return self._request("POST", "/api/consultations", json={
            "patient_id": patient_id,
            "doctor_id": doctor_id,
            "slot_id": slot_id,
            "is_critical": is_critical,
        })

    def get_consultations(self, user_id: str, role: str) -> list[dict]:
        return self._request("GET", "/api/consultations", params={"user_id": user_id, "role": role})

    def get_payment(self, consultation_id: str) -> dict:
        return self._request("GET", f"/api/consultations/{consultation_id}/payment")

    def settle_payment(self, payment_id: str, paid: bool) -> dict:
        return self._request("POST", f"/api/payments/{payment_id}/settle", json={"paid": paid})

    # Prescriptions

    def add_prescription(
        self,
        consultation_id: str,
        doctor_id: str,
        patient_id: str,
        medicines: list[dict],
        instructions: str = "",
    ) -> dict:
        return self._request("POST", f"/api/consultations/{consultation_id}/prescription", json={
            "doctor_id": doctor_id,
            "patient_id": patient_id,
            "medicines": medicines,
            "instructions": instructions,
        })

    def get_prescriptions(self, patient_id: str) -> list[dict]:
        """Fetch prescriptions, falling back to the offline cache when unreachable."""
        try:
            prescriptions = self._request("GET", f"/api/patients/{patient_id}/prescriptions")
        except OfflineError as e:
            logger.warning("Serving cached prescriptions: %s", e.message)
            return self.storage.get_prescriptions()
        self.storage.store_prescriptions(prescriptions)
        return prescriptions

    # Pharmacy

    def order_medicines(self, prescription_id: str) -> dict:
        return self._request("POST", "/api/orders", json={"prescription_id": prescription_id})

    def get_pharmacy_orders(self, patient_id: str) -> list[dict]:
        """Fetch orders, falling back to the offline cache when unreachable."""
        try:
            orders = self._request("GET", f"/api/patients/{patient_id}/orders")
        except OfflineError as e:
            logger.warning("Serving cached orders: %s", e.message)
            return self.storage.get_orders()
        self.storage.store_orders(orders)
        return orders

    def advance_order(self, order_id: str) -> dict:
        return self._request("POST", f"/api/orders/{order_id}/advance")

    # Symptom checker

    def get_symptom_questions(self) -> list[dict]:
        return self._request("GET", "/api/symptoms/questions")

    def analyze_symptoms(self, responses: list[dict]) -> dict:
        return self._request("POST", "/api/symptoms/analyze", json={"responses": responses})

    def _request(self, method: str, path: str, **kwargs):
        """Send a request and return the decoded JSON body."""
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.Timeout:
            raise OfflineError("API request timed out")
        except requests.exceptions.ConnectionError:
            raise OfflineError("Failed to connect to API")

        try:
            body = response.json()
        except ValueError:
            body = None
            if response.status_code < 400:
                raise ApiClientError("Invalid JSON in API response", response.status_code)

        if response.status_code >= 400:
            message = body.get("message") if isinstance(body, dict) else None
            if not isinstance(message, str):
                message = None
            raise ApiClientError(message or f"API error: {response.status_code}", response.status_code)

        return body
