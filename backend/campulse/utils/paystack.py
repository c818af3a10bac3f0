"""
Paystack REST client for payment sessions, transfers and recipients
"""

import requests
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..core.exceptions import GatewayError
from ..core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class InitializedSession:
    authorization_url: str
    reference: str
    access_code: Optional[str] = None


@dataclass
class TransferResult:
    status: str
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass
class RecipientResult:
    recipient_code: str
    bank_name: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)


class PaystackClient:
    def __init__(
        self,
        secret_key: str,
        base_url: str = "https://api.paystack.co",
        timeout: float = 15.0,
        currency: str = "NGN",
        session: Optional[requests.Session] = None,
    ):
        """Initialize the client; the secret key is sent as a bearer token"""
        if not secret_key:
            raise GatewayError("PAYSTACK_SECRET_KEY not set", status_code=500)
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.currency = currency
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {secret_key}",
            "Content-Type": "application/json",
        })

    def _request(self, method: str, path: str, failure_message: str, **kwargs) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.error(f"Paystack {method} {path} failed: {e}")
            raise GatewayError(f"{failure_message}: {e}", status_code=502)

        try:
            body = response.json()
        except ValueError:
            body = {}

        if not response.ok:
            message = body.get("message") if isinstance(body, dict) else None
            logger.warning(
                f"Paystack {method} {path} returned {response.status_code}: {message}",
                extra={"event": "paystack_error", "status_code": response.status_code},
            )
            raise GatewayError(message or failure_message)
        return body

    def initialize_session(
        self,
        amount_subunits: int,
        email: str,
        metadata: Optional[Dict[str, Any]] = None,
        callback_url: Optional[str] = None,
    ) -> InitializedSession:
        """
        Start a hosted payment session

        Args:
            amount_subunits: Amount to charge in kobo
            email: Payer email
            metadata: Correlation data echoed back in webhook events
            callback_url: Where Paystack redirects the payer afterwards

        Returns:
            InitializedSession with the authorization URL and Paystack reference
        """
        payload: Dict[str, Any] = {
            "amount": amount_subunits,
            "email": email,
            "currency": self.currency,
            "metadata": metadata or {},
        }
        if callback_url:
            payload["callback_url"] = callback_url

        body = self._request("POST", "/transaction/initialize", "Paystack init failed", json=payload)
        data = body.get("data") or {}
        if not data.get("authorization_url") or not data.get("reference"):
            raise GatewayError("Paystack init returned no authorization URL")
        return InitializedSession(
            authorization_url=data["authorization_url"],
            reference=data["reference"],
            access_code=data.get("access_code"),
        )

    def transfer(
        self,
        amount_subunits: int,
        recipient_code: str,
        reason: str,
        reference: Optional[str] = None,
    ) -> TransferResult:
        """Send money from the Paystack balance to a transfer recipient"""
        payload: Dict[str, Any] = {
            "source": "balance",
            "amount": amount_subunits,
            "recipient": recipient_code,
            "reason": reason,
            "currency": self.currency,
        }
        # Paystack refuses a second transfer with the same reference
        if reference:
            payload["reference"] = reference

        body = self._request("POST", "/transfer", "Payout failed", json=payload)
        data = body.get("data") or {}
        return TransferResult(status=data.get("status", "unknown"), raw=body)

    def create_recipient(self, bank_code: str, account_number: str, account_name: str) -> RecipientResult:
        """Register a NUBAN bank account as a transfer recipient"""
        payload = {
            "type": "nuban",
            "name": account_name,
            "account_number": account_number,
            "bank_code": bank_code,
            "currency": self.currency,
        }
        body = self._request("POST", "/transferrecipient", "Recipient creation failed", json=payload)
        data = body.get("data") or {}
        recipient_code = data.get("recipient_code")
        if not recipient_code:
            raise GatewayError("Missing recipient code")
        details = data.get("details") or {}
        return RecipientResult(
            recipient_code=recipient_code,
            bank_name=details.get("bank_name"),
            raw=body,
        )

    def list_banks(self, country: str = "nigeria") -> List[Dict[str, Any]]:
        body = self._request("GET", "/bank", "Failed to fetch banks", params={"country": country})
        data = body.get("data")
        return data if isinstance(data, list) else []

    def verify_transaction(self, reference: str) -> Dict[str, Any]:
        """Look up a payment session; the returned data carries its ``status``"""
        body = self._request("GET", f"/transaction/verify/{reference}", "Could not verify payment status")
        return body.get("data") or {}
