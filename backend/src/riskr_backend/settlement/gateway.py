"""Deposit verification and payout gateways.

The engine treats a gateway as slow, fallible and at-least-once: calls may
raise :class:`GatewayUnavailableError`, and payouts are keyed by an
idempotency key so a repeated instruction is not paid twice.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any, Protocol
from uuid import uuid4

import httpx

from riskr_backend.settlement.errors import GatewayUnavailableError
from riskr_backend.shared import PayoutReceipt

logger = logging.getLogger(__name__)


class DepositPayoutGateway(Protocol):
    """Boundary to the ledger holding the treasury."""

    def verify_deposit(self, wallet_address: str, amount: int, proof: str) -> bool:
        """Return whether *proof* moved *amount* stake units from *wallet_address*."""

    def send_payout(
        self, wallet_address: str, amount: int, *, idempotency_key: str
    ) -> PayoutReceipt:
        """Transfer *amount* stake units from the treasury to *wallet_address*."""


class InMemoryGateway:
    """Development gateway that accepts any deposit proof and logs payouts.

    Failures can be injected with :meth:`fail_next` or by setting
    :attr:`available` to ``False``.
    """

    def __init__(
        self,
        *,
        verifier: Callable[[str, int, str], bool] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.available = True
        self._verifier = verifier
        self._clock = clock or (lambda: datetime.now(UTC))
        self._lock = threading.Lock()
        self._receipts: dict[str, PayoutReceipt] = {}
        self._pending_failures = 0
        self.verifications: list[tuple[str, int, str]] = []

    @property
    def receipts(self) -> tuple[PayoutReceipt, ...]:
        """Payouts issued so far, one per idempotency key."""
        with self._lock:
            return tuple(self._receipts.values())

    def fail_next(self, count: int = 1) -> None:
        """Make the next *count* calls raise :class:`GatewayUnavailableError`."""
        with self._lock:
            self._pending_failures += count

    def _check_available(self) -> None:
        with self._lock:
            if self._pending_failures:
                self._pending_failures -= 1
                msg = "Injected gateway failure"
                raise GatewayUnavailableError(msg)
        if not self.available:
            msg = "Gateway offline"
            raise GatewayUnavailableError(msg)

    def verify_deposit(self, wallet_address: str, amount: int, proof: str) -> bool:
        self._check_available()
        with self._lock:
            self.verifications.append((wallet_address, amount, proof))
        if self._verifier is not None:
            return self._verifier(wallet_address, amount, proof)
        return bool(proof and proof.strip())

    def send_payout(
        self, wallet_address: str, amount: int, *, idempotency_key: str
    ) -> PayoutReceipt:
        self._check_available()
        with self._lock:
            existing = self._receipts.get(idempotency_key)
            if existing is not None:
                return existing
            receipt = PayoutReceipt(
                recipient=wallet_address,
                amount=amount,
                signature=f"mock_{uuid4().hex}",
                idempotency_key=idempotency_key,
                issued_at=self._clock(),
            )
            self._receipts[idempotency_key] = receipt
        logger.info(f"[Mock Payout] Sending {amount} to {wallet_address}")
        return receipt


class HttpLedgerGateway:
    """Gateway backed by an external signer service reachable over HTTP.

    Stake units are converted to the token's base units with
    ``10 ** token_decimals`` before they leave the process.
    """

    def __init__(
        self,
        base_url: str,
        *,
        api_key: str | None = None,
        timeout: float = 10.0,
        token_decimals: int = 6,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self._client = httpx.Client(
            base_url=base_url, timeout=timeout, headers=headers, transport=transport
        )
        self._unit = 10**token_decimals

    def close(self) -> None:
        self._client.close()

    def to_base_units(self, amount: int) -> int:
        return amount * self._unit

    def _post(self, path: str, payload: dict[str, Any], **kwargs: Any) -> httpx.Response:
        try:
            response = self._client.post(path, json=payload, **kwargs)
        except httpx.HTTPError as exc:
            logger.error(f"Ledger request to {path} failed: {exc}", exc_info=True)
            msg = f"Ledger unreachable: {exc}"
            raise GatewayUnavailableError(msg) from exc
        if response.status_code >= 500:
            msg = f"Ledger returned {response.status_code} for {path}"
            logger.error(msg)
            raise GatewayUnavailableError(msg)
        return response

    def _payload(self, response: httpx.Response, path: str) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError as exc:
            msg = f"Ledger returned a non-JSON body for {path}"
            logger.error(msg)
            raise GatewayUnavailableError(msg) from exc
        if not isinstance(data, dict):
            msg = f"Ledger returned an unexpected body for {path}"
            logger.error(msg)
            raise GatewayUnavailableError(msg)
        return data

    def verify_deposit(self, wallet_address: str, amount: int, proof: str) -> bool:
        path = "/deposits/verify"
        response = self._post(
            path,
            {
                "wallet": wallet_address,
                "amount": self.to_base_units(amount),
                "txHash": proof,
            },
        )
        if response.is_client_error:
            logger.warning(
                f"Ledger rejected deposit {proof} from {wallet_address}: {response.status_code}"
            )
            return False
        return self._payload(response, path).get("verified") is True

    def send_payout(
        self, wallet_address: str, amount: int, *, idempotency_key: str
    ) -> PayoutReceipt:
        path = "/payouts"
        response = self._post(
            path,
            {"wallet": wallet_address, "amount": self.to_base_units(amount)},
            headers={"Idempotency-Key": idempotency_key},
        )
        if response.is_client_error:
            msg = f"Ledger refused payout {idempotency_key}: {response.status_code}"
            raise GatewayUnavailableError(msg)
        signature = self._payload(response, path).get("signature")
        if not isinstance(signature, str) or not signature:
            msg = f"Ledger payout {idempotency_key} carried no signature"
            logger.error(msg)
            raise GatewayUnavailableError(msg)
        return PayoutReceipt(
            recipient=wallet_address,
            amount=amount,
            signature=signature,
            idempotency_key=idempotency_key,
            issued_at=datetime.now(UTC),
        )


__all__ = ["DepositPayoutGateway", "HttpLedgerGateway", "InMemoryGateway"]
