import base64
import hashlib
import hmac
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import format_datetime

import requests

logger = logging.getLogger(__name__)

@dataclass
class CybersourceConfig:
    host: str               # apitest.cybersource.com OR api.cybersource.com
    merchant_id: str        # v-c-merchant-id header
    key_id: str             # keyid in Signature header
    secret_key_b64: str     # shared secret key (base64-encoded string from Business Center)
    timeout: int = 25

class CybersourceError(RuntimeError):
    pass

def _sha256_digest_b64(body_bytes: bytes) -> str:
    return base64.b64encode(hashlib.sha256(body_bytes).digest()).decode("utf-8")

def _hmac_sha256_b64(secret_key: bytes, msg: str) -> str:
    return base64.b64encode(hmac.new(secret_key, msg.encode("utf-8"), hashlib.sha256).digest()).decode("utf-8")

def signing_string(method: str, resource: str, host: str, date_str: str, digest_header: str, merchant_id: str) -> str:
    # newline separated, no trailing newline, header order must match the Signature "headers" list
    return "\n".join([
        f"host: {host}",
        f"date: {date_str}",
        f"(request-target): {method.lower()} {resource}",
        f"digest: {digest_header}",
        f"v-c-merchant-id: {merchant_id}",
    ])

class CybersourceClient:
    """Minimal REST Payments client signed with HTTP Signature (HmacSHA256)."""

    def __init__(self, cfg: CybersourceConfig, http: requests.Session | None = None):
        self.cfg = cfg
        self.http = http or requests.Session()
        b64 = (cfg.secret_key_b64 or "").strip().replace("\r", "").replace("\n", "").replace(" ", "")
        self._secret = base64.b64decode(b64)

    def signed_headers(self, method: str, resource: str, body_bytes: bytes, now: datetime | None = None) -> dict:
        date_str = format_datetime(now or datetime.now(timezone.utc), usegmt=True)
        digest_header = f"SHA-256={_sha256_digest_b64(body_bytes)}"
        sig = _hmac_sha256_b64(
            self._secret,
            signing_string(method, resource, self.cfg.host, date_str, digest_header, self.cfg.merchant_id),
        )
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "Host": self.cfg.host,
            "Date": date_str,
            "Digest": digest_header,
            "v-c-merchant-id": self.cfg.merchant_id,
            "Signature": (
                f'keyid="{self.cfg.key_id}", algorithm="HmacSHA256", '
                f'headers="host date (request-target) digest v-c-merchant-id", signature="{sig}"'
            ),
        }

    def request(self, method: str, path: str, payload: dict | None = None) -> dict:
        body_bytes = json.dumps(payload or {}, separators=(",", ":")).encode("utf-8")
        url = f"https://{self.cfg.host}{path}"
        try:
            r = self.http.request(
                method=method.upper(), url=url, data=body_bytes,
                headers=self.signed_headers(method, path, body_bytes), timeout=self.cfg.timeout,
            )
        except requests.RequestException as e:
            raise CybersourceError(f"Cybersource unreachable: {e}") from e
        try:
            data = r.json() if r.text else {}
        except ValueError:
            data = {"raw": r.text}
        if r.status_code >= 400:
            logger.warning("Cybersource %s %s -> %s", method.upper(), path, r.status_code)
            raise CybersourceError(f"Cybersource {r.status_code}: {data}")
        return data

    def sale_card(self, *, client_ref: str, amount: str, currency: str, bill_to: dict, card: dict) -> dict:
        payload = {
            "clientReferenceInformation": {"code": client_ref},
            "processingInformation": {"capture": True},
            "paymentInformation": {"card": card},
            "orderInformation": {"amountDetails": {"totalAmount": str(amount), "currency": currency}, "billTo": bill_to},
        }
        return self.request("POST", "/pts/v2/payments", payload)
