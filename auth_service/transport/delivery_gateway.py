import logging
from typing import Dict

import requests

from ..core.delivery import format_code_message
from ..core.models import ChallengePurpose

logger = logging.getLogger(__name__)


class DeliveryGatewayError(RuntimeError):
    pass


class GatewayCodeDelivery:
    """Hands one-time codes to an outbound email/SMS gateway over HTTP."""

    def __init__(self, base_url: str, timeout_seconds: int = 5):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout_seconds

    def deliver(self, purpose: ChallengePurpose, email: str, code: str) -> None:
        payload: Dict[str, str] = {
            "to": email,
            "purpose": purpose.value,
            "code": code,
            "text": format_code_message(purpose, code),
        }

        try:
            resp = requests.post(
                f"{self.base_url}/send",
                json=payload,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise DeliveryGatewayError(
                f"Failed to reach delivery gateway: {e}"
            ) from e

        if resp.status_code != 200:
            raise DeliveryGatewayError(
                f"Gateway error {resp.status_code}: {resp.text}"
            )

        data = resp.json()
        if data.get("status") != "ok":
            raise DeliveryGatewayError(f"Gateway failed: {data}")
        logger.info("Delivered %s code to %s", purpose.value, email)
