from typing import Any

import httpx
import structlog
from pymongo.asynchronous.database import AsyncDatabase

from commentboard.core.core import Service
from commentboard.errors import SpamCheckError

logger = structlog.get_logger(__name__)


class CaptchaService(Service):
    """Spam-check gate backed by the reCAPTCHA verification API."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self.http_client: httpx.AsyncClient | None = None

    async def on_start(self) -> None:
        """Open the HTTP client used for verification calls."""
        if self.http_client is None:
            self.http_client = httpx.AsyncClient(timeout=self.core.config.captcha_timeout)

    async def on_stop(self) -> None:
        """Close the HTTP client."""
        if self.http_client is not None:
            await self.http_client.aclose()
            self.http_client = None

    async def validate(self, token: str) -> None:
        """Verify a CAPTCHA token.

        Raises:
            SpamCheckError: If the token is rejected or the verification service cannot be reached
        """
        config = self.core.config
        if not config.captcha_enabled:
            logger.warning("captcha_check_skipped")
            return

        if self.http_client is None:
            self.http_client = httpx.AsyncClient(timeout=config.captcha_timeout)

        try:
            response = await self.http_client.post(
                config.recaptcha_verify_url,
                params={"secret": config.recaptcha_secret_key, "response": token},
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.exception("captcha_validation_error", error=str(e))
            raise SpamCheckError("Failed to validate CAPTCHA.") from e

        if not isinstance(data, dict) or not data.get("success"):
            error_codes = data.get("error-codes", []) if isinstance(data, dict) else []
            logger.warning("captcha_rejected", error_codes=error_codes)
            raise SpamCheckError("Invalid CAPTCHA.")

        logger.debug("captcha_accepted", hostname=data.get("hostname"))
