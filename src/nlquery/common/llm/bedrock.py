"""AWS Bedrock runtime client: SigV4-signed model invocations over httpx."""

from __future__ import annotations

import json
from urllib.parse import quote

import boto3
import httpx
import structlog
from botocore.auth import SigV4Auth
from botocore.awsrequest import AWSRequest
from botocore.credentials import Credentials
from botocore.exceptions import BotoCoreError
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from nlquery.common.errors import ModelInvocationError, ModelTimeoutError

logger = structlog.get_logger()

SIGNING_SERVICE = "bedrock"

# Connection-level failures only; timeouts and HTTP error statuses surface immediately
RETRYABLE_ERRORS = (httpx.ConnectError, httpx.RemoteProtocolError)


class BedrockRuntimeClient:
    """Signs and sends ``POST /model/<model-id>/invoke`` requests to Bedrock.

    The caller owns the payload and the interpretation of the response;
    this class only handles credentials, signing, timeouts and retries of
    transient connection failures.
    """

    def __init__(
        self,
        region: str,
        timeout: float = 30.0,
        max_attempts: int = 3,
        endpoint_url: str | None = None,
        credentials: Credentials | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        retry_backoff: float = 1.0,
    ) -> None:
        self._region = region
        self._timeout = timeout
        self._max_attempts = max_attempts
        self._endpoint_url = (endpoint_url or f"https://bedrock-runtime.{region}.amazonaws.com").rstrip("/")
        self._credentials = credentials
        self._transport = transport
        self._retry_backoff = retry_backoff

    @property
    def region(self) -> str:
        return self._region

    def invoke_url(self, model_id: str) -> str:
        # Model IDs contain ':' which must be percent-encoded in the path
        return f"{self._endpoint_url}/model/{quote(model_id, safe='')}/invoke"

    def _resolve_credentials(self) -> Credentials:
        if self._credentials is None:
            try:
                credentials = boto3.Session(region_name=self._region).get_credentials()
            except BotoCoreError as exc:
                logger.error("bedrock_credentials_failed", error=str(exc))
                raise ModelInvocationError(f"AWS credentials could not be resolved: {exc}") from exc
            if credentials is None:
                raise ModelInvocationError("AWS credentials not found for Bedrock request signing")
            self._credentials = credentials
        return self._credentials

    def _sign(self, url: str, body: bytes, credentials: Credentials) -> dict[str, str]:
        request = AWSRequest(
            method="POST",
            url=url,
            data=body,
            headers={"Content-Type": "application/json", "Accept": "application/json"},
        )
        SigV4Auth(credentials, SIGNING_SERVICE, self._region).add_auth(request)
        return dict(request.headers.items())

    async def invoke(self, model_id: str, payload: dict) -> httpx.Response:
        """Send a signed invoke request and return the raw HTTP response.

        Raises:
            ModelTimeoutError: the request exceeded the configured timeout.
            ModelInvocationError: credentials are missing or the transport failed.
        """
        url = self.invoke_url(model_id)
        body = json.dumps(payload).encode("utf-8")
        credentials = self._resolve_credentials()

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._max_attempts),
                wait=wait_exponential(multiplier=self._retry_backoff, max=10),
                retry=retry_if_exception_type(RETRYABLE_ERRORS),
                reraise=True,
            ):
                with attempt:
                    if attempt.retry_state.attempt_number > 1:
                        logger.warning(
                            "bedrock_invoke_retry",
                            model_id=model_id,
                            attempt=attempt.retry_state.attempt_number,
                        )
                    # Re-sign per attempt so X-Amz-Date stays fresh
                    headers = self._sign(url, body, credentials)
                    async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                        response = await client.post(url, content=body, headers=headers)
        except httpx.TimeoutException as exc:
            logger.error("bedrock_invoke_timeout", model_id=model_id, timeout=self._timeout)
            raise ModelTimeoutError(f"Bedrock invoke timed out after {self._timeout}s") from exc
        except httpx.HTTPError as exc:
            logger.error("bedrock_invoke_failed", model_id=model_id, error=str(exc))
            raise ModelInvocationError(f"Bedrock invoke failed: {exc}") from exc

        logger.debug("bedrock_invoke", model_id=model_id, status_code=response.status_code)
        return response
