"""
Credential provider for the brief-measure client.

Stores the API key and base URL under the data directory, derives the
service endpoints from user input, and talks to the keys and forget-me
endpoints.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Optional
from urllib.parse import urlsplit, urlunsplit

import httpx
from loguru import logger
from pydantic import ValidationError

from .delivery.store import atomic_write
from .errors import ApiKeyServiceError, InvalidEndpointError
from .models import ApiEndpoints, ApiKeyResponse

DEFAULT_BASE_URL = "https://localhost:3000/api/v1/"
KEY_FILENAME = "api-key"
PROFILE_FILENAME = "profile.json"

KEYS_LEAF = "keys"
OBSERVATIONS_LEAF = "observations"
FORGET_ME_LEAF = "forget-me-now"
KNOWN_LEAVES = (KEYS_LEAF, OBSERVATIONS_LEAF, FORGET_ME_LEAF)

_API_KEY_RE = re.compile(r"[0-9a-fA-F]{64}")


def is_valid_api_key(value: str) -> bool:
    """API keys are 32 random bytes, hex encoded."""
    return bool(_API_KEY_RE.fullmatch(value))


def summarize_key(api_key: str) -> str:
    return f"{api_key[:6]}…{api_key[-4:]}"


class ApiKeyService:
    """File-backed API key and base URL storage plus provisioning calls.

    Implements the uploader's CredentialProvider protocol via
    load_api_key() and endpoints().
    """

    def __init__(
        self,
        data_dir: Path | str,
        default_base_url: str = DEFAULT_BASE_URL,
        *,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        data_dir = Path(data_dir)
        self._key_path = data_dir / KEY_FILENAME
        self._profile_path = data_dir / PROFILE_FILENAME
        self._default_base_url = default_base_url
        self._timeout = timeout
        self._client = client

    # ---------- endpoints

    @staticmethod
    def derive_endpoints(raw: str) -> ApiEndpoints:
        """Normalize a base URL or a full endpoint URL into the canonical endpoints.

        Query and fragment are dropped, and a trailing ``keys``,
        ``observations`` or ``forget-me-now`` segment is stripped, so
        ``https://host/api/v1/keys?x=1`` and ``https://host/api/v1`` both
        yield the base ``https://host/api/v1/``.

        Raises:
            InvalidEndpointError: not an absolute http(s) URL with a host
        """
        if not isinstance(raw, str):
            raise InvalidEndpointError("The API endpoint URL is invalid.")
        value = raw.strip()
        if not value:
            raise InvalidEndpointError("The API endpoint URL is invalid.")

        try:
            parts = urlsplit(value)
            parts.port  # raises ValueError on a malformed port
        except ValueError:
            raise InvalidEndpointError("The API endpoint URL is invalid.") from None

        scheme = parts.scheme.lower()
        if scheme not in ("http", "https") or not parts.hostname:
            raise InvalidEndpointError("The API endpoint URL is invalid.")

        segments = [s for s in parts.path.split("/") if s]
        if segments and segments[-1].lower() in KNOWN_LEAVES:
            segments.pop()
        path = "/" + "".join(f"{s}/" for s in segments)

        base = urlunsplit((scheme, parts.netloc, path, "", ""))
        return ApiEndpoints(
            base=base,
            keys=base + KEYS_LEAF,
            observations=base + OBSERVATIONS_LEAF,
            forget_me=base + FORGET_ME_LEAF,
        )

    @property
    def base_url(self) -> str:
        try:
            profile = json.loads(self._profile_path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return self._default_base_url
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable profile {self._profile_path}: {e}")
            return self._default_base_url
        base = profile.get("api_base_url") if isinstance(profile, dict) else None
        if not isinstance(base, str) or not base:
            logger.warning(f"Ignoring malformed profile {self._profile_path}")
            return self._default_base_url
        return base

    def set_base_url(self, raw: str) -> ApiEndpoints:
        """Validate, normalize and persist a new base URL."""
        endpoints = self.derive_endpoints(raw)
        payload = json.dumps({"api_base_url": endpoints.base}, indent=2)
        atomic_write(self._profile_path, payload.encode("utf-8"))
        logger.info(f"API base URL set to {endpoints.base}")
        return endpoints

    def endpoints(self) -> Optional[ApiEndpoints]:
        try:
            return self.derive_endpoints(self.base_url)
        except InvalidEndpointError:
            logger.warning(f"Configured API base URL is invalid: {self.base_url!r}")
            return None

    # ---------- key storage

    def load_api_key(self) -> Optional[str]:
        try:
            value = self._key_path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning(f"Failed to read API key: {e}")
            return None
        return value if is_valid_api_key(value) else None

    def store_api_key(self, api_key: str) -> None:
        if not is_valid_api_key(api_key):
            raise ApiKeyServiceError("Received an invalid API key.")
        try:
            atomic_write(self._key_path, api_key.encode("ascii"), mode=0o600)
        except OSError as e:
            raise ApiKeyServiceError(f"Failed to store the API key ({e}).") from e

    def delete_api_key(self) -> None:
        try:
            self._key_path.unlink(missing_ok=True)
        except OSError as e:
            raise ApiKeyServiceError(f"Failed to delete the API key ({e}).") from e

    # ---------- remote calls

    async def fetch_api_key(self, keys_endpoint: str) -> str:
        """Request a new API key from the keys endpoint."""
        response = await self._post(keys_endpoint, {"Accept": "application/json"})
        if not response.is_success:
            raise ApiKeyServiceError(f"Unexpected response status: {response.status_code}.")

        try:
            api_key = ApiKeyResponse.model_validate_json(response.content).api_key.strip()
        except ValidationError:
            raise ApiKeyServiceError("Could not decode the API response.") from None

        if not is_valid_api_key(api_key):
            raise ApiKeyServiceError("Received an invalid API key.")
        return api_key.lower()

    async def forget_me(self, forget_me_endpoint: str, api_key: str) -> None:
        """Ask the service to delete every observation stored under api_key."""
        response = await self._post(
            forget_me_endpoint,
            {"Accept": "application/json", "Authorization": f"Bearer {api_key}"},
        )
        if not response.is_success:
            raise ApiKeyServiceError(f"Unexpected response status: {response.status_code}.")

    async def _post(self, url: str, headers: dict[str, str]) -> httpx.Response:
        try:
            if self._client is not None:
                return await self._client.post(url, headers=headers)
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                return await client.post(url, headers=headers)
        except httpx.HTTPError as e:
            raise ApiKeyServiceError(f"Request to {url} failed: {e}") from e
