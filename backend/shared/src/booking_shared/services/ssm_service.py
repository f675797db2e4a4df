"""SSM Parameter Store access for payment secrets.

The SumUp API key and merchant code live under /booking/{ENVIRONMENT}/sumup/.
Values are cached per process; a Lambda container fetches each parameter
once.
"""

import os
from functools import lru_cache
from typing import ClassVar

import boto3
from botocore.exceptions import ClientError

from booking_shared.utils.logging import get_logger

logger = get_logger(__name__)

PARAMETER_ROOT = "/booking"


class SSMServiceError(Exception):
    """Raised when SSM parameter retrieval fails."""


class SSMService:
    """Reads decrypted SecureString parameters.

    Usage:
        ssm = get_ssm_service()
        api_key = ssm.get_parameter(ssm.parameter_path("sumup/api_key"))
    """

    _cache: ClassVar[dict[str, str]] = {}

    def __init__(self, environment: str | None = None) -> None:
        self.environment = environment or os.getenv("ENVIRONMENT", "dev")
        self._client = boto3.client("ssm")

    def parameter_path(self, name: str) -> str:
        """Full path for this environment, e.g. /booking/dev/sumup/api_key."""
        return f"{PARAMETER_ROOT}/{self.environment}/{name}"

    def get_parameter(self, name: str, *, use_cache: bool = True) -> str:
        """Fetch a parameter value.

        Args:
            name: Full parameter path
            use_cache: Serve a previously fetched value if there is one

        Raises:
            SSMServiceError: Parameter missing, access denied or SSM failure
        """
        if use_cache and name in self._cache:
            return self._cache[name]

        try:
            response = self._client.get_parameter(Name=name, WithDecryption=True)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "Unknown")
            if code == "ParameterNotFound":
                raise SSMServiceError(f"SSM parameter not found: {name}") from e
            if code == "AccessDeniedException":
                raise SSMServiceError(
                    f"Access denied to SSM parameter {name}; "
                    "the function role needs ssm:GetParameter"
                ) from e
            raise SSMServiceError(f"Failed to read SSM parameter {name}: {e}") from e

        value: str = response["Parameter"]["Value"]
        self._cache[name] = value
        logger.info("Loaded SSM parameter %s", name)
        return value

    def get_optional_parameter(self, name: str) -> str | None:
        """Like get_parameter, but an unavailable parameter yields None."""
        try:
            return self.get_parameter(name)
        except SSMServiceError as e:
            logger.info("Optional SSM parameter unavailable: %s", e)
            return None

    def clear_cache(self) -> None:
        self._cache.clear()


@lru_cache(maxsize=1)
def get_ssm_service() -> SSMService:
    """Get the shared SSMService instance."""
    return SSMService()
