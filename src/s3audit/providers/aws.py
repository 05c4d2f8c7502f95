from __future__ import annotations
import logging
from typing import Any, Callable, Dict, List

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError, ReadTimeoutError
from botocore.exceptions import ConnectionError as BotoConnectionError

from s3audit.core.errors import DiscoveryError, FetchError, FetchErrorKind
from s3audit.core.models import Bucket, Concern

logger = logging.getLogger(__name__)

# Error codes meaning "this setting is not configured" rather than a failure
_NOT_CONFIGURED = {
    Concern.ENCRYPTION: {"ServerSideEncryptionConfigurationNotFoundError"},
    Concern.PUBLIC_ACCESS_BLOCK: {"NoSuchPublicAccessBlockConfiguration"},
    Concern.WEBSITE: {"NoSuchWebsiteConfiguration"},
    Concern.POLICY: {"NoSuchBucketPolicy"},
}

_ACCESS_DENIED = {
    "AccessDenied",
    "AllAccessDisabled",
    "AccountProblem",
    "ExpiredToken",
    "InvalidAccessKeyId",
    "InvalidToken",
    "MethodNotAllowed",
    "SignatureDoesNotMatch",
    "UnauthorizedOperation",
}
_NOT_FOUND = {"NoSuchBucket", "NotFound", "404"}
_TRANSIENT = {
    "InternalError",
    "RequestLimitExceeded",
    "RequestTimeout",
    "ServiceUnavailable",
    "SlowDown",
    "Throttling",
    "ThrottlingException",
    "TooManyRequestsException",
    "500",
    "503",
}


def classify(error: Exception) -> FetchErrorKind:
    """Map a botocore exception to a fetch error classification."""
    if isinstance(error, ClientError):
        code = str(error.response.get("Error", {}).get("Code", ""))
        if code in _ACCESS_DENIED:
            return FetchErrorKind.ACCESS_DENIED
        if code in _NOT_FOUND:
            return FetchErrorKind.NOT_FOUND
        if code in _TRANSIENT:
            return FetchErrorKind.TRANSIENT
        return FetchErrorKind.OTHER
    if isinstance(error, (BotoConnectionError, ReadTimeoutError)):
        return FetchErrorKind.TRANSIENT
    return FetchErrorKind.OTHER


def _error_code(error: Exception) -> str | None:
    if isinstance(error, ClientError):
        return str(error.response.get("Error", {}).get("Code", "")) or None
    return None


class S3Account:
    """Bucket source and metadata fetcher backed by a boto3 S3 client.

    The client is created once and shared by all worker threads; boto3
    clients are thread-safe while sessions are not.
    """

    def __init__(
        self,
        session: boto3.session.Session | None = None,
        *,
        profile: str | None = None,
        region: str | None = None,
        endpoint_url: str | None = None,
        max_attempts: int = 5,
        max_pool_connections: int = 50,
    ) -> None:
        config = Config(
            retries={"max_attempts": max_attempts, "mode": "adaptive"},
            max_pool_connections=max_pool_connections,
        )
        try:
            self.session = session or boto3.Session(profile_name=profile, region_name=region)
            self.client = self.session.client("s3", endpoint_url=endpoint_url, config=config)
        except BotoCoreError as e:
            # Unknown profiles and invalid endpoints surface here
            raise DiscoveryError(f"Unable to create S3 client: {e}") from e

    def list_buckets(self) -> List[Bucket]:
        """Return every bucket in the account in listing order.

        Raises:
            DiscoveryError: If the account-level listing fails
        """
        buckets: List[Bucket] = []
        try:
            paginator = self.client.get_paginator("list_buckets")
            for page in paginator.paginate():
                for entry in page.get("Buckets", []):
                    buckets.append(Bucket(name=entry["Name"], region=entry.get("BucketRegion")))
        except (BotoCoreError, ClientError) as e:
            raise DiscoveryError(f"Unable to list buckets: {e}") from e
        logger.info("Discovered %d bucket(s)", len(buckets))
        return buckets

    def _call(self, concern: Concern, bucket: Bucket, operation: Callable[..., Dict[str, Any]]) -> Dict[str, Any] | None:
        """Call an S3 read operation, returning None when the setting is absent."""
        try:
            return operation(Bucket=bucket.name)
        except (BotoCoreError, ClientError) as e:
            code = _error_code(e)
            if code in _NOT_CONFIGURED.get(concern, ()):
                logger.debug("%s has no %s configuration", bucket.name, concern.value)
                return None
            raise FetchError(classify(e), str(e), concern=concern.value, bucket=bucket.name, code=code) from e

    def fetch_acl(self, bucket: Bucket) -> Dict[str, Any]:
        response = self._call(Concern.ACL, bucket, self.client.get_bucket_acl) or {}
        return {"Owner": response.get("Owner", {}), "Grants": response.get("Grants", [])}

    def fetch_encryption(self, bucket: Bucket) -> Dict[str, Any] | None:
        response = self._call(Concern.ENCRYPTION, bucket, self.client.get_bucket_encryption)
        if response is None:
            return None
        return response.get("ServerSideEncryptionConfiguration")

    def fetch_logging(self, bucket: Bucket) -> Dict[str, Any] | None:
        response = self._call(Concern.LOGGING, bucket, self.client.get_bucket_logging) or {}
        return response.get("LoggingEnabled")

    def fetch_versioning(self, bucket: Bucket) -> Dict[str, Any]:
        response = self._call(Concern.VERSIONING, bucket, self.client.get_bucket_versioning) or {}
        return {key: response[key] for key in ("Status", "MFADelete") if key in response}

    def fetch_public_access_block(self, bucket: Bucket) -> Dict[str, Any] | None:
        response = self._call(Concern.PUBLIC_ACCESS_BLOCK, bucket, self.client.get_public_access_block)
        if response is None:
            return None
        return response.get("PublicAccessBlockConfiguration")

    def fetch_website(self, bucket: Bucket) -> Dict[str, Any] | None:
        response = self._call(Concern.WEBSITE, bucket, self.client.get_bucket_website)
        if response is None:
            return None
        return {key: value for key, value in response.items() if key != "ResponseMetadata"}

    def fetch_policy(self, bucket: Bucket) -> str | None:
        """Return the policy document text, or None if the bucket has no policy."""
        response = self._call(Concern.POLICY, bucket, self.client.get_bucket_policy)
        if response is None:
            return None
        return response.get("Policy") or None
