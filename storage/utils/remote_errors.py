"""
Remote Storage Errors

Adapter between the S3 client and the rest of the system.
botocore exceptions are classified into a closed set of error kinds here,
so nothing else inspects vendor error codes.

Also provides the retry loop and the try-in-order combinator used for
probing candidate object keys.
"""

import logging
import random
import time
from enum import Enum
from typing import Callable, Iterable, Optional, Tuple, TypeVar

from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectionClosedError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)

from config.settings import (
    REMOTE_MAX_RETRIES,
    REMOTE_RETRY_BASE_DELAY,
    REMOTE_RETRY_MAX_DELAY,
)
from storage.interfaces.storage_interface import BackendUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")
C = TypeVar("C")


class RemoteErrorKind(Enum):
    """Closed set of remote failure classes"""

    NOT_FOUND = "not_found"  # Key or bucket missing
    RATE_LIMITED = "rate_limited"  # Throttled, retry later
    SERVER_ERROR = "server_error"  # 5xx or network failure
    ACCESS_DENIED = "access_denied"  # Credentials or permissions
    UNKNOWN = "unknown"

    @property
    def retryable(self) -> bool:
        return self in (RemoteErrorKind.RATE_LIMITED, RemoteErrorKind.SERVER_ERROR)


class RemoteStorageError(BackendUnavailableError):
    """
    Exception raised by remote object storage.

    Attributes:
        kind: Classified error kind
        code: Vendor error code (for logs only)
        status_code: HTTP status, if any
    """

    def __init__(
        self,
        message: str,
        kind: RemoteErrorKind = RemoteErrorKind.UNKNOWN,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.code = code
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        return self.kind.retryable

    @property
    def user_message(self) -> str:
        """Plain-language message safe to show an end user"""
        return _USER_MESSAGES.get(self.kind, "Storage operation failed.")


_USER_MESSAGES = {
    RemoteErrorKind.NOT_FOUND: "The requested file is not in cloud storage.",
    RemoteErrorKind.RATE_LIMITED: (
        "Too many requests. Please wait a moment and try again."
    ),
    RemoteErrorKind.SERVER_ERROR: (
        "Cloud storage is temporarily unavailable. Please try again later."
    ),
    RemoteErrorKind.ACCESS_DENIED: (
        "Cloud storage rejected the request. Check storage credentials."
    ),
}

# Vendor codes grouped by kind
_NOT_FOUND_CODES = {"NoSuchKey", "NoSuchBucket", "NotFound", "404"}
_ACCESS_DENIED_CODES = {
    "AccessDenied",
    "InvalidAccessKeyId",
    "SignatureDoesNotMatch",
    "Forbidden",
    "403",
}
_RATE_LIMITED_CODES = {"SlowDown", "Throttling", "ThrottlingException", "TooManyRequests"}
_SERVER_ERROR_CODES = {
    "InternalError",
    "ServiceUnavailable",
    "RequestTimeout",
    "RequestTimeoutException",
}
_RETRYABLE_STATUS_CODES = {408, 500, 502, 503, 504}


def classify_error(error: Exception) -> RemoteStorageError:
    """
    Convert a client exception to a RemoteStorageError.

    Args:
        error: Exception raised by boto3/botocore (or anything else)

    Returns:
        RemoteStorageError with a classified kind

    Example:
        try:
            client.head_object(Bucket=b, Key=k)
        except ClientError as e:
            raise classify_error(e) from e
    """
    if isinstance(error, RemoteStorageError):
        return error

    if isinstance(error, ClientError):
        err = error.response.get("Error", {})
        code = str(err.get("Code", "")) or None
        status = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
        message = err.get("Message") or str(error)
        return RemoteStorageError(
            message,
            kind=_kind_for(code, status),
            code=code,
            status_code=status,
        )

    if isinstance(
        error,
        (
            EndpointConnectionError,
            ConnectTimeoutError,
            ReadTimeoutError,
            ConnectionClosedError,
        ),
    ):
        return RemoteStorageError(
            str(error),
            kind=RemoteErrorKind.SERVER_ERROR,
            code=type(error).__name__,
        )

    if isinstance(error, BotoCoreError):
        return RemoteStorageError(str(error), code=type(error).__name__)

    return RemoteStorageError(str(error) or type(error).__name__)


def _kind_for(code: Optional[str], status: Optional[int]) -> RemoteErrorKind:
    if code in _NOT_FOUND_CODES or status == 404:
        return RemoteErrorKind.NOT_FOUND
    if code in _ACCESS_DENIED_CODES or status in (401, 403):
        return RemoteErrorKind.ACCESS_DENIED
    if code in _RATE_LIMITED_CODES or status == 429:
        return RemoteErrorKind.RATE_LIMITED
    if code in _SERVER_ERROR_CODES or status in _RETRYABLE_STATUS_CODES:
        return RemoteErrorKind.SERVER_ERROR
    return RemoteErrorKind.UNKNOWN


def with_retry(
    operation: Callable[[], T],
    max_retries: int = REMOTE_MAX_RETRIES,
    base_delay: float = REMOTE_RETRY_BASE_DELAY,
    max_delay: float = REMOTE_RETRY_MAX_DELAY,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Run operation, retrying transient failures with exponential backoff.

    Permanent failures (not found, access denied, unknown) are raised
    immediately. Delay doubles each attempt, capped at max_delay, with
    up to 10% jitter.

    Args:
        operation: Zero-argument callable
        max_retries: Retries after the first attempt
        base_delay: First delay in seconds
        max_delay: Delay cap in seconds
        sleep: Sleep function (injectable for tests)

    Returns:
        Result of operation

    Raises:
        RemoteStorageError: Last classified error
    """
    attempt = 0
    while True:
        try:
            return operation()
        except Exception as e:
            error = classify_error(e)
            if not error.retryable or attempt >= max_retries:
                if error is e:
                    raise
                raise error from e

            delay = min(base_delay * (2 ** attempt), max_delay)
            delay += random.uniform(0, delay * 0.1)
            attempt += 1
            logger.warning(
                f"Remote operation failed ({error.kind.value}: {error}), "
                f"retry {attempt}/{max_retries} in {delay:.1f}s"
            )
            sleep(delay)


def first_success(
    candidates: Iterable[C],
    operation: Callable[[C], T],
) -> Tuple[C, T]:
    """
    Try candidates in order and return the first that succeeds.

    Args:
        candidates: Ordered candidates (e.g. object keys)
        operation: Called with each candidate until one does not raise

    Returns:
        (candidate, result) for the first success

    Raises:
        RemoteStorageError: Last error if every candidate failed,
            NOT_FOUND if there were no candidates

    Example:
        key, obj = first_success(candidate_keys(video_id), remote.get)
    """
    last_error: Optional[RemoteStorageError] = None
    for candidate in candidates:
        try:
            return candidate, operation(candidate)
        except Exception as e:
            last_error = classify_error(e)
            logger.debug(f"Candidate {candidate} failed: {last_error}")

    if last_error is None:
        raise RemoteStorageError("No candidates to try", RemoteErrorKind.NOT_FOUND)
    raise last_error
