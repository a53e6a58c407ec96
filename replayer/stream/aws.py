"""
AWS error classification shared by the Kinesis producer and destination.
"""

from botocore.exceptions import ClientError

# Rate limiting or quota exhaustion: skip or back off, never fatal.
THROTTLING_ERROR_CODES = frozenset(
    {
        "ProvisionedThroughputExceededException",
        "LimitExceededException",
        "ThrottlingException",
        "KMSThrottlingException",
    }
)

# Worth resending a record for.
RETRYABLE_ERROR_CODES = THROTTLING_ERROR_CODES | {"InternalFailure", "ServiceUnavailable"}


def error_code(e: ClientError) -> str:
    return e.response.get("Error", {}).get("Code", "Unknown")
