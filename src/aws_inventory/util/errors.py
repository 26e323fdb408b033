from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import FrozenSet, Iterable, Tuple


class ExitCode(IntEnum):
    OK = 0
    CONFIG_ERROR = 2
    AUTH_ERROR = 3
    AWS_ERROR = 4
    RUNTIME_ERROR = 5


class InventoryError(Exception):
    """Base error for inventory pipeline."""


class ConfigError(InventoryError):
    """Raised for configuration or argument issues."""


class AuthResolutionError(InventoryError):
    """Raised when a session (profile, region, credentials) cannot be resolved."""


class AWSClientError(InventoryError):
    """Raised when AWS SDK operations fail in a non-retriable way."""


class ListingError(AWSClientError):
    """Raised when a listing endpoint cannot be paged to exhaustion."""


class ExportError(InventoryError):
    """Raised when exporting artifacts fails."""


class ExportWriteError(ExportError):
    """Raised when creating the output file or serializing rows fails."""


class ExportFinalizeError(ExportError):
    """Raised when the output file cannot be finalized (footer/close)."""


def as_exit_code(exc: BaseException) -> int:
    if isinstance(exc, (ConfigError, ValueError)):
        return int(ExitCode.CONFIG_ERROR)
    if isinstance(exc, AuthResolutionError):
        return int(ExitCode.AUTH_ERROR)
    if isinstance(exc, AWSClientError):
        return int(ExitCode.AWS_ERROR)
    if isinstance(exc, (ExportError, InventoryError)):
        return int(ExitCode.RUNTIME_ERROR)
    return 1


def _aws_error_types() -> tuple[type[BaseException], ...]:
    try:
        from botocore.exceptions import BotoCoreError, ClientError
    except Exception:
        return ()
    return (ClientError, BotoCoreError)


def is_aws_error(exc: BaseException) -> bool:
    """
    Return True if the exception looks like a botocore/boto3 error.
    """
    aws_types = _aws_error_types()
    if aws_types and isinstance(exc, aws_types):
        return True
    module = exc.__class__.__module__
    return module.startswith("botocore.") or module.startswith("boto3.")


def aws_error_code(exc: BaseException) -> str:
    """
    Return the service error code carried by a ClientError ("" if none).
    """
    response = getattr(exc, "response", None)
    if not isinstance(response, dict):
        return ""
    error = response.get("Error") or {}
    return str(error.get("Code") or "")


def map_aws_error(exc: BaseException, context: str, error_cls: type[AWSClientError] = AWSClientError) -> AWSClientError | None:
    """
    Wrap AWS SDK errors with an AWSClientError subclass for consistent exit codes.
    """
    if not is_aws_error(exc):
        return None
    return error_cls(f"{context}: {exc}")


DEFAULT_DENIAL_CODES: Tuple[str, ...] = (
    "AccessDenied",
    "AccessDeniedException",
    "UnauthorizedOperation",
    "UnauthorizedException",
)
DEFAULT_DENIAL_CODE_SUBSTRINGS: Tuple[str, ...] = ("NotAuthorized",)
DEFAULT_DENIAL_PHRASES: Tuple[str, ...] = ("AccessDenied", "not authorized")


@dataclass(frozen=True)
class DenialClassifier:
    """
    Decide whether an API failure is an authorization denial.

    Matches the structured error code first (exact code, or a code containing one
    of code_substrings), then falls back to substring matching of the rendered
    error text against phrases. Provider codes differ, so all three sets are
    extensible from configuration.
    """

    codes: FrozenSet[str] = field(default_factory=lambda: frozenset(DEFAULT_DENIAL_CODES))
    code_substrings: Tuple[str, ...] = DEFAULT_DENIAL_CODE_SUBSTRINGS
    phrases: Tuple[str, ...] = DEFAULT_DENIAL_PHRASES

    def extended(self, codes: Iterable[str] = (), phrases: Iterable[str] = ()) -> DenialClassifier:
        extra_codes = [c.strip() for c in codes if c and c.strip()]
        extra_phrases = tuple(p for p in phrases if p and p.strip() and p not in self.phrases)
        return DenialClassifier(
            codes=self.codes | frozenset(extra_codes),
            code_substrings=self.code_substrings,
            phrases=self.phrases + extra_phrases,
        )

    def is_denied(self, exc: BaseException) -> bool:
        code = aws_error_code(exc)
        if code:
            if code in self.codes:
                return True
            if any(token in code for token in self.code_substrings):
                return True
        text = str(exc)
        return any(phrase in text for phrase in self.phrases)


DEFAULT_CLASSIFIER = DenialClassifier()


def is_not_authorized(exc: BaseException, classifier: DenialClassifier | None = None) -> bool:
    return (classifier or DEFAULT_CLASSIFIER).is_denied(exc)
