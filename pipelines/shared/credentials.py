"""
Credential Resolver

Produces git credentials from the environment, probing sources in a fixed
priority order:

1. CI job token (``CI`` truthy and ``CI_JOB_TOKEN`` set), valid 1 hour
2. Personal access token (``GITLAB_PAT``), valid 24 hours
3. SSH private key (``SSH_PRIVATE_KEY``), valid 24 hours
4. Anonymous, valid 1 hour

Credentials are only ever rendered through summarize(), which omits the
secret.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional, Union

from core.context import Clock, EnvironmentView
from core.schemas.errors import CredentialException, CredentialFailure


logger = logging.getLogger(__name__)


CI_USER = "gitlab-ci-token"
PAT_USER = "oauth2"
SSH_USER = "git"

CI_TTL = timedelta(hours=1)
PAT_TTL = timedelta(hours=24)
SSH_TTL = timedelta(hours=24)
ANONYMOUS_TTL = timedelta(hours=1)


class CredentialVariant(str, Enum):
    CI = "CI"
    PAT = "PAT"
    SSH = "SSH"
    ANONYMOUS = "ANONYMOUS"


@dataclass
class Credentials:
    """
    Resolved git credentials.

    ``variant`` is normally a CredentialVariant; any other value fails
    validation as an unknown variant.
    """
    variant: Union[CredentialVariant, str]
    user: str = ""
    secret: str = field(default="", repr=False)
    expires_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_anonymous(self) -> bool:
        return self.variant == CredentialVariant.ANONYMOUS

    def __str__(self) -> str:
        return summarize(self)

    def __repr__(self) -> str:
        return summarize(self)


def resolve_credentials(env: EnvironmentView, clock: Clock) -> Credentials:
    """
    Resolve credentials from the environment.

    Args:
        env: Environment view to probe
        clock: Time source for the expiry instant

    Returns:
        Credentials for the first satisfied source (anonymous as last resort)
    """
    now = clock.now()

    job_token = env.get("CI_JOB_TOKEN")
    if env.flag("CI") and job_token:
        return Credentials(CredentialVariant.CI, CI_USER, job_token, now + CI_TTL)

    pat = env.get("GITLAB_PAT")
    if pat:
        return Credentials(CredentialVariant.PAT, PAT_USER, pat, now + PAT_TTL)

    ssh_key = env.get("SSH_PRIVATE_KEY")
    if ssh_key:
        return Credentials(CredentialVariant.SSH, SSH_USER, ssh_key, now + SSH_TTL)

    logger.warning("No git credentials found in environment; falling back to anonymous access")
    return Credentials(CredentialVariant.ANONYMOUS, "", "", now + ANONYMOUS_TTL)


def validate_credentials(creds: Optional[Credentials], now: datetime) -> None:
    """
    Validate a credential record.

    Raises:
        CredentialException: EXPIRED if past expiry, MISSING_FIELD if a
            required field is empty, UNKNOWN_VARIANT for any other tag
    """
    if creds is None:
        raise CredentialException("credentials are missing", CredentialFailure.MISSING_FIELD)

    if _as_utc(creds.expires_at) < _as_utc(now):
        raise CredentialException(
            f"credentials expired at {_format_instant(creds.expires_at)}",
            CredentialFailure.EXPIRED,
        )

    variant = creds.variant
    if variant in (CredentialVariant.CI, CredentialVariant.PAT):
        if not creds.user or not creds.secret:
            raise CredentialException(
                f"{_variant_name(variant)} credentials require both user and token",
                CredentialFailure.MISSING_FIELD,
            )
    elif variant == CredentialVariant.SSH:
        if not creds.secret:
            raise CredentialException(
                "SSH credentials require a private key", CredentialFailure.MISSING_FIELD
            )
    elif variant == CredentialVariant.ANONYMOUS:
        return
    else:
        raise CredentialException(
            f"unknown credential variant: {_variant_name(variant)}",
            CredentialFailure.UNKNOWN_VARIANT,
        )


def summarize(creds: Optional[Credentials]) -> str:
    """Render credentials for logs: variant, user and expiry only."""
    if creds is None:
        return "<nil>"
    return (
        f"Credentials{{variant={_variant_name(creds.variant)}, user={creds.user}, "
        f"expires_at={_format_instant(creds.expires_at)}}}"
    )


def _variant_name(variant: Union[CredentialVariant, str]) -> str:
    return variant.value if isinstance(variant, CredentialVariant) else str(variant)


def _as_utc(instant: datetime) -> datetime:
    # Naive instants are read as UTC.
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant


def _format_instant(instant: datetime) -> str:
    return _as_utc(instant).astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
