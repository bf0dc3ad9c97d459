"""
Credential resolution for storage profiles.

A profile only stores an opaque credential id. At upload time the resolver
asks the credential store for everything visible to the system execution
context, picks the credential with that id, and turns it into the
identity/secret pair a storage provider expects.

A missing id or an unmatched one is not an error here. We hand back empty
strings and let the provider decide whether it can work without
credentials (the filesystem provider can, S3 can't).
"""

import logging
from typing import Callable, Iterable, Optional, Protocol

from .errors import CredentialLookupError
from .models import SYSTEM_CONTEXT, Credential, ExecutionContext, ResolvedCredential

logger = logging.getLogger(__name__)


class CredentialStore(Protocol):
    """
    Interface for wherever credentials are kept.

    Implementations raise CredentialLookupError when the store itself is
    unavailable. An unknown id is never their concern.
    """

    def lookup_all(self, context: ExecutionContext) -> Iterable[Credential]:
        """Return every credential visible to the given execution context."""
        ...


CredentialPredicate = Callable[[Credential], bool]


def with_id(credential_id: str) -> CredentialPredicate:
    """Predicate matching a credential by its stored id."""
    return lambda credential: credential.id == credential_id


def first_matching(
    credentials: Iterable[Credential],
    predicate: CredentialPredicate,
) -> Optional[Credential]:
    """Return the first credential satisfying the predicate, or None."""
    for credential in credentials:
        if predicate(credential):
            return credential
    return None


class CredentialResolver:
    """
    Resolves credential ids into identity/secret pairs.

    Stateless apart from the store reference, so one instance can serve
    concurrent uploads.
    """

    def __init__(
        self,
        store: CredentialStore,
        context: ExecutionContext = SYSTEM_CONTEXT,
    ) -> None:
        self._store = store
        self._context = context

    def lookup(self, credential_id: Optional[str]) -> Optional[Credential]:
        """Find the stored credential for an id, or None when absent."""
        if not credential_id:
            return None

        try:
            credentials = self._store.lookup_all(self._context)
            return first_matching(credentials, with_id(credential_id))
        except CredentialLookupError:
            raise
        except Exception as e:
            logger.error(
                "Credential store lookup failed",
                extra={"credential_id": credential_id, "error": str(e)}
            )
            raise CredentialLookupError(f"Credential lookup failed: {e}") from e

    def resolve(self, credential_id: Optional[str]) -> ResolvedCredential:
        """
        Resolve a credential id.

        Returns empty identity and secret when the id is empty, unknown,
        or points at a credential variant that carries no usable secret.
        """
        credential = self.lookup(credential_id)

        if credential is None:
            if credential_id:
                logger.warning(
                    "Credential not found, continuing without credentials",
                    extra={"credential_id": credential_id}
                )
            return ResolvedCredential()

        secret = credential.extract_secret()
        if not secret:
            logger.warning(
                "Credential has no usable secret",
                extra={
                    "credential_id": credential_id,
                    "credential_type": type(credential).__name__,
                }
            )

        return ResolvedCredential(identity=credential.username, secret=secret)
