"""Cart owner identity: an account or an anonymous session, never both."""

from dataclasses import dataclass
from typing import Optional

from common.api import session_token


@dataclass(frozen=True)
class CartOwner:
    user_id: Optional[int] = None
    session_key: Optional[str] = None

    def __post_init__(self):
        if (self.user_id is None) == (not self.session_key):
            raise ValueError("A cart owner is either an account or a guest session")

    @classmethod
    def for_user(cls, user) -> "CartOwner":
        return cls(user_id=int(getattr(user, "id", user)))

    @classmethod
    def for_session(cls, session_key: str) -> "CartOwner":
        return cls(session_key=str(session_key))

    @property
    def is_guest(self) -> bool:
        return self.user_id is None

    @property
    def key(self) -> str:
        if self.is_guest:
            return f"session:{self.session_key}"
        return f"user:{self.user_id}"

    def __str__(self) -> str:
        return self.key


def owner_from_request(request) -> Optional[CartOwner]:
    """Resolve the shopper for a request.

    Authenticated users own their account cart; anonymous callers are keyed
    by the `X-Session-Id` header. Returns None when neither is available.
    """

    user = getattr(request, "user", None)
    if user is not None and user.is_authenticated:
        return CartOwner.for_user(user)
    token = session_token(request)
    if token:
        return CartOwner.for_session(token)
    return None
