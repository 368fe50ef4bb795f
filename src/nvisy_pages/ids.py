"""Document identifiers for stores that do not assign their own."""

import secrets
import string

_ID_ALPHABET = string.ascii_letters + string.digits
_ID_LENGTH = 20


def new_document_id() -> str:
    """Generate a random 20 character identifier, like Firestore auto-ids."""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(_ID_LENGTH))
