"""Content-integrity digests for signed documents.

The digest is taken over the UTF-8 bytes of the contract's stored
content, never over a rendered representation, so it is reproducible
on any host.
"""

import hashlib

HASH_ALGORITHM = "SHA-256"
CONTENT_TYPE = "full_document"


def hash_document(content: str) -> str:
    if content is None or content == "":
        raise ValueError("document content is empty")
    return hashlib.sha256(content.encode("utf-8")).hexdigest()
