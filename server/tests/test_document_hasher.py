import hashlib

import pytest

from esign_engine.services.document_hasher import HASH_ALGORITHM, hash_document


class TestHashDocument:
    """Digest over the UTF-8 bytes of stored contract content."""

    def test_known_digest(self):
        assert hash_document("abc") == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"

    def test_output_is_lowercase_hex_of_length_64(self):
        digest = hash_document("Some contract text")
        assert len(digest) == 64
        assert digest == digest.lower()
        int(digest, 16)

    def test_deterministic(self):
        assert hash_document("same input") == hash_document("same input")

    def test_single_character_change_changes_digest(self):
        assert hash_document("Pay $100") != hash_document("Pay $900")

    def test_non_ascii_content_uses_utf8(self):
        content = "Contrato firmado en Bogotá — § 7001"
        assert hash_document(content) == hashlib.sha256(content.encode("utf-8")).hexdigest()

    @pytest.mark.parametrize("content", ["", None])
    def test_empty_content_rejected(self, content):
        with pytest.raises(ValueError):
            hash_document(content)

    def test_algorithm_label(self):
        assert HASH_ALGORITHM == "SHA-256"
