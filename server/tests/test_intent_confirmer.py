import pytest

from esign_engine.services.intent_confirmer import DEFAULT_INTENT_STATEMENT, names_match


class TestNamesMatch:
    """Typed name against the signer's name of record."""

    @pytest.mark.parametrize(
        "typed,expected",
        [
            ("Jane Doe", "Jane Doe"),
            ("jane doe", "Jane Doe"),
            ("  Jane Doe  ", "Jane Doe"),
            ("JANE DOE", "jane doe "),
        ],
    )
    def test_matches(self, typed, expected):
        assert names_match(typed, expected) is True

    @pytest.mark.parametrize(
        "typed,expected",
        [
            ("J. Doe", "Jane Doe"),
            ("", "Jane Doe"),
            (None, "Jane Doe"),
            ("", ""),
            ("Jane Doe", None),
        ],
    )
    def test_mismatches(self, typed, expected):
        assert names_match(typed, expected) is False


def test_default_statement():
    assert DEFAULT_INTENT_STATEMENT == "I intend this to be my legally binding electronic signature"
