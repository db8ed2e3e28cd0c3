from __future__ import annotations

from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from esign_engine.core.timeutils import utcnow
from esign_engine.models.signature import IntentConfirmation

DEFAULT_INTENT_STATEMENT = "I intend this to be my legally binding electronic signature"


def names_match(typed_name: str | None, expected_name: str | None) -> bool:
    """Case-insensitive, whitespace-trimmed comparison. An empty expected name never matches."""
    expected = (expected_name or "").strip().casefold()
    if not expected:
        return False
    return (typed_name or "").strip().casefold() == expected


class IntentConfirmer:
    """Records the signer's statement of intent. A name mismatch is recorded, not rejected."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def confirm_intent(
        self,
        signature_id: str,
        typed_name: str | None,
        expected_name: str | None,
        statement: str = DEFAULT_INTENT_STATEMENT,
        *,
        intent_checked: bool = True,
        confirmed_at: datetime | None = None,
    ) -> IntentConfirmation:
        confirmation = IntentConfirmation(
            signature_id=signature_id,
            intent_checkbox_checked=intent_checked,
            intent_statement=statement,
            typed_name=typed_name or "",
            expected_name=expected_name or "",
            typed_name_match=names_match(typed_name, expected_name),
            confirmed_at=confirmed_at or utcnow(),
        )
        self.session.add(confirmation)
        await self.session.flush()
        return confirmation
