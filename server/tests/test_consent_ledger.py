import pytest
from sqlalchemy import func, select

from esign_engine.core.disclosure import get_disclosure
from esign_engine.models import AuditEventType, ContractAuditEvent, ESignConsent
from esign_engine.services.audit_trail import AuditTrailRecorder
from esign_engine.services.consent_ledger import ConsentAcknowledgments, ConsentLedger
from esign_engine.services.results import ErrorKind

ALL_ACKNOWLEDGED = ConsentAcknowledgments(hardware_software=True, paper_copy_right=True, consent_withdrawal=True)


def build_ledger(session) -> ConsentLedger:
    return ConsentLedger(session, AuditTrailRecorder(session), disclosure_version="1.0")


class TestRecordConsent:
    """Consent capture and its audit event."""

    @pytest.mark.asyncio
    async def test_records_consent_with_disclosure_hash(self, db_session, contract_factory, request_context):
        contract, signers = await contract_factory()
        ledger = build_ledger(db_session)

        result = await ledger.record_consent(contract.id, signers[0].id, ALL_ACKNOWLEDGED, context=request_context)

        assert result.succeeded
        consent = result.value
        assert consent.is_valid
        assert consent.disclosure_version == "1.0"
        assert consent.disclosure_text_hash == get_disclosure("1.0").hash
        assert consent.ip_address == "203.0.113.7"
        assert consent.user_agent == "pytest-agent/1.0"

        events = await AuditTrailRecorder(db_session).list_events(contract.id)
        assert [event.event_type for event in events] == [AuditEventType.CONSENT_GIVEN]
        assert events[0].details["signerId"] == signers[0].id
        assert events[0].details["consentId"] == consent.id
        assert events[0].actor_id == "user-123"

    @pytest.mark.asyncio
    async def test_missing_acknowledgment_rejected_without_writes(self, db_session, contract_factory, request_context):
        contract, signers = await contract_factory()
        ledger = build_ledger(db_session)
        acks = ConsentAcknowledgments(hardware_software=True, paper_copy_right=False, consent_withdrawal=True)

        result = await ledger.record_consent(contract.id, signers[0].id, acks, context=request_context)

        assert not result.succeeded
        assert result.error.kind is ErrorKind.VALIDATION
        assert result.error.details["missing"] == ["paperCopyRightAcknowledged"]
        assert await db_session.scalar(select(func.count()).select_from(ESignConsent)) == 0
        assert await db_session.scalar(select(func.count()).select_from(ContractAuditEvent)) == 0

    @pytest.mark.asyncio
    async def test_unknown_signer_is_not_found(self, db_session, contract_factory, request_context):
        contract, _ = await contract_factory()
        result = await build_ledger(db_session).record_consent(
            contract.id, "no-such-signer", ALL_ACKNOWLEDGED, context=request_context
        )
        assert result.error.kind is ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_signer_of_another_contract_is_not_found(self, db_session, contract_factory, request_context):
        contract, _ = await contract_factory()
        _, other_signers = await contract_factory(title="Other", signers=(("Bob", "bob@example.com"),))
        result = await build_ledger(db_session).record_consent(
            contract.id, other_signers[0].id, ALL_ACKNOWLEDGED, context=request_context
        )
        assert result.error.kind is ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_unknown_disclosure_version_rejected(self, db_session, contract_factory, request_context):
        contract, signers = await contract_factory()
        result = await build_ledger(db_session).record_consent(
            contract.id, signers[0].id, ALL_ACKNOWLEDGED, context=request_context, disclosure_version="9.9"
        )
        assert result.error.kind is ErrorKind.VALIDATION


class TestLatestConsent:
    """Re-consent appends; the newest row wins."""

    @pytest.mark.asyncio
    async def test_reconsent_appends_and_latest_is_returned(self, db_session, contract_factory, request_context):
        contract, signers = await contract_factory()
        ledger = build_ledger(db_session)

        first = await ledger.record_consent(contract.id, signers[0].id, ALL_ACKNOWLEDGED, context=request_context)
        second = await ledger.record_consent(contract.id, signers[0].id, ALL_ACKNOWLEDGED, context=request_context)

        consents = await ledger.list_consents(contract.id, signers[0].id)
        assert [consent.id for consent in consents] == [first.value.id, second.value.id]
        latest = await ledger.get_latest_consent(contract.id, signers[0].id)
        assert latest.id == second.value.id

    @pytest.mark.asyncio
    async def test_no_consent_returns_none(self, db_session, contract_factory):
        contract, signers = await contract_factory()
        assert await build_ledger(db_session).get_latest_consent(contract.id, signers[0].id) is None


def test_missing_lists_every_false_flag():
    acks = ConsentAcknowledgments(hardware_software=False, paper_copy_right=True, consent_withdrawal=False)
    assert acks.missing() == ["hardwareSoftwareAcknowledged", "consentWithdrawalAcknowledged"]
