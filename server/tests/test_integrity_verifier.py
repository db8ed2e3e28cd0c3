import pytest

from esign_engine.models import Contract
from esign_engine.services.audit_trail import AuditTrailRecorder
from esign_engine.services.consent_ledger import ConsentAcknowledgments, ConsentLedger
from esign_engine.services.document_hasher import hash_document
from esign_engine.services.integrity_verifier import (
    MESSAGE_NO_SIGNATURES,
    MESSAGE_TAMPERED,
    MESSAGE_VERIFIED,
    IntegrityVerifier,
)
from esign_engine.services.results import ErrorKind
from esign_engine.services.signing_coordinator import SignRequest


async def sign_contract(session, coordinator, contract_id, signer_id, context):
    ledger = ConsentLedger(session, AuditTrailRecorder(session), disclosure_version="1.0")
    acks = ConsentAcknowledgments(hardware_software=True, paper_copy_right=True, consent_withdrawal=True)
    await ledger.record_consent(contract_id, signer_id, acks, context=context)
    result = await coordinator.sign(
        SignRequest(
            contract_id=contract_id,
            signer_id=signer_id,
            signature_data="signature-image",
            typed_name="Jane Doe",
            intent_confirmed=True,
        ),
        context=context,
    )
    assert result.succeeded
    return result.value


class TestVerify:
    @pytest.mark.asyncio
    async def test_zero_signatures(self, db_session, contract_factory):
        contract, _ = await contract_factory()

        result = await IntegrityVerifier(db_session).verify(contract.id)

        report = result.value
        assert report.verified is False
        assert report.message == MESSAGE_NO_SIGNATURES
        assert report.current_hash == hash_document(contract.content)
        assert report.results == []

    @pytest.mark.asyncio
    async def test_untouched_content_verifies(
        self, db_session, contract_factory, coordinator_factory, request_context
    ):
        contract, signers = await contract_factory()
        outcome = await sign_contract(
            db_session, coordinator_factory(db_session), contract.id, signers[0].id, request_context
        )

        report = (await IntegrityVerifier(db_session).verify(contract.id)).value

        assert report.verified is True
        assert report.message == MESSAGE_VERIFIED
        assert [check.signature_id for check in report.results] == [outcome.signature.id]

    @pytest.mark.asyncio
    async def test_tampered_content_fails(self, db_session, contract_factory, coordinator_factory, request_context):
        contract, signers = await contract_factory()
        await sign_contract(db_session, coordinator_factory(db_session), contract.id, signers[0].id, request_context)

        stored = await db_session.get(Contract, contract.id)
        stored.content = stored.content + " Amended: fee doubled."
        await db_session.flush()

        report = (await IntegrityVerifier(db_session).verify(contract.id)).value

        assert report.verified is False
        assert report.message == MESSAGE_TAMPERED
        assert report.results[0].verified is False
        assert report.results[0].stored_hash != report.current_hash

    @pytest.mark.asyncio
    async def test_unknown_contract(self, db_session):
        result = await IntegrityVerifier(db_session).verify("missing")
        assert result.error.kind is ErrorKind.NOT_FOUND
