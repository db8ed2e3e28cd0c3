from datetime import timedelta

import pytest

from esign_engine.core.timeutils import utcnow
from esign_engine.models import AuditEventType, ContractAuditEvent
from esign_engine.services.audit_trail import AuditTrailRecorder
from esign_engine.services.consent_ledger import ConsentAcknowledgments, ConsentLedger
from esign_engine.services.context import RequestContext
from esign_engine.services.results import ErrorKind
from esign_engine.services.review_tracker import ReviewTracker
from esign_engine.services.signing_coordinator import SignRequest


class TestAppend:
    @pytest.mark.asyncio
    async def test_append_captures_context(self, db_session, contract_factory, request_context):
        contract, _ = await contract_factory()
        event = await AuditTrailRecorder(db_session).append(
            contract.id, "review_started", context=request_context, details={"signerId": "s-1"}
        )
        assert event.event_type is AuditEventType.REVIEW_STARTED
        assert event.actor_id == "user-123"
        assert event.ip_address == "203.0.113.7"
        assert event.details == {"signerId": "s-1"}

    @pytest.mark.asyncio
    async def test_default_context_is_system(self, db_session, contract_factory):
        contract, _ = await contract_factory()
        event = await AuditTrailRecorder(db_session).append(
            contract.id, AuditEventType.CONSENT_GIVEN, context=RequestContext()
        )
        assert event.actor_id == "system"
        assert event.user_agent == "unknown"
        assert event.details == {}

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "contract_id,event_type,details",
        [
            ("", AuditEventType.CONSENT_GIVEN, None),
            ("c-1", "not_an_event", None),
            ("c-1", AuditEventType.CONSENT_GIVEN, ["not", "a", "mapping"]),
        ],
    )
    async def test_malformed_events_rejected(self, db_session, request_context, contract_id, event_type, details):
        with pytest.raises(ValueError):
            await AuditTrailRecorder(db_session).append(
                contract_id, event_type, context=request_context, details=details
            )


class TestOrdering:
    @pytest.mark.asyncio
    async def test_events_ordered_by_occurrence_not_insertion(self, db_session, contract_factory):
        contract, _ = await contract_factory()
        now = utcnow()
        late = ContractAuditEvent(
            contract_id=contract.id, event_type=AuditEventType.DOCUMENT_SIGNED, occurred_at=now
        )
        early = ContractAuditEvent(
            contract_id=contract.id, event_type=AuditEventType.CONSENT_GIVEN, occurred_at=now - timedelta(minutes=5)
        )
        db_session.add_all([late, early])
        await db_session.flush()

        recorder = AuditTrailRecorder(db_session)
        ascending = await recorder.list_events(contract.id)
        descending = await recorder.list_events(contract.id, descending=True)

        assert [event.id for event in ascending] == [early.id, late.id]
        assert [event.id for event in descending] == [late.id, early.id]


class TestAssembleTrail:
    @pytest.mark.asyncio
    async def test_trail_covers_every_evidence_kind(
        self, db_session, contract_factory, coordinator_factory, request_context
    ):
        contract, signers = await contract_factory()
        signer_id = signers[0].id
        recorder = AuditTrailRecorder(db_session)
        ledger = ConsentLedger(db_session, recorder, disclosure_version="1.0")
        tracker = ReviewTracker(db_session, recorder)

        await ledger.record_consent(
            contract.id,
            signer_id,
            ConsentAcknowledgments(hardware_software=True, paper_copy_right=True, consent_withdrawal=True),
            context=request_context,
        )
        await tracker.start_review(contract.id, signer_id, context=request_context)
        await tracker.update_progress(contract.id, signer_id, context=request_context, scroll_percentage=100)
        await tracker.complete_review(contract.id, signer_id, context=request_context)
        signed = await coordinator_factory(db_session).sign(
            SignRequest(
                contract_id=contract.id,
                signer_id=signer_id,
                signature_data="signature-image",
                typed_name="Jane Doe",
                intent_confirmed=True,
            ),
            context=request_context,
        )
        assert signed.succeeded

        trail = (await recorder.assemble_trail(contract.id)).value

        assert len(trail.consents) == 1
        assert len(trail.reviews) == 1
        assert len(trail.signatures) == 1
        assert len(trail.document_hashes) == 1
        assert len(trail.intent_confirmations) == 1
        assert len(trail.certificates) == 1
        assert [event.event_type for event in trail.events] == [
            AuditEventType.CONSENT_GIVEN,
            AuditEventType.REVIEW_STARTED,
            AuditEventType.REVIEW_PROGRESS,
            AuditEventType.REVIEW_COMPLETED,
            AuditEventType.DOCUMENT_SIGNED,
        ]

    @pytest.mark.asyncio
    async def test_unknown_contract(self, db_session):
        result = await AuditTrailRecorder(db_session).assemble_trail("missing")
        assert result.error.kind is ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_empty_trail_for_unsigned_contract(self, db_session, contract_factory):
        contract, _ = await contract_factory()
        trail = (await AuditTrailRecorder(db_session).assemble_trail(contract.id)).value
        assert trail.events == []
        assert trail.signatures == []
