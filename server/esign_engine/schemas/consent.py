from datetime import datetime

from pydantic import Field, StrictBool

from esign_engine.schemas.common import ORMModel, RequestModel


class DisclosureRead(ORMModel):
    version: str
    text: str
    hash: str


class ConsentCreate(RequestModel):
    signer_id: str = Field(min_length=1, max_length=36)
    hardware_software_acknowledged: StrictBool
    paper_copy_right_acknowledged: StrictBool
    consent_withdrawal_acknowledged: StrictBool


class ConsentReceipt(ORMModel):
    id: str
    consent_timestamp: datetime
    disclosure_version: str


class ConsentRead(ORMModel):
    id: str
    contract_id: str
    signer_id: str
    consent_given: bool
    hardware_software_acknowledged: bool
    paper_copy_right_acknowledged: bool
    consent_withdrawal_acknowledged: bool
    disclosure_version: str
    disclosure_text_hash: str
    consent_timestamp: datetime
    ip_address: str
    user_agent: str


class ConsentStatus(ORMModel):
    has_consent: bool
    consent: ConsentRead | None = None
