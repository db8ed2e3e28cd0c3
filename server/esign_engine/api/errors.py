from typing import NoReturn

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError

from esign_engine.services.results import ErrorKind, ServiceError

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONSENT_REQUIRED: status.HTTP_400_BAD_REQUEST,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
}

# Postgres reports the constraint name, SQLite the constrained columns
DUPLICATE_SIGNATURE_MARKERS = ("uq_signature_signer", "contract_signatures.contract_id")


def raise_service_error(error: ServiceError) -> NoReturn:
    raise HTTPException(
        status_code=STATUS_BY_KIND[error.kind],
        detail={"code": error.kind.value, "message": error.message, **error.details},
    )


def is_duplicate_signature(exc: IntegrityError) -> bool:
    text = str(exc.orig)
    return any(marker in text for marker in DUPLICATE_SIGNATURE_MARKERS)


def signing_conflict(exc: IntegrityError) -> HTTPException:
    if is_duplicate_signature(exc):
        message = "Signer has already signed this contract"
    else:
        message = "Signing conflicted with a concurrent request; retry the request"
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail={"code": ErrorKind.CONFLICT.value, "message": message},
    )
