from __future__ import annotations

from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from esign_engine.models.contract import Contract, ContractSigner


async def get_contract(session: AsyncSession, contract_id: str, *, for_update: bool = False) -> Contract | None:
    query = select(Contract).where(Contract.id == contract_id)
    if for_update:
        query = query.with_for_update()
    result = await session.execute(query)
    return result.scalars().first()


async def get_signer(session: AsyncSession, contract_id: str, signer_id: str) -> ContractSigner | None:
    """Return the signer only if it belongs to the given contract."""
    result = await session.execute(
        select(ContractSigner).where(
            ContractSigner.id == signer_id,
            ContractSigner.contract_id == contract_id,
        )
    )
    return result.scalars().first()


async def list_signers(session: AsyncSession, contract_id: str, *, for_update: bool = False) -> Sequence[ContractSigner]:
    query = select(ContractSigner).where(ContractSigner.contract_id == contract_id).order_by(ContractSigner.created_at)
    if for_update:
        query = query.with_for_update()
    result = await session.execute(query)
    return result.scalars().all()
