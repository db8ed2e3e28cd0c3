"""
Operator CLI for the ESIGN compliance engine
"""

import asyncio
from pathlib import Path
from typing import Optional

import click
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from esign_engine.core.config import get_settings
from esign_engine.core.security import create_access_token
from esign_engine.schemas.audit import AuditTrailContent, AuditTrailResponse
from esign_engine.schemas.signing import VerificationResponse, VerificationResultRead
from esign_engine.services.audit_trail import AuditTrailRecorder
from esign_engine.services.integrity_verifier import IntegrityVerifier


async def _run_with_session(database_url: str, operation):
    engine = create_async_engine(database_url)
    try:
        factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
        async with factory() as session:
            return await operation(session)
    finally:
        await engine.dispose()


@click.group()
@click.option("--database-url", envvar="DATABASE_URL", default=None, help="Override the configured database URL")
@click.pass_context
def cli(ctx: click.Context, database_url: Optional[str]):
    """ESIGN compliance engine admin tool"""
    ctx.ensure_object(dict)
    ctx.obj["database_url"] = database_url or get_settings().database_url


@cli.command()
@click.argument("contract_id")
@click.pass_context
def verify(ctx: click.Context, contract_id: str):
    """Check a contract's content against the hashes captured at signing"""

    async def operation(session: AsyncSession):
        return await IntegrityVerifier(session).verify(contract_id)

    result = asyncio.run(_run_with_session(ctx.obj["database_url"], operation))
    if not result.succeeded:
        raise click.ClickException(result.error.message)

    report = result.value
    body = VerificationResponse(
        contract_id=report.contract_id,
        verified=report.verified,
        message=report.message,
        current_hash=report.current_hash,
        verification_results=[VerificationResultRead.model_validate(check) for check in report.results],
    )
    click.echo(body.model_dump_json(by_alias=True, indent=2))
    if not report.verified:
        ctx.exit(1)


@cli.command("export-trail")
@click.argument("contract_id")
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), help="Write JSON to this file")
@click.pass_context
def export_trail(ctx: click.Context, contract_id: str, output: Optional[Path]):
    """Export the full audit trail of a contract as JSON"""

    async def operation(session: AsyncSession):
        result = await AuditTrailRecorder(session).assemble_trail(contract_id)
        if not result.succeeded:
            return result, None
        trail = result.value
        # Serialize while the session is open
        body = AuditTrailResponse(
            contract_id=trail.contract_id,
            audit_trail=AuditTrailContent.model_validate(trail),
            generated_at=trail.generated_at,
        ).model_dump_json(by_alias=True, indent=2)
        return result, body

    result, body = asyncio.run(_run_with_session(ctx.obj["database_url"], operation))
    if not result.succeeded:
        raise click.ClickException(result.error.message)

    if output is None:
        click.echo(body)
    else:
        output.write_text(body, encoding="utf-8")
        click.echo(f"Audit trail for {contract_id} written to {output}")


@cli.command("issue-token")
@click.argument("subject")
@click.option("--expires-minutes", type=int, default=None, help="Token lifetime in minutes")
def issue_token(subject: str, expires_minutes: Optional[int]):
    """Issue a bearer token for SUBJECT (service accounts, local testing)"""
    click.echo(create_access_token(subject, expires_minutes=expires_minutes))


if __name__ == "__main__":
    cli()
