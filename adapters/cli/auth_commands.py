"""
인증 관련 CLI 명령어

Gmail OAuth 2.0 인증 플로우를 처리하는 CLI 명령어들입니다.
"""

import asyncio

import typer
from rich.panel import Panel
from rich.prompt import Confirm

from core.domain.entities import FailureReason
from adapters.cli.common import cli_session, console

auth_app = typer.Typer(help="인증 관련 명령어")


@auth_app.command("url")
def authorization_url(
    user_id: int = typer.Option(..., "--user-id", "-u", help="사용자 ID"),
):
    """인증 URL을 생성합니다."""

    async def _url():
        async with cli_session() as (factory, session):
            token_manager = factory.create_token_manager(session)

            result = await token_manager.authorize(user_id)
            if result.error == FailureReason.USER_NOT_FOUND:
                console.print(f"[red]오류: 사용자를 찾을 수 없습니다: {user_id}[/red]")
                raise typer.Exit(1)

            if result.value.authorized:
                console.print("[yellow]이미 인증된 사용자입니다. 다시 인증하면 토큰이 교체됩니다.[/yellow]")

            url = token_manager.build_authorization_url(result.value.client, state=token_manager.issue_state(user_id))
            console.print(Panel(url, title="아래 URL을 브라우저에서 열고 권한을 승인하세요"))
            console.print("승인 후 받은 코드로 [bold]auth exchange[/bold] 명령을 실행하세요.")

    asyncio.run(_url())


@auth_app.command("exchange")
def exchange_code(
    user_id: int = typer.Option(..., "--user-id", "-u", help="사용자 ID"),
    code: str = typer.Option(..., "--code", "-c", help="인증 코드"),
):
    """인증 코드를 토큰으로 교환하고 저장합니다."""

    async def _exchange():
        async with cli_session() as (factory, session):
            token_manager = factory.create_token_manager(session)

            result = await token_manager.exchange_code(user_id, token_manager.new_client(), code)
            if not result.ok:
                console.print(f"[red]✗ 토큰 교환 실패: {result.detail}[/red]")
                raise typer.Exit(1)

            console.print("[green]✓ 토큰이 저장되었습니다![/green]")

            checkpoint = await factory.create_sync_orchestrator(session).ensure_checkpoint(user_id)
            if checkpoint.ok:
                console.print(f"동기화 시작 historyId: {checkpoint.value}")
            else:
                console.print(f"[yellow]체크포인트 초기화 실패: {checkpoint.error.value} (sync bootstrap으로 다시 시도하세요)[/yellow]")

    asyncio.run(_exchange())


@auth_app.command("status")
def auth_status(
    user_id: int = typer.Option(..., "--user-id", "-u", help="사용자 ID"),
):
    """저장된 토큰 상태를 조회합니다."""

    async def _status():
        async with cli_session() as (factory, session):
            result = await factory.create_token_manager(session).authorize(user_id)

            if result.error == FailureReason.USER_NOT_FOUND:
                console.print(f"[red]오류: 사용자를 찾을 수 없습니다: {user_id}[/red]")
                raise typer.Exit(1)

            if result.error == FailureReason.CREDENTIAL_CORRUPT:
                console.print("[red]✗ 저장된 토큰이 손상되었습니다. 다시 인증하세요.[/red]")
                raise typer.Exit(1)

            handle = result.value
            if not handle.authorized:
                console.print("[yellow]인증되지 않은 사용자입니다.[/yellow]")
                return

            credential = handle.client.credential
            console.print("[green]✓ 인증됨[/green]")
            console.print(f"권한 범위: {credential.scope}")
            console.print(f"만료 시간: {credential.expiry or 'N/A'}")
            console.print(f"만료 여부: {credential.is_expired()}")
            console.print(f"갱신 가능 여부: {credential.can_refresh()}")

    asyncio.run(_status())


@auth_app.command("revoke")
def revoke_token(
    user_id: int = typer.Option(..., "--user-id", "-u", help="사용자 ID"),
    force: bool = typer.Option(False, "--force", "-f", help="확인 없이 강제 실행"),
):
    """저장된 토큰을 폐기합니다."""
    if not force and not Confirm.ask(f"사용자 {user_id}의 토큰을 폐기하시겠습니까?"):
        console.print("[yellow]취소되었습니다.[/yellow]")
        return

    async def _revoke():
        async with cli_session() as (factory, session):
            if not await factory.create_token_manager(session).revoke(user_id):
                console.print(f"[red]✗ 토큰 폐기 실패: {user_id}[/red]")
                raise typer.Exit(1)

            console.print("[green]✓ 토큰이 폐기되었습니다.[/green]")

    asyncio.run(_revoke())
