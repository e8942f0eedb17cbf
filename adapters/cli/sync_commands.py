"""
동기화 CLI 명령어

푸시 알림 없이 수동으로 증분 동기화를 실행하거나 이력을 조회합니다.
"""

import asyncio

import typer
from rich.table import Table

from adapters.cli.common import cli_session, console

app = typer.Typer(name="sync", help="메일 동기화 명령어")


@app.command("run")
def run_sync(
    email: str = typer.Option(..., "--email", "-e", help="Gmail 주소"),
    history_id: int = typer.Option(..., "--history-id", help="성공 시 기록할 새 체크포인트"),
):
    """마지막 체크포인트 이후의 메일을 동기화합니다."""

    async def _run():
        async with cli_session() as (factory, session):
            result = await factory.create_sync_orchestrator(session).sync(email, history_id)

            if not result.ok:
                console.print(f"[red]✗ 동기화 실패: {result.error.value} ({result.detail})[/red]")
                raise typer.Exit(1)

            mails = result.value
            console.print(f"[green]✓ 동기화 완료: {len(mails)}개 메시지[/green]")

            for index, mail in enumerate(mails, start=1):
                preview = mail.message[:80].replace("\n", " ")
                console.print(f"{index}. {preview}")
                for attachment in mail.attachments:
                    console.print(f"   📎 {attachment.name} ({len(attachment.data)} bytes)")

    asyncio.run(_run())


@app.command("bootstrap")
def bootstrap(
    email: str = typer.Option(..., "--email", "-e", help="Gmail 주소"),
):
    """메일함의 현재 historyId를 시작 체크포인트로 저장합니다."""

    async def _bootstrap():
        async with cli_session() as (factory, session):
            result = await factory.create_sync_orchestrator(session).bootstrap_checkpoint(email)

            if not result.ok:
                console.print(f"[red]✗ 체크포인트 초기화 실패: {result.error.value} ({result.detail})[/red]")
                raise typer.Exit(1)

            console.print(f"[green]✓ 체크포인트 저장: {result.value}[/green]")

    asyncio.run(_bootstrap())


@app.command("history")
def sync_history(
    email: str = typer.Option(..., "--email", "-e", help="Gmail 주소"),
    limit: int = typer.Option(10, help="조회할 이력 수"),
):
    """동기화 이력을 조회합니다."""

    async def _history():
        async with cli_session() as (factory, session):
            runs = await factory.create_sync_orchestrator(session).get_sync_runs(email, limit=limit)

            if not runs:
                console.print("[yellow]동기화 이력이 없습니다.[/yellow]")
                return

            table = Table(title=f"{email} 동기화 이력")
            table.add_column("시작", style="cyan")
            table.add_column("상태", style="green")
            table.add_column("historyId", style="magenta")
            table.add_column("메시지", style="blue")
            table.add_column("실패 사유", style="red")

            for run in runs:
                table.add_row(
                    run.started_at.strftime("%Y-%m-%d %H:%M:%S"),
                    run.state.value,
                    f"{run.start_history_id} → {run.committed_history_id or '-'}",
                    str(run.message_count),
                    run.failure_reason.value if run.failure_reason else "",
                )

            console.print(table)

    asyncio.run(_history())
