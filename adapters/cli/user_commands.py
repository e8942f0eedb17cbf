"""
사용자 관리 CLI 명령어

동기화 대상 사용자 등록과 조회를 위한 CLI 명령어입니다.
"""

import asyncio

import typer
from rich.table import Table

from core.domain.entities import User
from adapters.cli.common import cli_session, console

# CLI 앱 생성
app = typer.Typer(name="user", help="사용자 관리 명령어")


@app.command("add")
def add_user(
    user_id: int = typer.Option(..., "--id", help="사용자 ID (메신저 사용자 식별자)"),
    email: str = typer.Option(..., "--email", "-e", help="Gmail 주소"),
    history_id: int = typer.Option(0, "--history-id", help="시작 체크포인트"),
):
    """새로운 사용자를 등록합니다."""

    async def _add():
        try:
            async with cli_session() as (factory, session):
                repository = factory.create_user_repository(session)

                if await repository.find_by_email(email):
                    console.print(f"[red]오류: 이미 등록된 이메일입니다: {email}[/red]")
                    raise typer.Exit(1)

                user = await repository.create(User(id=user_id, email=email, history_id=history_id))

                console.print("[green]✓ 사용자가 등록되었습니다![/green]")
                console.print(f"사용자 ID: {user.id}")
                console.print(f"이메일: {user.email}")
                console.print(f"체크포인트: {user.history_id}")

        except typer.Exit:
            raise
        except Exception as e:
            console.print(f"[red]오류: {str(e)}[/red]")
            raise typer.Exit(1)

    asyncio.run(_add())


@app.command("list")
def list_users(
    limit: int = typer.Option(20, help="조회할 사용자 수"),
    skip: int = typer.Option(0, help="건너뛸 사용자 수"),
):
    """등록된 사용자 목록을 조회합니다."""

    async def _list():
        try:
            async with cli_session() as (factory, session):
                users = await factory.create_user_repository(session).list_all(skip=skip, limit=limit)

                if not users:
                    console.print("[yellow]등록된 사용자가 없습니다.[/yellow]")
                    return

                table = Table(title="사용자 목록")
                table.add_column("ID", style="cyan")
                table.add_column("이메일", style="green")
                table.add_column("인증", style="blue")
                table.add_column("체크포인트", style="magenta")

                for user in users:
                    table.add_row(
                        str(user.id),
                        user.email,
                        "✓" if user.is_authorized() else "✗",
                        str(user.history_id),
                    )

                console.print(table)

        except Exception as e:
            console.print(f"[red]오류: {str(e)}[/red]")
            raise typer.Exit(1)

    asyncio.run(_list())


@app.command("show")
def show_user(
    email: str = typer.Option(..., "--email", "-e", help="Gmail 주소"),
):
    """사용자 정보를 조회합니다."""

    async def _show():
        try:
            async with cli_session() as (factory, session):
                user = await factory.create_user_repository(session).find_by_email(email)
                if not user:
                    console.print(f"[red]오류: 사용자를 찾을 수 없습니다: {email}[/red]")
                    raise typer.Exit(1)

                console.print(f"[bold]사용자 정보[/bold]")
                console.print(f"사용자 ID: {user.id}")
                console.print(f"이메일: {user.email}")
                console.print(f"인증 여부: {user.is_authorized()}")
                console.print(f"체크포인트: {user.history_id}")
                console.print(f"생성 시간: {user.created_at}")

        except typer.Exit:
            raise
        except Exception as e:
            console.print(f"[red]오류: {str(e)}[/red]")
            raise typer.Exit(1)

    asyncio.run(_show())
