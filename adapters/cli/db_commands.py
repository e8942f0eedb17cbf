"""
데이터베이스 관리 CLI 명령어

데이터베이스 초기화, 리셋, 테이블 조회를 위한 CLI 명령어입니다.
"""

import asyncio
import typer
from rich.console import Console
from rich.table import Table
from sqlalchemy import text

from adapters.db.database import initialize_database
from config.adapters import get_config

# CLI 앱 생성
app = typer.Typer(name="db", help="데이터베이스 관리 명령어")
console = Console()


@app.command("init")
def init_database():
    """데이터베이스를 초기화합니다."""

    async def _init():
        try:
            console.print("[blue]데이터베이스 초기화 시작...[/blue]")

            config = get_config()
            db_adapter = initialize_database(config)

            await db_adapter.initialize()
            await db_adapter.create_tables()

            console.print("[green]✓ 데이터베이스 초기화가 완료되었습니다![/green]")

            await db_adapter.close()

        except Exception as e:
            console.print(f"[red]오류: {str(e)}[/red]")
            raise typer.Exit(1)

    asyncio.run(_init())


@app.command("reset")
def reset_database(
    force: bool = typer.Option(False, "--force", "-f", help="확인 없이 강제 실행"),
):
    """데이터베이스를 리셋합니다. (모든 데이터 삭제)"""

    if not force and not typer.confirm("모든 데이터가 삭제됩니다. 계속하시겠습니까?"):
        console.print("[yellow]취소되었습니다.[/yellow]")
        return

    async def _reset():
        try:
            console.print("[blue]데이터베이스 리셋 시작...[/blue]")

            config = get_config()
            db_adapter = initialize_database(config)

            # 테이블 삭제 후 재생성
            await db_adapter.initialize()
            await db_adapter.drop_tables()
            await db_adapter.create_tables()

            console.print("[green]✓ 데이터베이스 리셋이 완료되었습니다![/green]")

            await db_adapter.close()

        except Exception as e:
            console.print(f"[red]오류: {str(e)}[/red]")
            raise typer.Exit(1)

    asyncio.run(_reset())


@app.command("users")
def show_users():
    """사용자 테이블의 내용을 조회합니다."""

    async def _show_users():
        try:
            console.print("[blue]사용자 테이블 조회 중...[/blue]")

            config = get_config()
            db_adapter = initialize_database(config)
            await db_adapter.initialize()

            async with db_adapter.get_session() as session:
                result = await session.execute(
                    text("SELECT id, email, token, history_id, updated_at FROM users")
                )
                users = result.fetchall()

                if not users:
                    console.print("[yellow]사용자 테이블이 비어있습니다.[/yellow]")
                    await db_adapter.close()
                    return

                table = Table(title="사용자 테이블")
                table.add_column("ID", style="cyan")
                table.add_column("이메일", style="green")
                table.add_column("토큰", style="red")
                table.add_column("historyId", style="magenta")
                table.add_column("업데이트일", style="dim")

                for user in users:
                    # 토큰은 암호화되어 있으므로 저장 여부만 표시
                    has_token = "있음" if user.token and user.token.strip() else "없음"
                    table.add_row(
                        str(user.id),
                        user.email,
                        has_token,
                        str(user.history_id),
                        str(user.updated_at) if user.updated_at else "-",
                    )

                console.print(table)

            await db_adapter.close()

        except Exception as e:
            console.print(f"[red]오류: {str(e)}[/red]")
            raise typer.Exit(1)

    asyncio.run(_show_users())


if __name__ == "__main__":
    app()
