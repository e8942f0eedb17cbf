"""
FastAPI 인증 라우터

Gmail Authorization Code Flow 시작과 콜백 처리를 위한 웹 인터페이스입니다.
state에는 서명된 사용자 ID를 담아 콜백에서 토큰을 저장할 사용자를 식별합니다.
"""

import html
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import HTMLResponse, RedirectResponse

from core.domain.entities import FailureReason
from core.usecases.authentication import TokenManager
from core.usecases.mail_sync import SyncOrchestrator
from adapters.logger import create_logger
from adapters.web.dependencies import get_sync_orchestrator, get_token_manager

router = APIRouter(prefix="/auth", tags=["authentication"])
logger = create_logger("auth_router")

_PAGE = """
<!DOCTYPE html>
<html>
<head>
    <title>{title}</title>
    <style>
        body {{ font-family: Arial; padding: 40px; max-width: 600px; margin: 0 auto; }}
        .box {{ padding: 20px; border-radius: 8px; {style} }}
    </style>
</head>
<body>
    <h1>{title}</h1>
    <div class="box">{body}</div>
</body>
</html>
"""


def _page(title: str, body: str, success: bool) -> str:
    style = "color: #2e7d32; background: #e8f5e9;" if success else "color: #d32f2f; background: #ffebee;"
    return _PAGE.format(title=title, body=body, style=style)


@router.get("/start")
async def start_auth(
    user_id: int = Query(..., description="사용자 ID"),
    token_manager: TokenManager = Depends(get_token_manager),
):
    """인증 플로우를 시작합니다."""
    logger.info(f"인증 시작 요청: user_id={user_id}")

    result = await token_manager.authorize(user_id)
    if result.error == FailureReason.USER_NOT_FOUND:
        raise HTTPException(status_code=404, detail="사용자를 찾을 수 없습니다")

    if result.value.authorized:
        logger.info(f"이미 인증된 사용자: {user_id}")

    auth_url = token_manager.build_authorization_url(
        result.value.client, state=token_manager.issue_state(user_id)
    )
    return RedirectResponse(url=auth_url)


@router.get("/callback")
async def auth_callback(
    code: Optional[str] = Query(None, description="인증 코드"),
    state: Optional[str] = Query(None, description="State 값 (서명된 사용자 ID)"),
    error: Optional[str] = Query(None, description="오류 코드"),
    token_manager: TokenManager = Depends(get_token_manager),
    orchestrator: SyncOrchestrator = Depends(get_sync_orchestrator),
):
    """Authorization Code Flow 콜백을 처리합니다."""
    logger.info(f"인증 콜백 수신: error={error}")

    if error:
        logger.error(f"인증 오류: {error}")
        return HTMLResponse(
            content=_page("인증 오류", f"<p><strong>오류 코드:</strong> {html.escape(error)}</p>", success=False),
            status_code=400,
        )

    if not code or not state:
        raise HTTPException(status_code=400, detail="필수 파라미터가 누락되었습니다")

    user_id = token_manager.verify_state(state)
    if user_id is None:
        raise HTTPException(status_code=400, detail="유효하지 않은 state입니다")

    result = await token_manager.exchange_code(user_id, token_manager.new_client(), code)
    if not result.ok:
        logger.error(f"토큰 교환 실패: {user_id}, {result.detail}")
        return HTMLResponse(
            content=_page("인증 실패", "<p>토큰을 발급받거나 저장하지 못했습니다.</p>", success=False),
            status_code=502,
        )

    logger.info(f"토큰 발급 완료: user_id={user_id}")

    checkpoint = await orchestrator.ensure_checkpoint(user_id)
    if not checkpoint.ok:
        # sync bootstrap 명령으로 다시 초기화할 수 있음
        logger.warning(f"체크포인트 초기화 실패: {user_id}, {checkpoint.error.value}")
        body = "<p>Gmail 인증이 완료되었지만 동기화 시작 지점을 저장하지 못했습니다.</p>"
    else:
        body = f"<p>Gmail 인증이 성공적으로 완료되었습니다. (historyId={checkpoint.value})</p>"

    return HTMLResponse(content=_page("인증 성공!", body, success=True))
