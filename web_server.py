"""
FastAPI 웹 서버

Gmail 인증 콜백과 Pub/Sub 푸시 알림을 받는 웹 인터페이스를 제공합니다.
"""

import uvicorn
from fastapi import FastAPI
from fastapi.responses import HTMLResponse, JSONResponse

from adapters.web.auth_routes import router as auth_router
from adapters.web.push_routes import router as push_router
from adapters.db.database import get_database_adapter, initialize_database
from adapters.factory import initialize_adapter_factory
from adapters.logger import create_logger
from config.adapters import get_config

# FastAPI 앱 생성
app = FastAPI(
    title="Gmail 증분 동기화 서비스",
    description="OAuth 2.0 인증과 Gmail 푸시 알림 수신을 위한 웹 인터페이스",
    version="1.0.0",
)

# 로거 설정
logger = create_logger("web_server")

# 라우터 등록
app.include_router(auth_router)
app.include_router(push_router)


@app.on_event("startup")
async def startup_event():
    """서버 시작 시 실행되는 이벤트"""
    logger.info("FastAPI 웹 서버 시작")

    config = get_config()
    initialize_adapter_factory(config)

    # 데이터베이스 초기화
    db_adapter = initialize_database(config)
    await db_adapter.initialize()
    await db_adapter.create_tables()

    logger.info(f"환경: {config.get_environment()}")
    logger.info(f"데이터베이스: {config.get_database_url()}")
    logger.info("웹 서버 준비 완료")


@app.on_event("shutdown")
async def shutdown_event():
    """서버 종료 시 실행되는 이벤트"""
    logger.info("FastAPI 웹 서버 종료")
    await get_database_adapter().close()


@app.get("/", response_class=HTMLResponse)
async def root():
    """홈페이지"""
    return """
    <!DOCTYPE html>
    <html>
    <head><title>Gmail 증분 동기화 서비스</title></head>
    <body style="font-family: Arial; padding: 40px; max-width: 600px; margin: 0 auto;">
        <h1>Gmail 증분 동기화 서비스</h1>
        <p>인증을 시작하려면 <code>/auth/start?user_id=...</code> 로 이동하세요.</p>
    </body>
    </html>
    """


@app.get("/health")
async def health_check():
    """헬스 체크 (데이터베이스 연결 포함)"""
    if not await get_database_adapter().ping():
        return JSONResponse(content={"status": "unhealthy", "database": "unreachable"}, status_code=503)
    return {"status": "healthy", "database": "ok"}


def main():
    """웹 서버를 실행합니다."""
    web_config = get_config().get_web_config()
    uvicorn.run(
        "web_server:app",
        host=web_config["host"],
        port=web_config["port"],
        workers=web_config["workers"],
    )


if __name__ == "__main__":
    main()
