"""
Domain 패키지

도메인 엔티티, 값 객체, 비즈니스 규칙을 정의합니다.
외부 의존성 없이 순수한 비즈니스 로직만 포함합니다.

주요 엔티티:
- User: 메일함 사용자와 저장된 토큰, 체크포인트(historyId)
- Credential: OAuth 토큰 정보
- ChangeEntry: Gmail history 레코드
- MessageRecord: 가져온 메시지와 MIME 파트 트리
- MailObject: 하위 전달용으로 정규화된 메시지
- SyncRun: 동기화 실행 이력
"""
