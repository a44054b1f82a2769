"""인증 협력자 Service - 로그인/로그아웃/세션 복구와 진행 동기화 연결

인증 프로토콜(지갑 서명 등)은 authenticator 콜백에 위임한다.
- 로그인 성공 직후: 서버 진행 로드 1회
- 로그아웃 직전: 서버 저장 1회 (실패해도 로그아웃은 진행)
"""

import logging
from typing import Any, Awaitable, Callable, Optional

from src.core.event_bus import EventBus, GameEvent
from src.core.event_types import EventTypes
from src.services.auth_session import AuthSession, LoginState
from src.services.progression_service import ProgressionService

logger = logging.getLogger(__name__)

# credentials → identity. 실패 시 예외.
Authenticator = Callable[[Any], Awaitable[str]]


async def _passthrough(credentials: Any) -> str:
    return str(credentials)


class AuthService:
    """로그인 상태 전이 + 진행 로드/저장 트리거"""

    def __init__(
        self,
        session: AuthSession,
        progression: ProgressionService,
        event_bus: EventBus,
        authenticator: Optional[Authenticator] = None,
    ):
        self._session = session
        self._progression = progression
        self._bus = event_bus
        self._authenticator = authenticator or _passthrough

    @property
    def login_state(self) -> LoginState:
        return self._session.login_state

    @property
    def identity(self) -> Optional[str]:
        return self._session.identity

    def is_authenticated(self) -> bool:
        return self._session.is_authenticated()

    async def login(self, credentials: Any) -> Optional[str]:
        """인증 → 서버 진행 로드. 인증 실패 시 None."""
        self._session.set_pending()
        try:
            identity = await self._authenticator(credentials)
            self._session.authenticate(identity)
        except Exception as e:
            logger.error("Login failed: %s", e)
            self._session.clear()
            return None

        logger.info("Login successful: %s", identity)
        self._bus.emit(
            GameEvent(
                event_type=EventTypes.LOGGED_IN,
                data={"identity": identity},
                source="auth_service",
            )
        )
        self._bus.reset_chain()

        if await self._progression.load_progress_from_server():
            self._progression.request_save()
        return identity

    def restore_session(self, identity: str) -> bool:
        """이미 발급된 세션 복구 (예: 새로고침 후). 로드는 initialize_game에 맡긴다."""
        if not identity:
            return False
        self._session.authenticate(identity)
        logger.info("Session restored: %s", identity)
        return True

    async def logout(self) -> None:
        """최종 저장 1회 후 로컬 상태 폐기. 저장 실패는 로그아웃을 막지 않는다."""
        if self._session.is_authenticated():
            try:
                await self._progression.save_before_logout()
            except Exception:
                logger.exception("Failed to save progress before logout")

        identity = self._session.identity
        self._session.clear()
        self._progression.clear_local_state()

        self._bus.emit(
            GameEvent(
                event_type=EventTypes.LOGGED_OUT,
                data={"identity": identity},
                source="auth_service",
            )
        )
        self._bus.reset_chain()
        logger.info("Logged out")
