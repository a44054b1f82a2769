"""인증 세션 상태 (인증 프로토콜 자체는 외부 협력자 담당)"""

from enum import Enum
from typing import Optional


class LoginState(str, Enum):
    NO_USER = "no_user"
    PENDING = "pending"
    AUTHENTICATED = "authenticated"


class AuthSession:
    """현재 로그인 상태 + 계정 식별자.

    진행 엔진은 is_authenticated()가 True일 때만 원격 로드/저장을 시도한다.
    """

    def __init__(self) -> None:
        self.login_state = LoginState.NO_USER
        self.identity: Optional[str] = None

    def is_authenticated(self) -> bool:
        return self.login_state == LoginState.AUTHENTICATED and bool(self.identity)

    def set_pending(self) -> None:
        self.login_state = LoginState.PENDING

    def authenticate(self, identity: str) -> None:
        if not identity:
            raise ValueError("identity must be a non-empty string")
        self.identity = identity
        self.login_state = LoginState.AUTHENTICATED

    def clear(self) -> None:
        self.identity = None
        self.login_state = LoginState.NO_USER
