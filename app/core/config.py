"""
config.py

애플리케이션 전역 설정(Configuration) 관리 파일.

이 파일은 .env 환경 변수들을 Pydantic BaseSettings를 통해 로드하여
애플리케이션 전반에서 공통으로 사용하는 설정 값을 제공한다.

주요 설정 항목:
- 데이터베이스 연결 정보
- JWT 인증 관련 시크릿 및 만료 정책 (access / refresh / mfa)
- 비밀번호·PIN 재설정 코드 및 전화번호 인증 코드 만료 정책
- 지갑(Wallet) 가입 보너스
- 쿠키 보안 옵션 / CORS 허용 도메인 / 로그 레벨

설계 원칙:
- 모든 환경 변수는 이 파일을 통해서만 접근
- 로컬 / 테스트 / 운영 환경을 .env로 분리하여 관리
- 설정 값은 런타임 중 변경되지 않는 불변 객체로 취급

관련 파일:
- app.main               : CORS / 로깅 초기화 시 설정 사용
- app.core.security      : JWT 시크릿 / 만료 / bcrypt cost 설정 사용
- app.services.reset     : 재설정 코드 만료 설정 사용
- app.db.session         : DATABASE_URL 사용

"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Literal

# .env 파일에 정의된 환경 변수를 로드하는 설정 클래스
# extra="ignore" 옵션으로 정의되지 않은 환경 변수는 무시
class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    PROJECT_NAME: str = "Cineranda Backend"
    ENVIRONMENT: Literal["development", "test", "production"] = "development"
    LOG_LEVEL: str = "INFO"

    DATABASE_URL: str
    TEST_DATABASE_URL: str | None = None

    # access / refresh 시크릿은 반드시 분리
    SECRET_KEY: str
    REFRESH_SECRET_KEY: str
    ALGORITHM: str = "HS256"

    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    MFA_TOKEN_EXPIRE_MINUTES: int = 5

    # bcrypt work factor (배포 단위로 고정)
    BCRYPT_ROUNDS: int = 12

    # 재설정 / 인증 코드 만료 (분)
    PASSWORD_RESET_EXPIRE_MINUTES: int = 20
    PIN_RESET_EXPIRE_MINUTES: int = 10
    VERIFICATION_CODE_EXPIRE_MINUTES: int = 10

    # True면 가입 직후 pending_verification 상태로 생성
    REQUIRE_PHONE_VERIFICATION: bool = False

    # 0이면 가입 보너스 지급 안 함
    WELCOME_BONUS_AMOUNT: int = 0

    TOTP_ISSUER: str = "Cineranda"

    # 쿠키/배포 옵션
    # - COOKIE_SECURE: HTTPS 환경에서만 True 권장
    # - COOKIE_SAMESITE: CSRF 완화를 위해 "lax" 기본값
    COOKIE_SECURE: bool = False
    COOKIE_SAMESITE: str = "lax"
    COOKIE_DOMAIN: str | None = None

    # CORS 허용 도메인 (프론트엔드 주소)
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    # scripts/create_admin.py 에서 사용하는 초기 관리자 계정
    ADMIN_USERNAME: str = "admin"
    ADMIN_EMAIL: str = "admin@cineranda.com"
    ADMIN_PHONE_NUMBER: str = "+250700000000"
    ADMIN_PASSWORD: str | None = None
    ADMIN_PIN: str | None = None

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

# 애플리케이션 전역에서 import하여 사용하는 Settings 인스턴스
# 실행 시 한 번만 생성됨
settings = Settings()
