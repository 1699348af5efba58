"""
clock.py

현재 시각(Clock) 제공 모듈.

토큰 만료, 재설정 코드 만료 판단은 모두 이 모듈의 시계를 기준으로 한다.
라우터는 get_clock 의존성으로 시계를 주입받고,
테스트에서는 dependency_overrides로 고정/이동 가능한 시계로 교체한다.

"""

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def system_clock() -> datetime:
    return datetime.now(timezone.utc)


def get_clock() -> Clock:
    return system_clock
