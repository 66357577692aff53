from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from voicechat.core.config import get_settings

settings = get_settings()

# 비동기 엔진 생성 (연결은 첫 세션 기록 시점에 수립)
engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    future=True,
)

# 세션 팩토리
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """모든 모델의 기본 클래스"""

    pass
