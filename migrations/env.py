import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool
from dotenv import load_dotenv

load_dotenv()

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# 투표 엔진 + 조회용 RBAC/부동산 테이블 메타데이터
from app.db import Base  # noqa: E402
from app.models import (  # noqa: F401,E402
    auth,
    property,
    proposal,
    vote,
)

target_metadata = Base.metadata


def get_url() -> str:
    """
    우선순위:
    1) alembic -x url=... (일회성 실행)
    2) DATABASE_URL (앱과 동일한 설정)
    """
    url = (context.get_x_argument(as_dictionary=True).get("url")
           or os.getenv("DATABASE_URL")
           or "").strip()

    if not url:
        raise RuntimeError(
            "Database URL is not set. Set DATABASE_URL or pass -x url=<database-url>."
        )
    return url


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def run_migrations_offline() -> None:
    url = get_url()
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        render_as_batch=_is_sqlite(url),
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    url = get_url()
    config.set_main_option("sqlalchemy.url", url)

    connectable = engine_from_config(
        config.get_section(config.config_ini_section),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            # SQLite는 ALTER TABLE 지원이 제한적이라 batch 모드로 재생성
            render_as_batch=_is_sqlite(url),
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
