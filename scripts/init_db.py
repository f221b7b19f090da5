"""根据 app.models 建表，并确保保留的管理员教师（id=0）存在。
与应用使用同一 DATABASE_URL（会从项目根目录 .env 加载环境变量）。可重复执行。"""
import asyncio
import logging
import os
import sys

# 项目根目录
_project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, _project_root)
os.chdir(_project_root)

# 在导入 app 前加载 .env，保证与 uvicorn 启动时使用同一 DATABASE_URL
_env_file = os.path.join(_project_root, ".env")
if os.path.isfile(_env_file):
    with open(_env_file, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if line and "=" in line and not line.startswith("#"):
                k, _, v = line.partition("=")
                k, v = k.strip(), v.strip()
                if k and os.environ.get(k) is None:
                    os.environ[k] = v

from app.core.config import settings
from app.core.db import Base, SessionLocal, engine
from app.models import ADMIN_INSTRUCTOR_ID, Instructor

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
logger = logging.getLogger("init_db")

ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@localhost")


def _redact_url(url: str) -> str:
    """隐藏密码，便于日志核对连接的是哪个库。"""
    if "@" in url and "//" in url:
        pre, _, rest = url.partition("//")
        if "@" in rest:
            user_part, _, host_part = rest.rpartition("@")
            if ":" in user_part:
                user = user_part.split(":")[0]
                return f"{pre}//{user}:****@{host_part}"
    return url


async def main() -> None:
    logger.info("Using DB: %s", _redact_url(settings.database_url))
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("tables ensured: %s", ", ".join(sorted(Base.metadata.tables)))

    async with SessionLocal() as db:
        if await db.get(Instructor, ADMIN_INSTRUCTOR_ID) is None:
            db.add(Instructor(id=ADMIN_INSTRUCTOR_ID, email=ADMIN_EMAIL, display_name="Administrator"))
            await db.commit()
            logger.info("administrator instructor created (%s)", ADMIN_EMAIL)
        else:
            logger.info("administrator instructor already present")
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
