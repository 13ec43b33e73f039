import os
from pathlib import Path

from dotenv import load_dotenv
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker, declarative_base

load_dotenv()

# ===============================
# BASE DIR (SELALU Path)
# ===============================
BASE_DIR = Path(os.getenv("DATA_DIR") or Path(__file__).resolve().parent)
BASE_DIR.mkdir(parents=True, exist_ok=True)

# ===============================
# DATABASE PATH
# ===============================
DB_PATH = BASE_DIR / "laporan_drainase.db"
DATABASE_URL = os.getenv("DATABASE_URL") or f"sqlite+aiosqlite:///{DB_PATH.as_posix()}"

# ===============================
# SQLALCHEMY ENGINE
# ===============================
engine = create_async_engine(
    DATABASE_URL,
    echo=os.getenv("PYTHON_ENV") == "development",
    future=True,
)

# ===============================
# SESSION
# ===============================
AsyncSessionLocal = sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

Base = declarative_base()

# ===============================
# DEPENDENCY
# ===============================
async def get_db():
    async with AsyncSessionLocal() as session:
        yield session
