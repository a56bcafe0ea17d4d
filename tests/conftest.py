import uuid
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from database import Base
from main import app
from models.business_category import BusinessCategory
from models.business_category_image import BusinessCategoryImage
from models.greeting_template import GreetingTemplate
from models.subscription import Subscription
from models.template import Template
from models.video_template import VideoTemplate
from routers import rate_limit


BASE_TIME = datetime(2026, 1, 1, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def reset_local_rate_limit_counters():
    """Keep in-memory rate-limit state isolated between tests."""
    previous = getattr(app.state, "disable_rate_limits", False)
    app.state.disable_rate_limits = True
    rate_limit._local_counters.clear()
    yield
    rate_limit._local_counters.clear()
    app.state.disable_rate_limits = previous


@pytest_asyncio.fixture
async def session_maker(tmp_path):
    db_path = tmp_path / "content_feed.db"
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}")
    maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield maker
    await engine.dispose()


def _content_kwargs(title, *, likes=0, downloads=0, is_premium=False, is_active=True, minutes=0, **extra):
    return {
        "id": extra.pop("id", None) or str(uuid.uuid4()),
        "title": title,
        "description": extra.pop("description", None),
        "tags": extra.pop("tags", []),
        "asset_url": extra.pop("asset_url", f"/assets/{uuid.uuid4().hex}.png"),
        "preview_url": extra.pop("preview_url", None),
        "likes": likes,
        "downloads": downloads,
        "is_premium": is_premium,
        "is_active": is_active,
        "created_at": BASE_TIME + timedelta(minutes=minutes),
        **extra,
    }


async def add_template(maker, title, category, **kwargs) -> str:
    row = Template(category=category, **_content_kwargs(title, **kwargs))
    async with maker() as db:
        db.add(row)
        await db.commit()
    return row.id


async def add_video(maker, title, category, **kwargs) -> str:
    row = VideoTemplate(category=category, **_content_kwargs(title, **kwargs))
    async with maker() as db:
        db.add(row)
        await db.commit()
    return row.id


async def add_greeting(maker, title, category, **kwargs) -> str:
    row = GreetingTemplate(category=category, **_content_kwargs(title, **kwargs))
    async with maker() as db:
        db.add(row)
        await db.commit()
    return row.id


async def add_business_category(maker, name, *, is_active=True) -> str:
    row = BusinessCategory(id=str(uuid.uuid4()), name=name, is_active=is_active)
    async with maker() as db:
        db.add(row)
        await db.commit()
    return row.id


async def add_business_image(maker, title, business_category_id, *, approval_status="APPROVED", **kwargs) -> str:
    row = BusinessCategoryImage(
        business_category_id=business_category_id,
        approval_status=approval_status,
        **_content_kwargs(title, **kwargs),
    )
    async with maker() as db:
        db.add(row)
        await db.commit()
    return row.id


async def add_subscription(maker, user_id, *, status="ACTIVE", tier="PRO", end_in_days=30) -> str:
    now = datetime.now(timezone.utc)
    row = Subscription(
        id=str(uuid.uuid4()),
        user_id=user_id,
        plan="monthly",
        tier=tier,
        status=status,
        start_date=now - timedelta(days=1),
        end_date=now + timedelta(days=end_in_days),
    )
    async with maker() as db:
        db.add(row)
        await db.commit()
    return row.id
