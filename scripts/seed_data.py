"""Script to seed database with a sample user and course, and print a bearer token for it."""
import asyncio
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from jose import jwt
from sqlalchemy import select

from app.core.config import settings
from app.core.database import AsyncSessionLocal, engine
from app.models.course import Course
from app.models.document import Document, DocumentType
from app.models.user import User

SAMPLE_EMAIL = "student@example.com"


def issue_token(user_id: str, days: int = 7) -> str:
    expires = datetime.now(timezone.utc) + timedelta(days=days)
    return jwt.encode({"sub": user_id, "exp": expires}, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


async def seed_data():
    """Seed database with sample data."""
    async with AsyncSessionLocal() as session:
        user = await session.scalar(select(User).where(User.email == SAMPLE_EMAIL))
        if user is None:
            user = User(name="Sample Student", email=SAMPLE_EMAIL)
            session.add(user)
            await session.flush()

            course = Course(
                name="Introduction to Biology",
                description="Sample course created by seed_data.py",
                user_id=user.id,
            )
            session.add(course)
            await session.flush()

            session.add(Document(
                title="Cell basics",
                type=DocumentType.TEXT.value,
                content=(
                    "The cell is the basic unit of life. Every cell is enclosed by a membrane "
                    "and contains cytoplasm.\n\nMitochondria produce most of the cell's energy."
                ),
                course_id=course.id,
            ))
            await session.commit()
            print("✓ Sample data seeded successfully")
        else:
            print("✓ Sample user already exists")

        print(f"User id: {user.id}")
        print(f"Bearer token: {issue_token(user.id)}")
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed_data())
