import unittest

from lcf_auto.database import dispose_db, get_session_factory, init_db
from lcf_auto.models.user import User, UserRole


class DatabaseTestCase(unittest.IsolatedAsyncioTestCase):
    """Gives each test a fresh in-memory database and an open session."""

    async def asyncSetUp(self):
        await init_db()
        self.db = get_session_factory()()

    async def asyncTearDown(self):
        await self.db.close()
        await dispose_db()

    async def create_user(self, email="client@example.com", first_name="Jean", last_name="Dupont"):
        user = User(
            email=email,
            hashed_password="not-a-real-hash",
            first_name=first_name,
            last_name=last_name,
            role=UserRole.USER,
            loyalty_points=0,
        )
        self.db.add(user)
        await self.db.commit()
        return user.id
