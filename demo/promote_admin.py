#!/usr/bin/env python3
"""
Promote an existing user to admin. Run on the server.

There is no self-service path to the admin role, so the first admin has to
be provisioned by an operator. Later admins can use POST /users/{id}/promote.

Usage:
    python demo/promote_admin.py <username>
"""
import argparse
import asyncio
import sys

from user_service import models  # noqa: F401
from user_service.config import Settings
from user_service.database import Base, create_engine, create_session_factory
from user_service.exceptions import UserNotFoundError
from user_service.repositories.user_repository import SqlAlchemyUserRepository


async def promote(username: str) -> int:
    engine = create_engine(Settings())
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = create_session_factory(engine)
    try:
        async with session_factory() as session:
            repository = SqlAlchemyUserRepository(session)
            try:
                user = await repository.find_by_username(username)
            except UserNotFoundError:
                print(f"No user named {username!r}")
                return 1
            user.promote_to_admin()
            await repository.save(user)
            await session.commit()
            print(f"User {username!r} (id {user.id}) is now an admin")
            return 0
    finally:
        await engine.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Promote a user to admin")
    parser.add_argument("username")
    args = parser.parse_args()
    sys.exit(asyncio.run(promote(args.username)))


if __name__ == "__main__":
    main()
