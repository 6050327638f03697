"""
Create a superuser, or promote an existing user to superuser.

    python -m teamkick.scripts.create_superuser --username admin --password '...'
"""

import argparse
import asyncio

from teamkick.core.config import get_settings
from teamkick.core.database import get_session_context, init_db
from teamkick.core.roles import UserRole
from teamkick.services import users as user_service


async def create_superuser(username: str, password: str, *, reset_password: bool = False) -> str:
    """Returns "created", "promoted", "password_reset" or "unchanged"."""
    if get_settings().create_tables_on_startup:
        await init_db()
    async with get_session_context() as session:
        user = await user_service.get_user_by_username(username, session)
        if user is None:
            await user_service.create_user(username, password, session, role=UserRole.SUPERUSER)
            return "created"

        outcome = "unchanged"
        if user.role != UserRole.SUPERUSER.value:
            await user_service.set_global_role(user.id, UserRole.SUPERUSER, session)
            outcome = "promoted"
        if reset_password:
            await user_service.set_password(user, password, session)
            if outcome == "unchanged":
                outcome = "password_reset"
        return outcome


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="Create or promote a superuser.")
    parser.add_argument("--username", required=True, help="Username for the superuser")
    parser.add_argument("--password", required=True, help="Password (min. 8 characters)")
    parser.add_argument(
        "--reset-password",
        action="store_true",
        help="Also overwrite the password of an existing user",
    )
    args = parser.parse_args(argv)

    if len(args.password) < 8:
        parser.error("password must be at least 8 characters")

    outcome = asyncio.run(
        create_superuser(args.username, args.password, reset_password=args.reset_password)
    )
    messages = {
        "created": f"Created superuser {args.username}.",
        "promoted": f"Promoted {args.username} to superuser.",
        "password_reset": f"{args.username} is already a superuser; password reset.",
        "unchanged": f"{args.username} is already a superuser.",
    }
    print(messages[outcome])


if __name__ == "__main__":
    main()
