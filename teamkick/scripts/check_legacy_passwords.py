"""
Report password hash migration progress.

Lists how many users are stored in each hash format and which users are
still on a legacy scrypt hash (they are upgraded on their next login).

    python -m teamkick.scripts.check_legacy_passwords
"""

import argparse
import asyncio
from collections import Counter

from sqlmodel import select

from teamkick.core.database import get_session_context
from teamkick.core.passwords import classify_hash, is_legacy_hash
from teamkick.models.user import User


async def collect_report() -> tuple[Counter, list[str]]:
    """Return (users per hash format, usernames still on a legacy hash)."""
    counts: Counter = Counter()
    legacy: list[str] = []
    async with get_session_context() as session:
        result = await session.execute(select(User.username, User.password_hash))
        for username, password_hash in result.all():
            counts[classify_hash(password_hash).value] += 1
            if is_legacy_hash(password_hash):
                legacy.append(username)
    return counts, sorted(legacy)


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="Report password hash formats.")
    parser.add_argument("--list", action="store_true", help="List users still on legacy hashes")
    args = parser.parse_args(argv)

    counts, legacy = asyncio.run(collect_report())
    total = sum(counts.values())
    print(f"Users: {total}")
    for fmt, count in sorted(counts.items()):
        print(f"  {fmt:<18} {count}")
    if legacy:
        print(f"{len(legacy)} user(s) still on a legacy hash.")
        if args.list:
            for username in legacy:
                print(f"  - {username}")
    else:
        print("All users are on the current hash format.")


if __name__ == "__main__":
    main()
