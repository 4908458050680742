"""CLI script to create (or promote) a backend user.
Usage: python scripts/create_user.py USERNAME PASSWORD [--admin]
"""
import sys
import argparse
import pathlib
# Ensure the repository root is on sys.path so `kiosk` imports work when running this script directly
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from sqlmodel import Session
from kiosk.database import engine, create_db_and_tables
from kiosk import services
from kiosk.security import ROLE_ADMIN, ROLE_USER


def main(username: str, password: str, admin: bool = False):
    """Create `username` with the given password, or add missing roles to it.

    Existing passwords are left untouched.
    """
    create_db_and_tables()
    authorities = [ROLE_USER, ROLE_ADMIN] if admin else [ROLE_USER]
    with Session(engine) as session:
        user = services.AuthService(session).ensure_user(username, password, authorities)
        print(f'User {user.username} (id {user.id}) has authorities {user.authorities}')


if __name__ == '__main__':
    parser = argparse.ArgumentParser()
    parser.add_argument('username')
    parser.add_argument('password')
    parser.add_argument('--admin', action='store_true', help='Grant ROLE_ADMIN')
    args = parser.parse_args()
    main(args.username, args.password, admin=args.admin)
