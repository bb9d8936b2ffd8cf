"""CLI for database migrations and account maintenance."""
import argparse
import getpass
import subprocess
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def cmd_migrate(args):
    """Run alembic upgrade to the requested revision."""
    return subprocess.call([sys.executable, "-m", "alembic", "upgrade", args.revision], cwd=str(ROOT))


def cmd_stamp(args):
    """Stamp alembic revision (pass-through to alembic stamp)."""
    return subprocess.call([sys.executable, "-m", "alembic", "stamp", args.revision], cwd=str(ROOT))


def cmd_init_db(args):
    """Create all tables from the models, bypassing alembic (local and test databases)."""
    from app.core.database import Base, get_engine
    import app.models  # noqa: F401

    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    print(f"Created tables: {', '.join(sorted(Base.metadata.tables))}")
    return 0


def cmd_create_admin(args):
    """Create an ADMIN account, or promote an existing account to ADMIN."""
    from app.core.database import get_session_local
    from app.core.exceptions import CRMError
    from app.models.user import User, UserRole
    from app.services.auth_service import AuthService
    from app.utils.validators import normalize_email

    session = get_session_local()()
    try:
        user = session.query(User).filter(User.email == normalize_email(args.email)).first()
        if user is not None:
            if user.role == UserRole.ADMIN.value:
                print(f"{args.email} is already an admin")
                return 0
            user.role = UserRole.ADMIN.value
            session.commit()
            print(f"Promoted {args.email} to admin")
            return 0

        password = args.password or getpass.getpass("Password: ")
        if not password:
            print("A password is required", file=sys.stderr)
            return 1

        try:
            user = AuthService(session).register_user(
                email=args.email,
                password=password,
                name=args.name,
                role=UserRole.ADMIN.value,
            )
        except CRMError as e:
            print(f"Could not create admin: {e.message}", file=sys.stderr)
            return 1
        print(f"Created admin {user.email} ({user.id})")
        return 0
    finally:
        session.close()


def build_parser():
    p = argparse.ArgumentParser(prog="manage")
    sub = p.add_subparsers(dest="cmd")
    s = sub.add_parser("migrate", help="Run migrations (upgrade head)")
    s.add_argument("--revision", "-r", help="Target revision", default="head")
    s.set_defaults(func=cmd_migrate)
    s = sub.add_parser("stamp", help="Stamp alembic to a revision")
    s.add_argument("--revision", "-r", help="Revision to stamp", default="head")
    s.set_defaults(func=cmd_stamp)
    s = sub.add_parser("init-db", help="Create tables directly from the models")
    s.set_defaults(func=cmd_init_db)
    s = sub.add_parser("create-admin", help="Create or promote an admin account")
    s.add_argument("email")
    s.add_argument("--name", default=None)
    s.add_argument("--password", default=None, help="Prompted for when omitted")
    s.set_defaults(func=cmd_create_admin)
    return p


def main(argv=None):
    p = build_parser()
    args = p.parse_args(argv)
    if not hasattr(args, "func"):
        p.print_help()
        return 2
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
