"""SkillSync command line.

Usage:
    skillsync init-db
    skillsync create-user --email asha@example.com --name "Asha Rao" --role freelancer
    skillsync grant-admin <user-id>
    skillsync token <user-id>
    skillsync mirror-sync --action all
    skillsync serve --port 8000

Global flags:
    --config PATH   YAML config (default: $SKILLSYNC_CONFIG or config/skillsync.yml)
    -v, --verbose   Debug logging
"""
import argparse
import asyncio
import json
import logging
import sys
from datetime import timedelta
from typing import Optional

from .config import ServiceConfig, load_config
from .db.connection import get_engine, get_session_factory, init_db
from .errors import SkillSyncError

logger = logging.getLogger(__name__)

# Acting identity for operator commands run from the shell
SYSTEM_USER = "system"


def _session_factory(config: ServiceConfig):
    engine = get_engine(config.database.url, echo=config.database.echo)
    init_db(engine)
    return get_session_factory(engine)


def cmd_init_db(config: ServiceConfig, args) -> int:
    engine = get_engine(config.database.url)
    init_db(engine)
    print(f"✓ Database initialized: {engine.url.render_as_string(hide_password=True)}")
    return 0


def cmd_create_user(config: ServiceConfig, args) -> int:
    from .marketplace.admin import grant_admin
    from .marketplace.profiles import create_profile
    from .pipeline.context import SessionContext

    factory = _session_factory(config)
    with factory() as session:
        profile = create_profile(session, args.email, args.name, user_role=args.role)
        if args.admin:
            grant_admin(session, SessionContext(user_id=SYSTEM_USER, is_admin=True), profile.id)
        print(f"✓ Created {profile.user_role} {profile.full_name} <{profile.email}>")
        print(f"  id: {profile.id}{'  (admin)' if args.admin else ''}")
    return 0


def cmd_grant_admin(config: ServiceConfig, args) -> int:
    from .marketplace.admin import grant_admin
    from .pipeline.context import SessionContext

    factory = _session_factory(config)
    with factory() as session:
        grant_admin(session, SessionContext(user_id=SYSTEM_USER, is_admin=True), args.user_id)
    print(f"✓ Admin role granted to {args.user_id}")
    return 0


def cmd_token(config: ServiceConfig, args) -> int:
    from .api.auth import create_access_token
    from .marketplace.profiles import get_profile

    factory = _session_factory(config)
    with factory() as session:
        get_profile(session, args.user_id)
    token = create_access_token(
        config.auth, args.user_id, expires_delta=timedelta(minutes=args.minutes)
    )
    print(token)
    return 0


def cmd_mirror_sync(config: ServiceConfig, args) -> int:
    from .mirror.backend import create_document_store
    from .mirror.job import MirrorJob

    factory = _session_factory(config)
    store = create_document_store(config.mirror)
    job = MirrorJob(factory, store, config.mirror.collection)

    async def _run():
        try:
            return await job.sync(args.action, args.ids)
        finally:
            await store.close()

    result = asyncio.run(_run())
    print(json.dumps(result, indent=2, default=str))
    return 0 if result["failed"] == 0 else 1


def cmd_serve(config: ServiceConfig, args) -> int:
    import uvicorn

    from .api.app import create_app

    uvicorn.run(create_app(config), host=args.host, port=args.port, log_level="info")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="skillsync",
        description="SkillSync marketplace backend",
    )
    parser.add_argument("--config", default=None, help="YAML config file")
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("init-db", help="Create all tables")
    p.set_defaults(func=cmd_init_db)

    p = sub.add_parser("create-user", help="Create a profile")
    p.add_argument("--email", required=True)
    p.add_argument("--name", required=True)
    p.add_argument("--role", choices=["client", "freelancer"], default="client")
    p.add_argument("--admin", action="store_true", help="Also grant the admin role")
    p.set_defaults(func=cmd_create_user)

    p = sub.add_parser("grant-admin", help="Grant the admin role to a user")
    p.add_argument("user_id")
    p.set_defaults(func=cmd_grant_admin)

    p = sub.add_parser("token", help="Issue a bearer token for local use")
    p.add_argument("user_id")
    p.add_argument("--minutes", type=int, default=60 * 24)
    p.set_defaults(func=cmd_token)

    p = sub.add_parser("mirror-sync", help="Mirror projects into the document store")
    p.add_argument("--action", choices=["all", "project", "bid"], default="all")
    p.add_argument("--ids", nargs="*", default=None)
    p.set_defaults(func=cmd_mirror_sync)

    p = sub.add_parser("serve", help="Run the HTTP API (uvicorn)")
    p.add_argument("--host", default="127.0.0.1")
    p.add_argument("--port", type=int, default=8000)
    p.set_defaults(func=cmd_serve)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = load_config(args.config)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else config.logging.level,
        format=config.logging.format,
    )
    try:
        return args.func(config, args)
    except SkillSyncError as e:
        print(f"❌ {e.message}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
