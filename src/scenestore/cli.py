from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any

from .core.errors import SceneStoreError
from .core.logging_config import setup_logging
from .core.models import User
from .services.store import SceneStore, open_store


def _emit(payload: Any) -> None:
    print(json.dumps(payload, indent=2, sort_keys=True))


def _user_payload(user: User) -> dict[str, Any]:
    return {"id": user.id, "username": user.username, "created_time": user.created_time}


def _session_user(store: SceneStore, args: argparse.Namespace) -> User:
    return store.sessions.resolve_session(args.session)


def cmd_init(store: SceneStore, args: argparse.Namespace) -> None:
    _emit({"path": store.db.path, "schema_version": store.db.schema_version, **store.db.read_meta()})


def cmd_create_user(store: SceneStore, args: argparse.Namespace) -> None:
    user = store.accounts.create_user(args.username, args.password)
    _emit({**_user_payload(user), "recovery_key": user.recovery_key})


def cmd_login(store: SceneStore, args: argparse.Namespace) -> None:
    session = store.sessions.login(args.username, args.password)
    _emit({"session_key": session.session_key, "start_time": session.start_time})


def cmd_logout(store: SceneStore, args: argparse.Namespace) -> None:
    session = store.sessions.end_session(args.session)
    _emit({"ended": True, "end_time": session.end_time})


def cmd_whoami(store: SceneStore, args: argparse.Namespace) -> None:
    _emit(_user_payload(_session_user(store, args)))


def cmd_reset_password(store: SceneStore, args: argparse.Namespace) -> None:
    user = store.accounts.reset_via_recovery_key(
        args.username, args.recovery_key, args.new_password
    )
    _emit({**_user_payload(user), "recovery_key": user.recovery_key})


def cmd_create_project(store: SceneStore, args: argparse.Namespace) -> None:
    project = store.projects.create_project(_session_user(store, args), args.title)
    _emit({"project_key": project.project_key, "title": project.title})


def cmd_list_projects(store: SceneStore, args: argparse.Namespace) -> None:
    projects = store.projects.list_projects(_session_user(store, args))
    _emit([{"project_key": p.project_key, "title": p.title} for p in projects])


def cmd_create_scene(store: SceneStore, args: argparse.Namespace) -> None:
    project = store.projects.get_project(_session_user(store, args), args.project_key)
    scene = store.projects.create_scene(
        project, args.title, args.width, args.height, default_layers=args.default_layers
    )
    _emit(scene.model_dump(exclude={"id", "project"}))


def cmd_list_scenes(store: SceneStore, args: argparse.Namespace) -> None:
    project = store.projects.get_project(_session_user(store, args), args.project_key)
    _emit([s.model_dump(exclude={"id", "project"}) for s in store.projects.list_scenes(project)])


def cmd_register_media(store: SceneStore, args: argparse.Namespace) -> None:
    user = _session_user(store, args)
    if args.hash:
        asset = store.media.register_media(user, args.relative_path, args.title, args.hash)
    else:
        asset = store.media.register_file(user, args.root, args.relative_path, args.title)
    _emit(asset.model_dump(exclude={"id", "user"}))


def cmd_delete_project(store: SceneStore, args: argparse.Namespace) -> None:
    project = store.projects.get_project(_session_user(store, args), args.project_key)
    _emit(store.projects.delete_project(project).as_dict())


def cmd_verify(store: SceneStore, args: argparse.Namespace) -> int:
    issues = store.verify()
    _emit({"ok": not issues, "issues": issues})
    return 1 if issues else 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser("scenestore")
    parser.add_argument("--db", default=None, help="database path (default: $SCENESTORE_DB)")
    parser.add_argument("--log-dir", default=None, help="write rotating log files here")
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="cmd", required=True)

    sp = sub.add_parser("init")
    sp.set_defaults(func=cmd_init)

    sp = sub.add_parser("create-user")
    sp.add_argument("username")
    sp.add_argument("--password", required=True)
    sp.set_defaults(func=cmd_create_user)

    sp = sub.add_parser("login")
    sp.add_argument("username")
    sp.add_argument("--password", required=True)
    sp.set_defaults(func=cmd_login)

    sp = sub.add_parser("logout")
    sp.add_argument("session")
    sp.set_defaults(func=cmd_logout)

    sp = sub.add_parser("whoami")
    sp.add_argument("session")
    sp.set_defaults(func=cmd_whoami)

    sp = sub.add_parser("reset-password")
    sp.add_argument("username")
    sp.add_argument("--recovery-key", required=True)
    sp.add_argument("--new-password", required=True)
    sp.set_defaults(func=cmd_reset_password)

    sp = sub.add_parser("create-project")
    sp.add_argument("--session", required=True)
    sp.add_argument("--title", default=None)
    sp.set_defaults(func=cmd_create_project)

    sp = sub.add_parser("list-projects")
    sp.add_argument("--session", required=True)
    sp.set_defaults(func=cmd_list_projects)

    sp = sub.add_parser("create-scene")
    sp.add_argument("project_key")
    sp.add_argument("--session", required=True)
    sp.add_argument("--title", default=None)
    sp.add_argument("--width", type=int, required=True)
    sp.add_argument("--height", type=int, required=True)
    sp.add_argument("--default-layers", action="store_true")
    sp.set_defaults(func=cmd_create_scene)

    sp = sub.add_parser("list-scenes")
    sp.add_argument("project_key")
    sp.add_argument("--session", required=True)
    sp.set_defaults(func=cmd_list_scenes)

    sp = sub.add_parser("register-media")
    sp.add_argument("relative_path")
    sp.add_argument("--session", required=True)
    sp.add_argument("--title", default=None)
    sp.add_argument("--root", default=".", help="directory the relative path is resolved against")
    sp.add_argument("--hash", default=None, help="SHA-256 of the content; skips hashing the file")
    sp.set_defaults(func=cmd_register_media)

    sp = sub.add_parser("delete-project")
    sp.add_argument("project_key")
    sp.add_argument("--session", required=True)
    sp.set_defaults(func=cmd_delete_project)

    sp = sub.add_parser("verify")
    sp.set_defaults(func=cmd_verify)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    level = logging.DEBUG if args.verbose else logging.WARNING
    if args.log_dir:
        setup_logging(console_level=level, log_dir=args.log_dir)
    elif args.verbose:
        logging.basicConfig(level=level, format="%(levelname)-8s | %(name)s | %(message)s")

    if args.cmd == "register-media" and args.hash and not args.title:
        parser.error("register-media --hash requires --title")

    try:
        with open_store(args.db) as store:
            return args.func(store, args) or 0
    except SceneStoreError as exc:
        print(
            json.dumps({"ok": False, "error": exc.kind, "message": str(exc)}),
            file=sys.stderr,
        )
        return 2


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
