from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Optional

from .board.engine import TaskEngine
from .board.errors import BoardError
from .logging_utils import configure_logging
from .server import create_app


def _resolve_project_dir(project_dir: Optional[str]) -> Path:
    return Path(project_dir).expanduser().resolve() if project_dir else Path.cwd().resolve()


def _engine(args: argparse.Namespace) -> TaskEngine:
    return TaskEngine.for_project(_resolve_project_dir(args.project_dir))


def _emit(payload: Any) -> None:
    sys.stdout.write(json.dumps(payload, indent=2) + '\n')


def _task_create(args: argparse.Namespace) -> int:
    task = _engine(args).create_task(
        args.title,
        description=args.description or '',
        status=args.status,
        priority=args.priority,
    )
    _emit({'task': task.to_dict()})
    return 0


def _task_list(args: argparse.Namespace) -> int:
    tasks = _engine(args).list_tasks(status=args.status)
    _emit({'tasks': [task.to_dict() for task in tasks]})
    return 0


def _task_move(args: argparse.Namespace) -> int:
    engine = _engine(args)
    result = engine.move_task(args.task_id, args.column, args.index)
    _emit({
        'task': engine.get_task(args.task_id).to_dict(),
        'index': result.index,
        'renormalized': result.needs_renormalize,
    })
    return 0


def _task_delete(args: argparse.Namespace) -> int:
    _engine(args).delete_task(args.task_id)
    _emit({'deleted': args.task_id})
    return 0


def _board(args: argparse.Namespace) -> int:
    _emit({'columns': _engine(args).get_board()})
    return 0


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    app = create_app(project_dir=_resolve_project_dir(args.project_dir))
    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level.lower())
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Kanban task board')
    parser.add_argument('--project-dir', default=None, help='Project directory holding .taskboard/ (default: current working directory)')
    parser.add_argument('--log-level', default='INFO', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'])
    subparsers = parser.add_subparsers(dest='command', required=True)

    serve = subparsers.add_parser('serve', help='Start the board API server')
    serve.add_argument('--host', default='127.0.0.1')
    serve.add_argument('--port', default=8000, type=int)
    serve.set_defaults(func=_serve)

    board = subparsers.add_parser('board', help='Show tasks grouped by column')
    board.set_defaults(func=_board)

    task = subparsers.add_parser('task', help='Manage tasks')
    task_sub = task.add_subparsers(dest='task_cmd', required=True)
    tcreate = task_sub.add_parser('create', help='Create a task at the end of its column')
    tcreate.add_argument('title')
    tcreate.add_argument('--description', default='')
    tcreate.add_argument('--status', default='TODO')
    tcreate.add_argument('--priority', default='MEDIUM', choices=['LOW', 'MEDIUM', 'HIGH', 'URGENT'])
    tcreate.set_defaults(func=_task_create)
    tlist = task_sub.add_parser('list', help='List tasks')
    tlist.add_argument('--status', default=None)
    tlist.set_defaults(func=_task_list)
    tmove = task_sub.add_parser('move', help='Move a task to a column slot')
    tmove.add_argument('task_id')
    tmove.add_argument('column')
    tmove.add_argument('index', type=int)
    tmove.set_defaults(func=_task_move)
    tdelete = task_sub.add_parser('delete', help='Delete a task')
    tdelete.add_argument('task_id')
    tdelete.set_defaults(func=_task_delete)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    handler = getattr(args, 'func', None)
    if handler is None:
        parser.print_help()
        return 1
    try:
        return int(handler(args) or 0)
    except BoardError as exc:
        sys.stderr.write(str(exc) + '\n')
        return 1


if __name__ == '__main__':
    raise SystemExit(main())
