import json
import os
import sys
from typing import Dict, List, Tuple
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from reviewmate.logger import log


def _parse_cli_args(extra_args: List[str]) -> Tuple[Dict[str, object], List[str]]:
    """Parse CLI-style ``--key value`` pairs and return remaining positional args."""

    cli_params: Dict[str, object] = {}
    residual: List[str] = []

    i = 0
    while i < len(extra_args):
        token = extra_args[i]
        if token.startswith("--") and len(token) > 2:
            key = token[2:].strip().replace("-", "_")
            value: object = True
            if i + 1 < len(extra_args) and not extra_args[i + 1].startswith("--"):
                value = extra_args[i + 1]
                i += 2
            else:
                i += 1
            cli_params[key] = value
        else:
            residual.append(token)
            i += 1

    return cli_params, residual


def _print_usage() -> None:
    usage = (
        "Usage:\n"
        "  python run.py run-all [--max-concurrency N]\n"
        "  python run.py user --user-id <google_account_id>\n"
        "  python run.py serve [--host 127.0.0.1] [--port 8000]\n"
    )
    print(usage.strip())


def _run_all(cli_params: Dict[str, object]) -> int:
    from reviewmate.automation.bulk import run_for_all_enabled_users
    from reviewmate.automation.factory import build_runner
    from reviewmate.db import get_database_client

    max_concurrency = cli_params.get("max_concurrency")
    try:
        workers = int(max_concurrency) if isinstance(max_concurrency, str) else None
    except ValueError:
        print("[dispatcher error] --max-concurrency must be an integer.", file=sys.stderr)
        return 1

    db = get_database_client()
    summary = run_for_all_enabled_users(build_runner(db), db, max_concurrency=workers)
    print(json.dumps(summary.to_dict(), indent=2))
    return 0 if summary.users_failed == 0 else 2


def _run_user(user_id: str) -> int:
    from reviewmate.automation.errors import UserNotFound
    from reviewmate.automation.factory import build_runner

    try:
        report = build_runner().run(user_id)
    except UserNotFound as exc:
        print(f"[dispatcher error] {exc}", file=sys.stderr)
        return 1

    print(json.dumps(report.to_dict(), indent=2))
    return 0


def _serve(cli_params: Dict[str, object]) -> int:
    import uvicorn

    host = str(cli_params.get("host") or os.getenv("API_HOST", "127.0.0.1"))
    port = int(str(cli_params.get("port") or os.getenv("API_PORT", "8000")))
    log(f"[dispatcher] serving API on {host}:{port}")
    uvicorn.run("reviewmate.api.main:app", host=host, port=port)
    return 0


def main(argv: list[str] | None = None):
    args = argv if argv is not None else sys.argv[1:]
    if not args:
        _print_usage()
        return 1

    command, extra_args = args[0], args[1:]
    cli_params, residual_args = _parse_cli_args(extra_args)

    try:
        if command == "run-all":
            log("[dispatcher] running automation for all enabled users")
            return _run_all(cli_params)

        if command == "user":
            user_id = cli_params.get("user_id") or (residual_args[0] if residual_args else None)
            if not user_id or isinstance(user_id, bool):
                print("[dispatcher error] Missing --user-id for 'user' command.", file=sys.stderr)
                _print_usage()
                return 1
            log(f"[dispatcher] running automation for user {user_id}")
            return _run_user(str(user_id))

        if command == "serve":
            return _serve(cli_params)
    except Exception as exc:
        print(f"[dispatcher error] {type(exc).__name__}: {exc}", file=sys.stderr)
        return 2

    print(f"[dispatcher error] Unknown command '{command}'.", file=sys.stderr)
    _print_usage()
    return 1

if __name__ == "__main__":
    sys.exit(main())
