#!/usr/bin/env python3
"""CLI entrypoint: serve the quiz bot API, or run one quiz session in the foreground."""
import argparse
import asyncio
import sys
from datetime import datetime, timezone
from pathlib import Path

from quizbot.config import Settings
from quizbot.errors import ConfigError
from quizbot.events import EventBroadcaster
from quizbot.llm_providers import LLM_PROVIDERS, get_api_key_for_provider
from quizbot.logs import setup_logging
from quizbot.models import SessionConfig, write_results
from quizbot.session import QuizSession

OUT_DIR = Path("out")


def build_parser(settings: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Quiz Bot: answer a web quiz with an LLM")
    parser.add_argument("-v", "--verbose", action="store_true", default=settings.verbose, help="Debug output on console")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP/WebSocket API")
    serve.add_argument("--host", default=settings.host)
    serve.add_argument("--port", type=int, default=settings.port)

    run = sub.add_parser("run", help="Run one quiz session and exit")
    run.add_argument("url", help="Quiz URL")
    run.add_argument("--login-url", default=None, help="Login page URL (default: <origin>/login/canvas)")
    run.add_argument("--username", default=None)
    run.add_argument("--password", default=None)
    run.add_argument("--provider", default=settings.provider, choices=sorted(LLM_PROVIDERS), help="LLM provider")
    run.add_argument("--model", default=settings.model, metavar="MODEL", help="Model name (default: provider default)")
    run.add_argument("--api-key", default=None, help="LLM API key (default: provider env var, e.g. GROQ_API_KEY)")
    run.add_argument("--delay-min", type=float, default=2.0, metavar="SEC", help="Min delay before each answer")
    run.add_argument("--delay-max", type=float, default=5.0, metavar="SEC", help="Max delay before each answer")
    run.add_argument("--headful", action="store_true", help="Run browser visible")
    run.add_argument("--no-submit", action="store_true", help="Fill answers but do not submit the quiz")
    run.add_argument("--scoped-text-fields", action="store_true", help="Fill text answers inside the question's own container")
    run.add_argument("--screenshots", action="store_true", help="Save login debug screenshots to the run folder")
    run.add_argument("--out-dir", type=Path, default=settings.results_dir or OUT_DIR, help="Output directory")
    return parser


def serve(args: argparse.Namespace, settings: Settings) -> int:
    import uvicorn

    from quizbot.server import create_app

    app = create_app(settings)
    uvicorn.run(app, host=args.host, port=args.port, log_config=None)
    return 0


def run_once(args: argparse.Namespace) -> int:
    run_ts = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S")
    run_dir = args.out_dir / f"run_{run_ts}"
    setup_logging(run_dir, verbose=args.verbose)
    print(f"Run output: {run_dir}", file=sys.stderr)

    api_key = args.api_key or get_api_key_for_provider(args.provider)
    try:
        config = SessionConfig(
            reasoning_api_key=api_key,
            target_url=args.url.strip(),
            auth_entry_url=args.login_url,
            identity=args.username,
            secret=args.password,
            delay_min=args.delay_min,
            delay_max=args.delay_max,
            headless=not args.headful,
            auto_submit=not args.no_submit,
            provider=args.provider,
            model=args.model,
            screenshot_dir=run_dir / "screenshots" if args.screenshots else None,
            scoped_text_fields=args.scoped_text_fields,
        )
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    session = QuizSession(config, EventBroadcaster())
    try:
        result = asyncio.run(session.run())
    except KeyboardInterrupt:
        print("\nInterrupted by user.", file=sys.stderr)
        return 130
    except Exception as e:
        print(f"Session failed: {e}", file=sys.stderr)
        if session.result is not None:
            write_results(run_dir, session.result)
        return 1
    write_results(run_dir, result)
    print(f"Answered {result.questions_answered} questions ({result.failed_count} failed)", file=sys.stderr)
    return 0


def main() -> int:
    settings = Settings.from_env()
    args = build_parser(settings).parse_args()
    if args.command == "serve":
        setup_logging(settings.log_dir, verbose=args.verbose)
        return serve(args, settings)
    return run_once(args)


if __name__ == "__main__":
    sys.exit(main())
