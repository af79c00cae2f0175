"""Command line interface for subtitle-translator."""

from __future__ import annotations

import argparse
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional, Sequence

from subtitle_translator import config_manager as cfg
from subtitle_translator import logging_manager as log_mgr
from subtitle_translator.billing import BillingService
from subtitle_translator.database import configure_engine, init_schema
from subtitle_translator.errors import SubtitleTranslatorError
from subtitle_translator.llm_client import create_client
from subtitle_translator.services import (
    TaskDispatcher,
    TaskService,
    TextTranslationService,
    build_pipeline,
)
from subtitle_translator.tasks import SqlTaskStore, SqlUserStore, TaskStatus
from subtitle_translator.translation_engine import (
    ChunkedTranslationEngine,
    make_llm_chunk_translator,
)
from subtitle_translator.translation_workers import reset_shared_pool

logger = log_mgr.get_logger()

SUCCESSFUL_STATUSES = frozenset({TaskStatus.TRANSLATED, TaskStatus.COMPLETED})


def _decimal(value: str) -> Decimal:
    try:
        return Decimal(value)
    except InvalidOperation as exc:
        raise argparse.ArgumentTypeError(f"Invalid amount: {value!r}") from exc


def _add_shared_arguments(parser: argparse.ArgumentParser) -> argparse.ArgumentParser:
    parser.add_argument(
        "--config",
        default=None,
        help=(
            "Path to a configuration override JSON file (defaults to conf/config.local.json "
            "if present)."
        ),
    )
    parser.add_argument("--database-url", help="Override the SQLAlchemy database URL.")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging output.")
    return parser


def build_cli_parser() -> argparse.ArgumentParser:
    """Build the CLI parser with explicit sub-commands."""

    parser = argparse.ArgumentParser(
        description="subtitle-translator command line interface", allow_abbrev=False
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    translate_parser = subparsers.add_parser(
        "translate", help="Translate an SRT file", allow_abbrev=False
    )
    translate_parser.add_argument("source", help="Path to the source SRT file.")
    translate_parser.add_argument("destination", help="Path of the translated SRT file.")
    translate_parser.add_argument("--target-language", help="Override the target language.")
    _add_shared_arguments(translate_parser)

    text_parser = subparsers.add_parser(
        "translate-text", help="Translate a piece of free text", allow_abbrev=False
    )
    text_parser.add_argument("text", help="Text to translate.")
    text_parser.add_argument("--target-language", help="Override the target language.")
    _add_shared_arguments(text_parser)

    run_parser = subparsers.add_parser(
        "run", help="Process a video through the full pipeline", allow_abbrev=False
    )
    run_parser.add_argument("video", help="Path to the video file.")
    run_parser.add_argument("--user-id", required=True, help="User charged for the translation.")
    run_parser.add_argument(
        "--burn-subtitles",
        action="store_true",
        help="Render the translated subtitles onto the video.",
    )
    run_parser.add_argument("--target-language", help="Override the target language.")
    _add_shared_arguments(run_parser)

    status_parser = subparsers.add_parser(
        "status", help="Show the stored state of a task", allow_abbrev=False
    )
    status_parser.add_argument("task_id", help="Task identifier.")
    _add_shared_arguments(status_parser)

    top_up_parser = subparsers.add_parser(
        "top-up", help="Add funds to a user balance", allow_abbrev=False
    )
    top_up_parser.add_argument("user_id", help="User identifier.")
    top_up_parser.add_argument("amount", type=_decimal, help="Amount to credit.")
    _add_shared_arguments(top_up_parser)

    user_parser = subparsers.add_parser(
        "create-user", help="Create a new user account", allow_abbrev=False
    )
    user_parser.add_argument("username", help="Username for the new account.")
    user_parser.add_argument(
        "--balance", type=_decimal, default=Decimal("0"), help="Initial balance."
    )
    _add_shared_arguments(user_parser)

    return parser


def _prepare(args: argparse.Namespace) -> cfg.SubtitleTranslatorSettings:
    settings = cfg.load_configuration(args.config)
    if args.debug:
        log_mgr.configure_logging_level(debug_enabled=True)
    if args.database_url:
        configure_engine(args.database_url)
    return settings


def _task_service(settings: cfg.SubtitleTranslatorSettings, *, with_dispatcher: bool) -> TaskService:
    init_schema()
    task_store = SqlTaskStore()
    user_store = SqlUserStore()
    dispatcher = None
    if with_dispatcher:
        pipeline = build_pipeline(settings, task_store=task_store, user_store=user_store)
        dispatcher = TaskDispatcher(pipeline, max_workers=settings.job_max_workers)
    return TaskService(
        task_store=task_store,
        user_store=user_store,
        settings=settings,
        dispatcher=dispatcher,
    )


def _print_json(payload: object) -> None:
    log_mgr.console_info(json.dumps(payload, ensure_ascii=False, indent=2, default=str), logger_obj=logger)


def _command_translate(args: argparse.Namespace, settings: cfg.SubtitleTranslatorSettings) -> int:
    language = args.target_language or settings.target_language
    engine = ChunkedTranslationEngine(
        make_llm_chunk_translator(create_client(settings), language),
        chunk_size=settings.translation_chunk_size,
        max_retries=settings.translation_max_retries,
        retry_delay=settings.translation_retry_delay_seconds,
    )
    destination = Path(args.destination)
    outcome = engine.translate_file(
        Path(args.source), destination.parent, output_filename=destination.name
    )
    log_mgr.console_info(
        "Translated %s entries (%s characters) to %s",
        len(outcome.entries),
        outcome.character_count,
        outcome.output_path,
        logger_obj=logger,
    )
    return 0


def _command_translate_text(args: argparse.Namespace, settings: cfg.SubtitleTranslatorSettings) -> int:
    service = TextTranslationService(
        create_client(settings),
        target_language=args.target_language or settings.target_language,
    )
    log_mgr.console_info(service.translate(args.text), logger_obj=logger)
    return 0


def _command_run(args: argparse.Namespace, settings: cfg.SubtitleTranslatorSettings) -> int:
    service = _task_service(settings, with_dispatcher=True)
    task = service.create_task(
        args.user_id,
        Path(args.video),
        burn_subtitles=args.burn_subtitles,
        target_language=args.target_language,
    )
    log_mgr.console_info("Started task %s", task.task_id, logger_obj=logger)
    dispatcher = service.dispatcher
    if dispatcher is None:
        raise SubtitleTranslatorError("No dispatcher is configured for the run command")
    try:
        final = dispatcher.wait(task.task_id)
    finally:
        dispatcher.shutdown()
    _print_json(final.to_dict())
    return 0 if final.status in SUCCESSFUL_STATUSES else 1


def _command_status(args: argparse.Namespace, settings: cfg.SubtitleTranslatorSettings) -> int:
    service = _task_service(settings, with_dispatcher=False)
    _print_json(service.get_task(args.task_id).to_dict())
    return 0


def _command_top_up(args: argparse.Namespace, settings: cfg.SubtitleTranslatorSettings) -> int:
    init_schema()
    user = BillingService(SqlUserStore()).top_up(args.user_id, args.amount)
    log_mgr.console_info(
        "Balance of %s is now %s", user.username, user.balance, logger_obj=logger
    )
    return 0


def _command_create_user(args: argparse.Namespace, settings: cfg.SubtitleTranslatorSettings) -> int:
    service = _task_service(settings, with_dispatcher=False)
    user = service.create_user(args.username, balance=args.balance)
    log_mgr.console_info("Created user '%s' with id %s", user.username, user.user_id, logger_obj=logger)
    return 0


_COMMANDS = {
    "translate": _command_translate,
    "translate-text": _command_translate_text,
    "run": _command_run,
    "status": _command_status,
    "top-up": _command_top_up,
    "create-user": _command_create_user,
}


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    """Parse ``argv`` and execute the selected command."""

    args = build_cli_parser().parse_args(argv)
    settings = _prepare(args)
    handler = _COMMANDS[args.command]
    try:
        return handler(args, settings)
    except (SubtitleTranslatorError, ValueError) as exc:
        log_mgr.console_error("%s", exc, logger_obj=logger)
        return 1
    finally:
        reset_shared_pool()


__all__ = ["build_cli_parser", "run_cli"]
