import argparse
import asyncio
import json
import mimetypes
from dataclasses import asdict
from pathlib import Path
from typing import Any

from formflow.agents.extractor import DataExtractor
from formflow.config.settings import Settings
from formflow.database.connection import close_pool, init_pool
from formflow.database.repositories.batch_repository import BatchRepository
from formflow.database.repositories.usage_repository import UsageRepository
from formflow.database.schema import create_schema
from formflow.gateway.factory import GatewayFactory
from formflow.gateway.models import StageModels
from formflow.ingestion.factory import IngestorFactory
from formflow.ingestion.models import SourceFile
from formflow.logging.logger import Log
from formflow.processing.orchestrator import Orchestrator, build_orchestrator
from formflow.quota.quota_guard import QuotaGuard
from formflow.worker.batch_dispatcher import BatchDispatcher
from formflow.worker.batch_runner import BatchRunner


def read_source(path: str) -> SourceFile:
    file_path = Path(path)
    mime_type = mimetypes.guess_type(file_path.name)[0] or "text/plain"
    return SourceFile(file_name=file_path.name, mime_type=mime_type, data=file_path.read_bytes())


def build_batch_dispatcher(settings: Settings) -> BatchDispatcher:
    gateway = GatewayFactory.create(settings)
    batch_repo = BatchRepository()
    runner = BatchRunner(
        ingestor=IngestorFactory.create(settings),
        extractor=DataExtractor(gateway, StageModels.from_settings(settings).extraction),
        batch_repo=batch_repo,
    )
    return BatchDispatcher(
        runner,
        batch_repo,
        QuotaGuard(
            UsageRepository(default_plan=settings.default_plan),
            enabled=settings.quota_enabled,
        ),
        max_batch_size=settings.max_batch_size,
    )


def _print(payload: Any) -> None:
    print(json.dumps(payload, indent=2, default=str))


async def _run_command(args: argparse.Namespace, settings: Settings) -> None:
    if args.command == "init-db":
        await create_schema()
        return
    if args.command == "batch":
        dispatcher = build_batch_dispatcher(settings)
        batch = await dispatcher.submit([read_source(p) for p in args.files], args.user, args.name)
        await dispatcher.wait_idle()
        _print(asdict(await dispatcher.get_status(batch.id, args.user)))
        return

    orchestrator: Orchestrator = build_orchestrator(settings)
    if args.command == "start":
        record = await orchestrator.start(read_source(args.file), args.user, args.options)
        _print(record.to_dict())
    elif args.command == "submit":
        payload = json.loads(Path(args.data).read_text(encoding="utf-8"))
        record = await orchestrator.submit_user_data(
            args.processing_id,
            payload.get("user_data", {}),
            payload.get("documents", []),
            args.user,
        )
        _print(record.to_dict())
    elif args.command == "status":
        _print(asdict(await orchestrator.get_status(args.processing_id, args.user)))
    elif args.command == "result":
        _print(await orchestrator.get_result(args.processing_id, args.user))
    elif args.command == "history":
        records = await orchestrator.list_history(args.user, args.limit)
        _print([record.to_dict() for record in records])
    elif args.command == "delete":
        await orchestrator.delete(args.processing_id, args.user)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Form processing worker")
    parser.add_argument("--user", default="local", help="User id owning the records")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("init-db", help="Create database tables")

    start = commands.add_parser("start", help="Upload a form and run analysis")
    start.add_argument("file", help="Path to a PDF, image or text form")
    start.add_argument("--options", default=None, help="JSON processing options")

    submit = commands.add_parser("submit", help="Submit user data for a processing")
    submit.add_argument("processing_id")
    submit.add_argument("data", help="JSON file with 'user_data' and 'documents'")

    for name in ("status", "result", "delete"):
        command = commands.add_parser(name, help=f"{name.capitalize()} of a processing")
        command.add_argument("processing_id")

    history = commands.add_parser("history", help="List recent processings")
    history.add_argument("--limit", type=int, default=10)

    batch = commands.add_parser("batch", help="Extract fields from many documents")
    batch.add_argument("files", nargs="+")
    batch.add_argument("--name", default="")
    return parser


async def run(args: argparse.Namespace) -> None:
    settings = Settings()
    Log.configure(settings.log_level)
    await init_pool(settings)
    try:
        await _run_command(args, settings)
    finally:
        await close_pool()


def main() -> None:
    """Entry point: parse arguments -> open pool -> run one command."""
    asyncio.run(run(build_parser().parse_args()))


if __name__ == "__main__":
    main()
