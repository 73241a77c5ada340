"""Command-line entry points.

Usage:
    memvault chat            # memory-aware agent that reads, replies and stores
    memvault read            # read-only agent over the full topic catalog
    memvault serve --port 8787

Settings come from the environment (after loading ``.env``); see
``memvault.config.load_settings``.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import AsyncIterator
from collections.abc import Callable
from typing import TextIO

from dotenv import load_dotenv

from memvault.config import load_settings
from memvault.config import VaultSettings
from memvault.engine import build_llm_adapter
from memvault.engine import ConversationOrchestrator
from memvault.engine import MemoryDecisionEngine
from memvault.engine import MultiTopicScanner
from memvault.engine import ReadOnlyConversation
from memvault.engine import ReplyGenerator
from memvault.engine import TurnResult
from memvault.errors import ConfigurationError
from memvault.ledger import build_vault_backend
from memvault.ledger import VaultBackend
from memvault.ledger import VaultReader
from memvault.ledger import VaultWriter

logger = logging.getLogger(__name__)

PROMPT = "You: "


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="memvault")
    parser.add_argument("--log-level", default="WARNING")
    parser.add_argument("--env-file", default=None, help="dotenv file to load first")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("chat", help="interactive agent that can store memories")
    sub.add_parser("read", help="interactive read-only agent")
    serve = sub.add_parser("serve", help="run the MCP + HTTP service")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8787)
    return parser.parse_args(argv)


async def read_lines(
    stream: TextIO,
    *,
    prompt: str = PROMPT,
    out: TextIO | None = None,
) -> AsyncIterator[str]:
    """Yield one line per utterance until *stream* reaches end of file.

    Blocking reads run on a worker thread so the event loop stays free.
    """
    while True:
        if out is not None and prompt:
            out.write(prompt)
            out.flush()
        line = await asyncio.to_thread(stream.readline)
        if line == "":
            return
        yield line.rstrip("\r\n")


def format_turn(result: TurnResult, *, read_only: bool = False) -> str:
    """Human-readable output for one turn."""
    lines: list[str] = []
    if result.failed_topics:
        lines.append(f"(could not read: {', '.join(result.failed_topics)})")
    if result.reply is not None:
        lines.append(f"\nAgent: {result.reply}\n")
    else:
        lines.append(f"\nAgent: (no reply: {result.reply_error})\n")
    if read_only:
        return "\n".join(lines)

    if result.stored is not None:
        lines.append(
            f"Stored memory ({result.stored.topic}). Tx: {result.stored.tx_id}\n"
        )
    elif result.write_error is not None:
        lines.append(f"Failed to store memory: {result.write_error}\n")
    else:
        lines.append("No memory stored.\n")
    return "\n".join(lines)


def _printer(out: TextIO, *, read_only: bool) -> Callable[[TurnResult], None]:
    def emit(result: TurnResult) -> None:
        out.write(format_turn(result, read_only=read_only) + "\n")
        out.flush()

    return emit


def build_backend(settings: VaultSettings) -> VaultBackend:
    """``build_vault_backend`` with invalid values reported as configuration errors."""
    try:
        return build_vault_backend(settings.ledger)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid ledger configuration: {exc}") from exc


def build_orchestrator(settings: VaultSettings, backend=None) -> ConversationOrchestrator:
    ledger = settings.ledger
    if backend is None:
        backend = build_vault_backend(ledger)
    llm = build_llm_adapter(settings.llm)
    return ConversationOrchestrator(
        VaultReader(backend, timeout_seconds=ledger.read_timeout_seconds),
        VaultWriter(backend, timeout_seconds=ledger.write_timeout_seconds),
        MemoryDecisionEngine(llm, settings.llm),
        ReplyGenerator.assistant(llm, settings.llm),
        owner=settings.agent.owner_address or "",
        topics=settings.agent.candidate_topics,
    )


def build_read_only(settings: VaultSettings, backend=None) -> ReadOnlyConversation:
    ledger = settings.ledger
    if backend is None:
        backend = build_vault_backend(ledger)
    llm = build_llm_adapter(settings.llm)
    return ReadOnlyConversation(
        MultiTopicScanner(VaultReader(backend, timeout_seconds=ledger.read_timeout_seconds)),
        ReplyGenerator.read_only(llm, settings.llm),
        owner=settings.agent.owner_address or "",
        catalog=settings.agent.catalog,
    )


async def _serve(
    backend: VaultBackend, settings: VaultSettings, *, host: str, port: int
) -> None:
    from memvault.server import configure
    from memvault.server import mcp
    from memvault.server import shutdown

    await configure(settings, backend=backend)
    try:
        await mcp.run_async(transport="http", host=host, port=port)
    finally:
        await shutdown()


async def _chat(
    agent, backend, *, read_only: bool, stdin: TextIO, stdout: TextIO
) -> int:
    banner = "Memory reader (read-only)" if read_only else "Memory agent"
    stdout.write(f"{banner}\nType a message (Ctrl-D to quit):\n\n")
    try:
        return await agent.run(
            read_lines(stdin, out=stdout),
            _printer(stdout, read_only=read_only),
        )
    finally:
        await backend.aclose()


def main(
    argv: list[str] | None = None,
    *,
    stdin: TextIO | None = None,
    stdout: TextIO | None = None,
) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    load_dotenv(dotenv_path=args.env_file, override=False)
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout

    try:
        if args.command == "serve":
            settings = load_settings(require_llm=False, require_owner=False)
        elif args.command == "read":
            settings = load_settings(require_signer=False)
        else:
            settings = load_settings()
        backend = build_backend(settings)
    except ConfigurationError as exc:
        logger.error("%s", exc)
        return 1

    if args.command == "serve":
        try:
            asyncio.run(_serve(backend, settings, host=args.host, port=args.port))
        except KeyboardInterrupt:
            return 130
        return 0

    read_only = args.command == "read"
    try:
        if read_only:
            agent = build_read_only(settings, backend)
        else:
            agent = build_orchestrator(settings, backend)
    except ValueError as exc:
        logger.error("Invalid LLM configuration: %s", exc)
        return 1
    try:
        asyncio.run(
            _chat(agent, backend, read_only=read_only, stdin=stdin, stdout=stdout)
        )
    except KeyboardInterrupt:
        return 130
    return 0


def run() -> None:
    """Console-script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
