"""Unit tests for the command-line agents."""

from __future__ import annotations

import io

import pytest

from memvault import cli
from memvault.engine.decision import Decision
from memvault.engine.orchestrator import TurnResult
from memvault.ledger import StoredMemory
from tests.fakes import OWNER

_ENV_VARS = (
    "AI_PROVIDER",
    "ANTHROPIC_API_KEY",
    "OPENAI_API_KEY",
    "MODEL_ID",
    "LLM_BASE_URL",
    "MEMVAULT_BACKEND",
    "RPC_URL",
    "MEMORY_VAULT_ADDRESS",
    "AGENT_PRIVATE_KEY",
    "WRITER_ADDRESS",
    "REDIS_URL",
    "USER_ADDRESS",
    "MEMVAULT_TOPICS",
    "MEMVAULT_CATALOG",
    "MEMVAULT_CONFIRM_WRITES",
)

_TEST_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"


@pytest.fixture()
def clean_env(monkeypatch, tmp_path):
    for name in _ENV_VARS:
        # setenv first so values loaded from a dotenv file are undone too
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    return ["--env-file", str(tmp_path / "missing.env")]


@pytest.fixture()
def local_env(monkeypatch, clean_env):
    monkeypatch.setenv("AI_PROVIDER", "noop")
    monkeypatch.setenv("MEMVAULT_BACKEND", "memory")
    monkeypatch.setenv("USER_ADDRESS", "0x1111111111111111111111111111111111111111")
    return clean_env


class TestMain:
    def test_missing_configuration_exits_1(self, clean_env, caplog):
        stdout = io.StringIO()
        code = cli.main([*clean_env, "chat"], stdin=io.StringIO(""), stdout=stdout)

        assert code == 1
        assert "RPC_URL" in caplog.text
        assert stdout.getvalue() == ""

    def test_chat_session_until_end_of_input(self, local_env):
        stdout = io.StringIO()
        code = cli.main(
            [*local_env, "chat"],
            stdin=io.StringIO("Hi, my name is Alex\n\nWhat's my name?\n"),
            stdout=stdout,
        )

        output = stdout.getvalue()
        assert code == 0
        assert output.startswith("Memory agent")
        assert output.count("Agent: ") == 2
        assert output.count("No memory stored.") == 2

    def test_read_session_never_reports_writes(self, local_env):
        stdout = io.StringIO()
        code = cli.main([*local_env, "read"], stdin=io.StringIO("Who am I?\n"), stdout=stdout)

        output = stdout.getvalue()
        assert code == 0
        assert output.startswith("Memory reader (read-only)")
        assert "Agent: " in output
        assert "memory stored" not in output.lower()

    def test_env_file_is_loaded(self, clean_env, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text(
            "AI_PROVIDER=noop\nMEMVAULT_BACKEND=memory\nUSER_ADDRESS=0xabc\n"
        )
        stdout = io.StringIO()

        code = cli.main(
            ["--env-file", str(env_file), "chat"], stdin=io.StringIO(""), stdout=stdout
        )
        assert code == 0

    @pytest.mark.parametrize(
        ("address", "private_key"),
        [
            ("not-an-address", _TEST_KEY),
            ("0x5FbDB2315678afecb367f032d93F642f64180aa3", "not-a-key"),
        ],
    )
    def test_invalid_ledger_values_exit_1(
        self, monkeypatch, clean_env, caplog, address, private_key
    ):
        monkeypatch.setenv("AI_PROVIDER", "noop")
        monkeypatch.setenv("MEMVAULT_BACKEND", "evm")
        monkeypatch.setenv("RPC_URL", "http://127.0.0.1:8545")
        monkeypatch.setenv("MEMORY_VAULT_ADDRESS", address)
        monkeypatch.setenv("AGENT_PRIVATE_KEY", private_key)
        monkeypatch.setenv("USER_ADDRESS", "0x1111111111111111111111111111111111111111")
        stdout = io.StringIO()

        code = cli.main([*clean_env, "chat"], stdin=io.StringIO(""), stdout=stdout)

        assert code == 1
        assert "Invalid ledger configuration" in caplog.text
        assert stdout.getvalue() == ""

    def test_serve_configures_and_shuts_down_in_one_loop(self, monkeypatch, local_env):
        from memvault import server

        served = {}

        async def fake_run_async(**kwargs):
            reader, _ = server._get_vault()
            count = await reader.get_count(OWNER, b"\x00" * 32)
            served.update(kwargs, count=count)

        monkeypatch.setattr(server.mcp, "run_async", fake_run_async)

        code = cli.main([*local_env, "serve", "--port", "9911"])

        assert code == 0
        assert served == {"transport": "http", "host": "127.0.0.1", "port": 9911, "count": 0}
        assert server._backend is None


class TestReadLines:
    async def test_yields_lines_until_eof(self):
        out = io.StringIO()
        lines = [
            line
            async for line in cli.read_lines(io.StringIO("one\r\ntwo\n\nthree"), out=out)
        ]

        assert lines == ["one", "two", "", "three"]
        assert out.getvalue() == cli.PROMPT * 5


class TestFormatTurn:
    def test_stored_turn(self):
        turn = TurnResult(
            message="My name is Alex",
            reply="Hi Alex!",
            decision=Decision(should_store=True, topic="identity_profile", summary="Alex"),
            stored=StoredMemory(
                tx_id="0xabc",
                owner="0x1",
                topic="identity_profile",
                topic_key="0x00",
                writer="0x2",
            ),
        )
        text = cli.format_turn(turn)
        assert "Agent: Hi Alex!" in text
        assert "Stored memory (identity_profile). Tx: 0xabc" in text

    def test_failed_write_and_unreadable_topics(self):
        turn = TurnResult(
            message="m",
            failed_topics=["preferences"],
            reply_error="provider HTTP 500",
            write_error="store failed: nonce too low",
        )
        text = cli.format_turn(turn)
        assert "(could not read: preferences)" in text
        assert "(no reply: provider HTTP 500)" in text
        assert "Failed to store memory: store failed: nonce too low" in text

    def test_read_only_omits_write_status(self):
        text = cli.format_turn(TurnResult(message="m", reply="ok"), read_only=True)
        assert "No memory stored." not in text
