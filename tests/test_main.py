from __future__ import annotations

import argparse
import asyncio
import io
import json
import sys

import pytest

from services.pipeline_ai.catalog import LANGUAGES, PLATFORMS
from services.pipeline_ai.config import Settings
from services.pipeline_ai.main import _apply_overrides, build_server, main

from conftest import FailingProvider, FakeProvider, run_framed


def _line(request: dict) -> bytes:
    return (json.dumps(request) + "\n").encode("utf-8")


def test_list_languages_and_platforms_ignore_params():
    server = build_server(Settings(provider="offline"), log=io.StringIO())
    responses = run_framed(
        server,
        [
            _line({"jsonrpc": "2.0", "id": 1, "method": "list_languages", "params": {"language": "cobol"}}),
            _line({"jsonrpc": "2.0", "id": 2, "method": "list_platforms"}),
        ],
    )
    by_id = {r["id"]: r for r in responses}
    assert by_id[1]["result"] == {"languages": ["nodejs", "python", "go", "ruby", "java", "rust", "php"]}
    assert by_id[2]["result"] == {"platforms": ["github-actions", "gitlab-ci", "circleci", "jenkins", "aws-codepipeline"]}


def test_tools_list_descriptor():
    server = build_server(Settings(provider="offline"), log=io.StringIO())
    [response] = run_framed(server, [_line({"jsonrpc": "2.0", "id": 3, "method": "tools/list"})])
    tools = response["result"]["tools"]
    assert [t["name"] for t in tools] == ["generate_pipeline", "list_languages", "list_platforms"]
    schema = tools[0]["inputSchema"]
    assert schema["required"] == ["description"]
    assert schema["properties"]["language"]["enum"] == LANGUAGES
    assert schema["properties"]["platform"]["enum"] == PLATFORMS
    assert set(schema["properties"]) == {"description", "language", "platform", "deploymentTarget"}
    assert all("inputSchema" not in t for t in tools[1:])


def test_generate_pipeline_returns_model_text():
    provider = FakeProvider("name: from-model\n")
    server = build_server(Settings(provider="offline"), provider, log=io.StringIO())
    [response] = run_framed(
        server,
        [_line({"jsonrpc": "2.0", "id": 10, "method": "generate_pipeline", "params": {"description": "node app"}})],
    )
    assert response == {"jsonrpc": "2.0", "id": 10, "result": "name: from-model\n"}


@pytest.mark.parametrize("platform", ["github-actions", "circleci", "not-a-platform"])
def test_generate_pipeline_falls_back_without_error(platform):
    server = build_server(Settings(provider="openai", api_key=None), log=io.StringIO())
    [response] = run_framed(
        server,
        [
            _line(
                {
                    "jsonrpc": "2.0",
                    "id": 11,
                    "method": "generate_pipeline",
                    "params": {"description": "svc", "platform": platform},
                }
            )
        ],
    )
    assert "error" not in response
    assert isinstance(response["result"], str) and response["result"].strip()


def test_generate_pipeline_without_description_is_internal_error():
    server = build_server(Settings(provider="offline"), FailingProvider(), log=io.StringIO())
    [response] = run_framed(server, [_line({"jsonrpc": "2.0", "id": 12, "method": "generate_pipeline"})])
    assert response["error"]["code"] == -32603
    assert "description" in response["error"]["message"]


def test_slow_generation_does_not_block_later_requests():
    server = build_server(Settings(provider="offline"), FakeProvider("slow: yes\n", delay=0.05), log=io.StringIO())
    chunk = _line(
        {"jsonrpc": "2.0", "id": 1, "method": "generate_pipeline", "params": {"description": "a"}}
    ) + _line({"jsonrpc": "2.0", "id": 2, "method": "list_platforms"})
    responses = run_framed(server, [chunk])
    assert [r["id"] for r in responses] == [2, 1]


def test_report_parse_errors_setting():
    server = build_server(Settings(provider="offline", report_parse_errors=True), log=io.StringIO())
    [response] = run_framed(server, [b"not json at all\n"])
    assert response["error"]["code"] == -32700


def _args(**overrides) -> argparse.Namespace:
    base = {"provider": "", "model": "", "max_inflight": None, "max_message_chars": None, "report_parse_errors": False}
    base.update(overrides)
    return argparse.Namespace(**base)


def test_cli_overrides():
    s = _apply_overrides(Settings(), _args(provider="Offline", model="gpt-4o-mini", max_inflight=0, report_parse_errors=True))
    assert (s.provider, s.model, s.max_inflight, s.report_parse_errors) == ("offline", "gpt-4o-mini", 0, True)
    assert _apply_overrides(Settings(), _args()) == Settings()


def test_cli_rejects_negative_limits():
    with pytest.raises(ValueError, match="--max-inflight"):
        _apply_overrides(Settings(), _args(max_inflight=-1))


class HangingProvider:
    name = "hanging"

    def __init__(self) -> None:
        self.release = asyncio.Event()
        self.calls = 0

    async def complete(self, messages, *, model, temperature, max_tokens) -> str:
        self.calls += 1
        await self.release.wait()
        return "name: late\n"


def test_hung_generation_does_not_block_fixed_data_methods():
    provider = HangingProvider()
    server = build_server(Settings(provider="offline", max_inflight=2), provider, log=io.StringIO())

    async def go():
        hung = [
            asyncio.create_task(
                server.handle_message(
                    json.dumps({"jsonrpc": "2.0", "id": i, "method": "generate_pipeline", "params": {"description": "x"}})
                )
            )
            for i in (1, 2)
        ]
        await asyncio.sleep(0.01)
        assert provider.calls == 2
        listed = await asyncio.wait_for(
            server.handle_message(json.dumps({"jsonrpc": "2.0", "id": 3, "method": "list_languages"})), timeout=1.0
        )
        provider.release.set()
        await asyncio.gather(*hung)
        return listed

    assert asyncio.run(go()) == {"jsonrpc": "2.0", "id": 3, "result": {"languages": LANGUAGES}}


def _stdin(monkeypatch, data: bytes) -> None:
    monkeypatch.setattr(sys, "stdin", io.TextIOWrapper(io.BytesIO(data), encoding="utf-8"))


def test_main_prints_banner_and_serves_stdin(tmp_path, monkeypatch, capsys):
    env_file = tmp_path / "secrets.env"
    env_file.write_text("", encoding="utf-8")
    _stdin(monkeypatch, _line({"jsonrpc": "2.0", "id": 1, "method": "list_platforms"}) + b"not json at all\n")

    assert main(["--env-file", str(env_file), "--provider", "offline"]) == 0

    captured = capsys.readouterr()
    assert "Pipeline AI MCP Server running... (pipeline-ai 0.1.0)" in captured.err
    assert [json.loads(line) for line in captured.out.splitlines()] == [
        {"jsonrpc": "2.0", "id": 1, "result": {"platforms": PLATFORMS}}
    ]


@pytest.mark.parametrize(
    "argv, message",
    [
        (["--max-inflight", "-1"], "--max-inflight"),
        (["--provider", "llama"], "Unknown PIPELINE_AI_PROVIDER"),
    ],
)
def test_main_config_errors_exit_2(tmp_path, monkeypatch, capsys, argv, message):
    env_file = tmp_path / "secrets.env"
    env_file.write_text("", encoding="utf-8")
    _stdin(monkeypatch, b"")

    assert main(["--env-file", str(env_file)] + argv) == 2

    captured = capsys.readouterr()
    assert "CONFIG_INVALID" in captured.err and message in captured.err
    assert "Pipeline AI MCP Server running" not in captured.err
    assert captured.out == ""


def test_main_bad_env_file_value_exits_2(tmp_path, monkeypatch, capsys):
    env_file = tmp_path / "secrets.env"
    env_file.write_text("PIPELINE_AI_MAX_TOKENS=lots\n", encoding="utf-8")
    monkeypatch.delenv("PIPELINE_AI_MAX_TOKENS", raising=False)
    _stdin(monkeypatch, b"")

    assert main(["--env-file", str(env_file), "--provider", "offline"]) == 2
    assert "PIPELINE_AI_MAX_TOKENS" in capsys.readouterr().err
