"""Tests for the command-line interface."""

import json
from typing import List, Optional

import pytest
from click.testing import CliRunner

from model_adapters import cli as cli_module
from model_adapters.adapters import AIResponse, BaseAdapter, Message
from model_adapters.config import RegistryConfig
from model_adapters.registry import AdapterRegistry

NO_KEYS = {
    "OPENAI_API_KEY": None,
    "ANTHROPIC_API_KEY": None,
    "GROK_API_KEY": None,
    "OPENROUTER_API_KEY": None,
}


class EchoAdapter(BaseAdapter):
    """Replies with the last message, uppercased."""

    async def generate_response(
        self,
        context: List[Message],
        system_prompt: str,
        reply_to: Optional[List[str]] = None,
    ) -> AIResponse:
        content = context[-1].content.upper()
        return AIResponse(content=content, model=self.model_name, tokens=7, reply_to=reply_to or [])


@pytest.fixture
def runner():
    return CliRunner()


def test_tokens(runner):
    result = runner.invoke(cli_module.cli, ["tokens", "hello", "world"], obj={})

    assert result.exit_code == 0
    assert result.output.strip() == "3"


def test_adapters_lists_configured_names(runner):
    env = dict(NO_KEYS, OPENAI_API_KEY="sk-test")
    result = runner.invoke(cli_module.cli, ["adapters", "--json-output"], obj={}, env=env)

    assert result.exit_code == 0
    names = json.loads(result.output)
    assert "chatgpt" in names
    assert "openai" in names
    assert "claude" not in names


def test_send_unknown_adapter_fails(runner):
    result = runner.invoke(cli_module.cli, ["send", "nonexistent", "hi"], obj={}, env=NO_KEYS)

    assert result.exit_code == 1
    assert "No adapter available for 'nonexistent'" in result.output


def test_send_prints_reply(runner, monkeypatch):
    def fake_registry():
        registry = AdapterRegistry(RegistryConfig())
        registry.register("echo", EchoAdapter("Echo"))
        return registry

    monkeypatch.setattr(cli_module, "get_registry", fake_registry)

    result = runner.invoke(cli_module.cli, ["send", "echo", "hello"], obj={})
    assert result.exit_code == 0
    assert result.output.strip() == "HELLO"

    result = runner.invoke(cli_module.cli, ["send", "ECHO", "hello", "--json-output"], obj={})
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data["content"] == "HELLO"
    assert data["model"] == "Echo"
    assert data["tokens"] == 7
