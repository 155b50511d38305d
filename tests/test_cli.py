"""Tests for the chat hub CLI."""

from unittest.mock import patch

from typer.testing import CliRunner

from cli import typer_app
from chathub.routing import hub_router

runner = CliRunner()


def test_hub_methods():
    result = runner.invoke(typer_app, ["hub-methods"])

    assert result.exit_code == 0
    assert "SendMessage" in result.output
    assert "send_message" in result.output


def test_validate_hub_methods():
    result = runner.invoke(typer_app, ["validate-hub-methods"])

    assert result.exit_code == 0
    assert "All hub methods registered" in result.output


def test_validate_hub_methods_missing():
    with patch.dict(hub_router.methods_registry, clear=True), patch(
        "cli.load_handlers"
    ):
        result = runner.invoke(typer_app, ["validate-hub-methods"])

    assert result.exit_code == 1
    assert "SendMessage" in result.output


def test_serve():
    with patch("cli.uvicorn.run") as run:
        result = runner.invoke(typer_app, ["serve", "--port", "9000"])

    assert result.exit_code == 0
    args, kwargs = run.call_args
    assert args == ("chathub:application",)
    assert kwargs["factory"] is True
    assert kwargs["port"] == 9000
