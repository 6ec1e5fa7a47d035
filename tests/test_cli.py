"""CLI tests against the in-memory runtime."""

import json

import pytest
from typer.testing import CliRunner

from ctrfwd import __version__
from ctrfwd.cli.commands import forward as forward_cmd
from ctrfwd.cli.commands import prune as prune_cmd
from ctrfwd.cli.main import app
from ctrfwd.config import config
from ctrfwd.forward.report import Reporter

runner = CliRunner()


@pytest.fixture
def docker(fake_docker, monkeypatch):
    fake_docker.add_target({"bridge": "172.17.0.2"})
    monkeypatch.setattr(forward_cmd, "get_docker_manager", lambda: fake_docker)
    monkeypatch.setattr(prune_cmd, "get_docker_manager", lambda: fake_docker)
    return fake_docker


@pytest.fixture
def target_stops_after_forwarding(docker, monkeypatch):
    """Stop the target as soon as the first forwarding line is written."""
    original = Reporter.forwarding

    def forwarding(self, fwd):
        original(self, fwd)
        docker.stop("web")

    monkeypatch.setattr(Reporter, "forwarding", forwarding)
    return docker


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_missing_forwardings(docker):
    result = runner.invoke(app, ["port-forward", "web"])
    assert result.exit_code == 1
    assert "At least one forwarding" in result.output
    assert docker.creates == 0


def test_malformed_forwarding(docker):
    result = runner.invoke(app, ["port-forward", "web", "-L", "1:2:3:4:5"])
    assert result.exit_code == 1
    assert "malformed forwarding" in result.output
    assert docker.creates == 0


def test_unknown_target(docker):
    result = runner.invoke(app, ["port-forward", "nope", "-L", "80"])
    assert result.exit_code == 1
    assert "Container not found: nope" in result.output


def test_negative_running_timeout_rejected(docker):
    result = runner.invoke(
        app, ["port-forward", "web", "-L", "80", "--running-timeout", "-1"]
    )
    assert result.exit_code == 2


def test_forward_until_target_exits(target_stops_after_forwarding):
    docker = target_stops_after_forwarding
    result = runner.invoke(
        app, ["port-forward", "web", "-L", "8080:80", "--running-timeout", "0"]
    )

    assert result.exit_code == 0, result.output
    assert "Forwarding 127.0.0.1:8080 to 172.17.0.2:80" in result.output
    assert "Target exited" in result.output
    assert "Forwarding's done. Exiting..." in result.output
    assert docker.live_proxies() == []


def test_quiet_prints_only_forwardings(target_stops_after_forwarding):
    result = runner.invoke(
        app, ["port-forward", "web", "-L", "8080:80", "--running-timeout", "0", "-q"]
    )

    assert result.exit_code == 0, result.output
    assert result.stdout.strip().splitlines() == [
        "Forwarding 127.0.0.1:8080 to 172.17.0.2:80"
    ]


def test_json_output(target_stops_after_forwarding):
    result = runner.invoke(
        app,
        ["port-forward", "web", "-L", "8080:80", "--running-timeout", "0", "-o", "json"],
    )

    assert result.exit_code == 0, result.output
    lines = result.stdout.strip().splitlines()
    assert len(lines) == 1
    assert json.loads(lines[0]) == {
        "localHost": "127.0.0.1",
        "localPort": "8080",
        "remoteHost": "172.17.0.2",
        "remotePort": "80",
    }


def test_custom_image(target_stops_after_forwarding):
    docker = target_stops_after_forwarding
    result = runner.invoke(
        app,
        [
            "port-forward",
            "web",
            "-L",
            "8080:80",
            "--running-timeout",
            "0",
            "--image",
            "example/socat:1",
        ],
    )

    assert result.exit_code == 0, result.output
    assert docker.pulled == ["example/socat:1"]
    assert [p.image for p in docker.proxies()] == ["example/socat:1"]


def test_forwarder_failure_exit_code(docker, monkeypatch):
    original = Reporter.forwarding

    def forwarding(self, fwd):
        original(self, fwd)
        proxy = docker.live_proxies()[0]
        docker.stop(proxy.id, exit_code=1)

    monkeypatch.setattr(Reporter, "forwarding", forwarding)

    result = runner.invoke(app, ["port-forward", "web", "-L", "8080:80"])

    assert result.exit_code == 1
    assert "one or more forwarders failed" in result.output
    assert "status 1" in result.output
    assert docker.live_proxies() == []


def test_prune_nothing(docker):
    result = runner.invoke(app, ["prune"])
    assert result.exit_code == 0
    assert "No proxy containers found" in result.output


def test_prune_removes_proxies(docker):
    other = docker.add_target({"bridge": "172.17.0.3"}, name="db")
    for target_id in (docker.inspect_container("web")["Id"], other.id):
        docker.create_container(
            "socat",
            "ctrfwd-1234abcd",
            [],
            labels={"ctrfwd.managed": "true", "ctrfwd.target": target_id},
        )

    result = runner.invoke(app, ["prune", "--target", "db"])
    assert result.exit_code == 0, result.output
    assert "Removed 1 proxy container(s)." in result.output
    assert len(docker.live_proxies()) == 1

    result = runner.invoke(app, ["prune"])
    assert result.exit_code == 0, result.output
    assert docker.live_proxies() == []


def test_prune_unknown_target(docker):
    result = runner.invoke(app, ["prune", "--target", "nope"])
    assert result.exit_code == 1
    assert "Container not found" in result.output


def test_cleanup_timeout_from_environment(docker, monkeypatch):
    monkeypatch.setenv("CTRFWD_CLEANUP_TIMEOUT", "1.5")
    result = runner.invoke(app, ["prune"])
    assert result.exit_code == 0, result.output
    assert config.CLEANUP_TIMEOUT_SECONDS == 1.5


def test_invalid_cleanup_timeout(docker, monkeypatch):
    monkeypatch.setenv("CTRFWD_CLEANUP_TIMEOUT", "soon")
    result = runner.invoke(app, ["port-forward", "web", "-L", "80"])
    assert result.exit_code == 1
    assert "CTRFWD_CLEANUP_TIMEOUT must be a number of seconds" in result.output
    assert docker.creates == 0


def test_options_before_target(target_stops_after_forwarding):
    result = runner.invoke(
        app, ["port-forward", "-L", "8080:80", "--running-timeout", "0", "web"]
    )
    assert result.exit_code == 0, result.output
    assert "Forwarding 127.0.0.1:8080 to 172.17.0.2:80" in result.output
