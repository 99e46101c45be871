"""Tests for dev-server spawn helpers."""

import os
from unittest.mock import patch

from start_wizard.services.launchers import node_env, spawn_expo_start, spawn_next_dev


class TestNodeEnv:

    def test_prepends_bin_dir(self, tmp_path):
        env = node_env(tmp_path, {"PATH": "/usr/bin"})
        assert env["PATH"] == f"{tmp_path / 'node_modules' / '.bin'}{os.pathsep}/usr/bin"

    def test_not_duplicated(self, tmp_path):
        once = node_env(tmp_path, {"PATH": "/usr/bin"})
        assert node_env(tmp_path, once)["PATH"] == once["PATH"]

    def test_empty_path(self, tmp_path):
        assert node_env(tmp_path, {})["PATH"] == str(tmp_path / "node_modules" / ".bin")

    def test_does_not_mutate_input(self, tmp_path):
        source = {"PATH": "/usr/bin"}
        node_env(tmp_path, source)
        assert source == {"PATH": "/usr/bin"}


class TestSpawn:

    def test_next_dev_with_port(self, tmp_path):
        with patch("start_wizard.services.launchers.subprocess.Popen") as popen:
            spawn_next_dev(tmp_path, port=3001, env={"PATH": ""}, extra_args=["--turbo"])
        args, kwargs = popen.call_args
        assert args[0] == ["npx", "--no-install", "next", "dev", "-p", "3001", "--turbo"]
        assert kwargs["cwd"] == str(tmp_path)

    def test_next_dev_without_port(self, tmp_path):
        with patch("start_wizard.services.launchers.subprocess.Popen") as popen:
            spawn_next_dev(tmp_path)
        assert popen.call_args[0][0] == ["npx", "--no-install", "next", "dev"]

    def test_expo_flags(self, tmp_path):
        with patch("start_wizard.services.launchers.subprocess.Popen") as popen:
            spawn_expo_start(tmp_path, dev_client=True, extra_args=["--clear"])
        assert popen.call_args[0][0] == [
            "npx", "--no-install", "expo", "start", "--dev-client", "--clear",
        ]
