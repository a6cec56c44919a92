# This file is part of hostnetd. See LICENSE file for license information.

import json
import os
from unittest import mock

import pytest
import yaml

from hostnetd.cmd import main
from hostnetd.net.convergence import NetworkTimeoutError
from tests.unittests.helpers import FULL_CONFIG, SIMPLE_CONFIG, simple_config

M_PATH = "hostnetd.cmd.main."


@pytest.fixture(autouse=True)
def disable_log_setup():
    with mock.patch(M_PATH + "log.setup_logging"), mock.patch(
        M_PATH + "log.setup_basic_logging"
    ), mock.patch(M_PATH + "log.configure_root_logger"):
        yield


@pytest.fixture
def hostnetd_cfg(tmp_path):
    path = tmp_path / "hostnetd.cfg"
    path.write_text(
        yaml.safe_dump(
            {
                "seed_dir": str(tmp_path / "seed"),
                "boot_apply_timeout": 7,
            }
        )
    )
    return str(path)


@pytest.fixture
def simple_file(tmp_path):
    path = tmp_path / "network.yaml"
    path.write_text(yaml.safe_dump(SIMPLE_CONFIG))
    return str(path)


def _main(*args):
    return main.main(["hostnetd"] + list(args))


class TestParser:
    def test_no_arguments_shows_usage(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            _main()
        assert 2 == exc_info.value.code
        assert "usage: hostnetd" in capsys.readouterr().err

    def test_version(self, capsys):
        with pytest.raises(SystemExit):
            _main("--version")
        assert "hostnetd " in capsys.readouterr().out

    def test_quorum_flags_are_exclusive(self, capsys):
        with pytest.raises(SystemExit):
            _main("apply", "-c", "x", "--require-all", "--require-any")
        assert "not allowed with argument" in capsys.readouterr().err

    @pytest.mark.parametrize(
        "args,require_all",
        [([], None), (["--require-all"], True), (["--require-any"], False)],
    )
    def test_quorum_flags(self, args, require_all):
        parsed = main.get_parser().parse_args(["apply", "-c", "x"] + args)
        assert require_all is parsed.require_all


class TestValidate:
    def test_valid(self, simple_file, capsys):
        assert 0 == _main("validate", "--config", simple_file)
        assert "Valid network configuration" in capsys.readouterr().out

    def test_show_prints_normalized_yaml(self, simple_file, capsys):
        assert 0 == _main("validate", "--config", simple_file, "--show")
        shown = yaml.safe_load(capsys.readouterr().out)
        assert "eth-main" == shown["interfaces"][0]["name"]
        assert 0 == shown["interfaces"][0]["mtu"]

    def test_invalid(self, tmp_path, capsys):
        path = tmp_path / "bad.yaml"
        path.write_text("interfaces: []\n")
        assert 1 == _main("validate", "--config", str(path))
        assert "Error: network configuration has no devices" in (
            capsys.readouterr().err
        )

    def test_missing_file(self, tmp_path, capsys):
        assert 1 == _main("validate", "-c", str(tmp_path / "missing.yaml"))
        assert "No such file or directory" in capsys.readouterr().err

    def test_json_input(self, tmp_path):
        path = tmp_path / "network.json"
        path.write_text(json.dumps(FULL_CONFIG))
        assert 0 == _main("validate", "-c", str(path))


class TestRender:
    def test_render_to_stdout(self, simple_file, capsys):
        assert 0 == _main("render", "-c", simple_file)
        out = capsys.readouterr().out
        assert "# 00-enaabbccddeeff.link\n" in out
        assert "Address=192.0.2.5/24" in out

    def test_render_to_target(self, tmp_path, capsys):
        path = tmp_path / "full.yaml"
        path.write_text(yaml.safe_dump(FULL_CONFIG))
        target = tmp_path / "out"
        assert 0 == _main("render", "-c", str(path), "--target", str(target))
        assert "20-uplink.network" in os.listdir(target)
        assert (target / "timesyncd.conf.d" / "local.conf").exists()
        assert str(target / "20-uplink.network") in capsys.readouterr().out


class TestApply:
    @pytest.fixture(autouse=True)
    def tools_available(self):
        with mock.patch(M_PATH + "networkd.available", return_value=True):
            yield

    @mock.patch(M_PATH + "NetworkApplier")
    @mock.patch(M_PATH + "SystemdHost")
    def test_apply_uses_configured_timeout(
        self, m_host, m_applier, simple_file, hostnetd_cfg
    ):
        assert 0 == _main("--file", hostnetd_cfg, "apply", "-c", simple_file)
        host_cfg = m_host.call_args[0][0]
        assert 7 == host_cfg["boot_apply_timeout"]
        m_applier.assert_called_once_with(m_host.return_value, config=host_cfg)
        apply_call = m_applier.return_value.apply.call_args
        assert simple_config() == apply_call[0][0]
        assert 7.0 == apply_call[0][1]
        assert apply_call[1]["require_all"] is None
        assert 0 == m_host.return_value.enable_units.call_count

    @mock.patch(M_PATH + "NetworkApplier")
    @mock.patch(M_PATH + "SystemdHost")
    def test_apply_enable_units_and_flags(
        self, m_host, m_applier, simple_file, hostnetd_cfg
    ):
        assert 0 == _main(
            "-f",
            hostnetd_cfg,
            "apply",
            "-c",
            simple_file,
            "--timeout",
            "2.5",
            "--require-all",
            "--enable-units",
        )
        m_host.return_value.enable_units.assert_called_once_with(
            "systemd-networkd", "systemd-timesyncd"
        )
        apply_call = m_applier.return_value.apply.call_args
        assert 2.5 == apply_call[0][1]
        assert apply_call[1]["require_all"] is True

    @mock.patch(M_PATH + "NetworkApplier")
    @mock.patch(M_PATH + "SystemdHost")
    def test_apply_failure_returns_error(
        self, m_host, m_applier, simple_file, hostnetd_cfg, capsys
    ):
        m_applier.return_value.apply.side_effect = NetworkTimeoutError(
            "timed out waiting for network to become routable"
        )
        assert 1 == _main("-f", hostnetd_cfg, "apply", "-c", simple_file)
        assert (
            "Error: timed out waiting for network to become routable"
            in capsys.readouterr().err
        )


class TestLoggingSetup:
    def test_debug_uses_basic_logging(self, simple_file):
        _main("--debug", "validate", "-c", simple_file)
        main.log.setup_basic_logging.assert_called_once_with(
            main.logging.DEBUG
        )
        assert 0 == main.log.setup_logging.call_count

    def test_validate_logs_warnings(self, simple_file):
        _main("validate", "-c", simple_file)
        assert (
            main.logging.WARNING == main.log.setup_logging.call_args[0][1]
        )


@mock.patch(M_PATH + "networkd.available", return_value=False)
@mock.patch(M_PATH + "SystemdHost")
def test_apply_requires_networkd_tools(m_host, m_available, capsys):
    assert 1 == _main("apply", "-c", "unused.yaml")
    assert "udevadm are required" in capsys.readouterr().err
    assert 0 == m_host.call_count
