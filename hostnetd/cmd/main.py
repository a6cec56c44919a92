#!/usr/bin/env python3
# This file is part of hostnetd. See LICENSE file for license information.
"""Command line entry point: render, apply or validate a network config."""

import argparse
import logging
import os
import signal
import sys
import threading

from hostnetd import log, safeyaml, settings, util, version
from hostnetd.host import SystemdHost
from hostnetd.net import networkd
from hostnetd.net.apply import NetworkApplier
from hostnetd.net.network_config import NetworkConfig, from_dict, to_dict
from hostnetd.net.network_config import validate as validate_model
from hostnetd.net.schema import validate_network_config_schema

LOG = logging.getLogger(__name__)

TIMESYNC_DROPIN = os.path.join("timesyncd.conf.d", "local.conf")


def error(msg, rc=1, fmt="Error: {}"):
    """Print error to stderr and return ``rc``."""
    print(fmt.format(msg), file=sys.stderr)
    return rc


def load_network_config(path: str) -> NetworkConfig:
    """Load, schema validate and model validate a YAML or JSON file.

    @raises: OSError when the file can not be read, ValueError or TypeError
        when its content is not a valid network configuration.
    """
    data = util.load_yaml(util.load_text_file(path), default=None)
    if data is None:
        raise ValueError("%s is not a valid network configuration" % path)
    validate_network_config_schema(data)
    cfg = from_dict(data)
    validate_model(cfg)
    return cfg


def _add_config_arg(parser):
    parser.add_argument(
        "--config",
        "-c",
        required=True,
        help="Network configuration to use, in YAML or JSON.",
    )


def handle_render_args(name, args):
    """Render artifacts for a network config without touching the host."""
    cfg = load_network_config(args.config)
    if args.stdout or not args.target:
        for f in networkd.render_network_config(cfg):
            print("# %s\n%s" % (f.name, f.contents))
        timesync = networkd.generate_timesync_contents(cfg.ntp)
        if timesync:
            print("# %s\n%s" % (TIMESYNC_DROPIN, timesync))
        return 0

    renderer = networkd.Renderer(
        {
            "network_conf_dir": args.target,
            "timesync_conf_file": os.path.join(args.target, TIMESYNC_DROPIN),
        }
    )
    for path in renderer.render(cfg):
        print(path)
    return 0


def handle_apply_args(name, args):
    """Apply a network config to this host and wait for it to converge."""
    if not networkd.available():
        raise RuntimeError(
            "networkctl, systemctl and udevadm are required to apply"
        )
    cfg = load_network_config(args.config)
    host = SystemdHost(args.hostnetd_cfg)
    if args.enable_units:
        host.enable_units(
            settings.NETWORKD_SERVICE, settings.TIMESYNCD_SERVICE
        )

    timeout = args.timeout
    if timeout is None:
        timeout = util.get_cfg_option_float(
            args.hostnetd_cfg,
            "boot_apply_timeout",
            settings.CFG_BUILTIN["boot_apply_timeout"],
        )

    cancel = threading.Event()
    previous = signal.signal(
        signal.SIGTERM, lambda signum, frame: cancel.set()
    )
    try:
        NetworkApplier(host, config=args.hostnetd_cfg).apply(
            cfg, timeout, require_all=args.require_all, cancel=cancel
        )
    finally:
        signal.signal(signal.SIGTERM, previous)
    LOG.info("Network configuration from %s applied", args.config)
    return 0


def handle_validate_args(name, args):
    """Validate a network config, optionally showing its normal form."""
    cfg = load_network_config(args.config)
    if args.show:
        shown = safeyaml.dumps(to_dict(cfg), explicit_end=False, noalias=True)
        print(shown, end="")
    else:
        print("Valid network configuration: %s" % args.config)
    return 0


def get_parser(prog=None):
    parser = argparse.ArgumentParser(prog=prog)
    parser.add_argument(
        "--version",
        "-v",
        action="version",
        version="%(prog)s " + (version.version_string()),
        help="Show program's version number and exit.",
    )
    parser.add_argument(
        "--debug",
        "-d",
        action="store_true",
        help="Show debug logging (default: %(default)s).",
        default=False,
    )
    parser.add_argument(
        "--file",
        "-f",
        dest="cfg_file",
        help=(
            "Use this hostnetd configuration file instead of %s."
            % settings.HOSTNETD_CONFIG
        ),
    )
    subparsers = parser.add_subparsers(title="Subcommands", dest="subcommand")
    subparsers.required = True

    parser_render = subparsers.add_parser(
        "render", help="Render networkd files without applying them."
    )
    _add_config_arg(parser_render)
    parser_render.add_argument(
        "--target",
        "-t",
        help="Directory to write the files into, it is wiped first.",
    )
    parser_render.add_argument(
        "--stdout",
        action="store_true",
        default=False,
        help="Print the files instead of writing them (default when no"
        " --target is given).",
    )
    parser_render.set_defaults(action=("render", handle_render_args))

    parser_apply = subparsers.add_parser(
        "apply", help="Apply a network configuration to this host."
    )
    _add_config_arg(parser_apply)
    parser_apply.add_argument(
        "--timeout",
        type=float,
        help="Seconds to wait for the network to become routable"
        " (default: boot_apply_timeout from the hostnetd configuration).",
    )
    quorum = parser_apply.add_mutually_exclusive_group()
    quorum.add_argument(
        "--require-all",
        dest="require_all",
        action="store_const",
        const=True,
        help="Wait for every configured device to become routable.",
    )
    quorum.add_argument(
        "--require-any",
        dest="require_all",
        action="store_const",
        const=False,
        help="Wait for one routable device per device kind.",
    )
    parser_apply.add_argument(
        "--enable-units",
        action="store_true",
        default=False,
        help="Enable and start %s and %s first."
        % (settings.NETWORKD_SERVICE, settings.TIMESYNCD_SERVICE),
    )
    parser_apply.set_defaults(
        action=("apply", handle_apply_args), require_all=None
    )

    parser_validate = subparsers.add_parser(
        "validate", help="Validate a network configuration."
    )
    _add_config_arg(parser_validate)
    parser_validate.add_argument(
        "--show",
        action="store_true",
        default=False,
        help="Print the normalized configuration as YAML.",
    )
    parser_validate.set_defaults(action=("validate", handle_validate_args))
    return parser


def sub_main(args):
    (name, functor) = args.action

    if args.debug:
        log.setup_basic_logging(logging.DEBUG)
    else:
        # apply runs as a boot service, keep its progress in the journal
        level = logging.INFO if name == "apply" else logging.WARNING
        log.setup_logging(args.hostnetd_cfg, level)

    try:
        return functor(name, args)
    except (ValueError, TypeError, OSError, RuntimeError) as e:
        util.logexc(LOG, "hostnetd %s failed", name)
        return error(e)


def main(sysv_args=None):
    log.configure_root_logger()
    if not sysv_args:
        sysv_args = list(sys.argv)
    parser = get_parser(prog=os.path.basename(sysv_args.pop(0)))
    args = parser.parse_args(args=sysv_args)
    args.hostnetd_cfg = util.read_hostnetd_config(args.cfg_file)
    return sub_main(args)


if __name__ == "__main__":
    sys.exit(main(sys.argv))
