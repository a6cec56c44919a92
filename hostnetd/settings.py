# This file is part of hostnetd. See LICENSE file for license information.

# Set and read for determining the daemon config file location
CFG_ENV_NAME = "HOSTNETD_CFG"

# This is expected to be a yaml formatted file
HOSTNETD_CONFIG = "/etc/hostnetd/hostnetd.cfg"

# Units managed during an apply cycle
NETWORKD_SERVICE = "systemd-networkd"
TIMESYNCD_SERVICE = "systemd-timesyncd"

# What u get if no config is provided
CFG_BUILTIN = {
    "network_conf_dir": "/run/systemd/network",
    "timesync_conf_file": "/etc/systemd/timesyncd.conf.d/local.conf",
    "proxy_env_file": "/etc/environment.d/10-hostnetd-proxy.conf",
    "seed_dir": "/root/seed",
    "udev_control_socket": "/run/udev/control",
    # seconds to wait for udev to come up before triggering it
    "udev_ready_timeout": 10,
    # used only when the host exposes no udev readiness signal
    "udev_fallback_delay": 2,
    "poll_interval": 0.5,
    # upper bound, in seconds, for any single host command
    "command_timeout": 60,
    "api_apply_timeout": 10,
    "boot_apply_timeout": 30,
    "log_cfgs": [],
    "log_basic": True,
}
