# This file is part of hostnetd. See LICENSE file for license information.

import collections.abc
import io
import logging
import logging.config
import os
import sys
import time
from contextlib import suppress

DEFAULT_LOG_FORMAT = "%(asctime)s - %(filename)s[%(levelname)s]: %(message)s"


def setup_basic_logging(level=logging.DEBUG, formatter=None):
    formatter = formatter or logging.Formatter(DEFAULT_LOG_FORMAT)
    root = logging.getLogger()
    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    console.setLevel(level)
    root.addHandler(console)
    root.setLevel(level)


def setup_logging(cfg=None, level=logging.INFO):
    """Configure logging from the ``log_cfgs`` entry of the daemon config.

    Each entry is either a path to a ``logging.config.fileConfig`` file or
    the content of one (a string or a list of lines). The first entry that
    loads wins. Without a usable entry, basic stderr logging at ``level``
    is set up unless ``log_basic`` is false.
    """
    if not cfg:
        cfg = {}

    log_cfgs = []
    for a_cfg in cfg.get("log_cfgs") or []:
        if isinstance(a_cfg, str):
            log_cfgs.append(a_cfg)
        elif isinstance(a_cfg, (collections.abc.Iterable)):
            log_cfgs.append("\n".join([str(c) for c in a_cfg]))
        else:
            log_cfgs.append(str(a_cfg))

    am_tried = 0
    for log_cfg in log_cfgs:
        # A configured handler may point at a socket or file that does
        # not exist yet this early in boot.
        with suppress(FileNotFoundError):
            am_tried += 1

            # If the value is not a filename, assume that it is a config.
            if not (log_cfg.startswith("/") and os.path.isfile(log_cfg)):
                log_cfg = io.StringIO(log_cfg)

            logging.config.fileConfig(log_cfg)
            return

    if am_tried:
        sys.stderr.write(
            "WARN: no logging configured! (tried %s configs)\n" % (am_tried)
        )
    if cfg.get("log_basic", True):
        setup_basic_logging(level)


def reset_logging():
    """Remove all current handlers and unset log level."""
    log = logging.getLogger()
    handlers = list(log.handlers)
    for h in handlers:
        h.flush()
        h.close()
        log.removeHandler(h)
    log.setLevel(logging.NOTSET)


def configure_root_logger():
    """Customize the root logger for hostnetd"""

    # Always format logging timestamps as UTC time
    logging.Formatter.converter = time.gmtime
    reset_logging()
