# This file is part of hostnetd. See LICENSE file for license information.

import copy as obj_copy
import json
import logging
import os
import shutil
import time
from typing import Any, Dict, Mapping, Optional, Sequence, Union

import yaml

from hostnetd import settings

LOG = logging.getLogger(__name__)

TRUE_STRINGS = ("true", "1", "on", "yes")
FALSE_STRINGS = ("off", "0", "no", "false")


def decode_binary(blob: Union[str, bytes], encoding="utf-8") -> str:
    # Converts a binary type into a text type using given encoding.
    return blob if isinstance(blob, str) else blob.decode(encoding=encoding)


def encode_text(text: Union[str, bytes], encoding="utf-8") -> bytes:
    # Converts a text string into a binary type using given encoding.
    return text if isinstance(text, bytes) else text.encode(encoding=encoding)


def is_true(val, addons=None):
    if isinstance(val, (bool)):
        return val is True
    check_set = TRUE_STRINGS
    if addons:
        check_set = list(check_set) + addons
    if str(val).lower().strip() in check_set:
        return True
    return False


def translate_bool(val, addons=None):
    if not val:
        # This handles empty lists and false and
        # other things that python believes are false
        return False
    # If its already a boolean skip
    if isinstance(val, (bool)):
        return val
    return is_true(val, addons)


def get_cfg_option_str(yobj, key, default=None):
    if key not in yobj:
        return default
    val = yobj[key]
    if not isinstance(val, str):
        val = str(val)
    return val


def get_cfg_option_float(yobj, key, default=0.0) -> float:
    return float(get_cfg_option_str(yobj, key, default=default))


def mergemanydict(sources: Sequence[Mapping], reverse=False) -> dict:
    """Merge multiple dicts, the first source having the highest priority.

    Nested dicts are merged key by key. Any other value (including lists and
    None) present in a higher priority source replaces the lower priority
    value as a whole.

    Example:
    a = {"a": 1, "c": [1, 2, 3], "d": {"a": 1, "b": 2}}
    b = {"a": 10, "c": [4], "d": {"a": 3, "f": 10}, "e": 20}

    mergemanydict([a, b]) results in:
    {"a": 1, "c": [1, 2, 3], "d": {"a": 1, "b": 2, "f": 10}, "e": 20}
    """
    if reverse:
        sources = list(reversed(sources))
    merged_cfg: dict = {}
    for cfg in reversed(list(sources)):
        if cfg:
            merged_cfg = _merge_dict(merged_cfg, cfg)
    return merged_cfg


def _merge_dict(base: Mapping, override: Mapping) -> dict:
    merged = obj_copy.deepcopy(dict(base))
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = _merge_dict(merged[key], value)
        else:
            merged[key] = obj_copy.deepcopy(value)
    return merged


def load_yaml(blob, default=None, allowed=(dict,)):
    loaded = default
    blob = decode_binary(blob)
    try:
        LOG.debug(
            "Attempting to load yaml from string "
            "of length %s with allowed root types %s",
            len(blob),
            allowed,
        )
        converted = yaml.safe_load(blob)
        if converted is None:
            LOG.debug("loaded blob returned None, returning default.")
            converted = default
        elif not isinstance(converted, allowed):
            # Yes this will just be caught, but thats ok for now...
            raise TypeError(
                "Yaml load allows %s root types, but got %s instead"
                % (allowed, type(converted).__name__)
            )
        loaded = converted
    except (yaml.YAMLError, TypeError, ValueError) as e:
        msg = "Failed loading yaml blob"
        mark = getattr(e, "context_mark", None) or getattr(
            e, "problem_mark", None
        )
        if mark:
            msg += (
                '. Invalid format at line {line} column {col}: "{err}"'.format(
                    line=mark.line + 1, col=mark.column + 1, err=e
                )
            )
        else:
            msg += ". {err}".format(err=e)
        LOG.warning(msg)
    return loaded


def load_json(text, root_types=(dict,)):
    decoded = json.loads(decode_binary(text))
    if not isinstance(decoded, tuple(root_types)):
        expected_types = ", ".join([str(t) for t in root_types])
        raise TypeError(
            "(%s) root types expected, got %s instead"
            % (expected_types, type(decoded))
        )
    return decoded


def load_text_file(fname: Union[str, os.PathLike]) -> str:
    LOG.debug("Reading from %s", fname)
    with open(fname, "rb") as ifh:
        return decode_binary(ifh.read())


def read_conf(fname) -> Dict:
    """Read a yaml config and convert to dict"""
    try:
        config_file = load_text_file(fname)
    except FileNotFoundError:
        return {}
    return load_yaml(config_file, default={})


def read_hostnetd_config(fname: Optional[str] = None) -> Dict[str, Any]:
    """Return the daemon configuration merged over the builtin defaults.

    The file location is, in order of precedence, ``fname``, the
    ``HOSTNETD_CFG`` environment variable and ``settings.HOSTNETD_CONFIG``.
    A missing file yields the builtin defaults.
    """
    if not fname:
        fname = os.environ.get(settings.CFG_ENV_NAME, settings.HOSTNETD_CONFIG)
    return mergemanydict([read_conf(fname), settings.CFG_BUILTIN])


def logexc(
    log, msg, *args, log_level: int = logging.WARNING, exc_info=True
) -> None:
    log.log(log_level, msg, *args)
    log.debug(msg, exc_info=exc_info, *args)


def chmod(path, mode):
    if path and mode is not None:
        os.chmod(path, mode)


def ensure_dir(path, mode=None):
    if not os.path.isdir(path):
        os.makedirs(path)
    chmod(path, mode)


def del_dir(path):
    LOG.debug("Recursively deleting %s", path)
    shutil.rmtree(path)


def del_file(path):
    LOG.debug("Attempting to remove %s", path)
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass


def write_file(
    filename,
    content,
    mode=0o644,
    omode="wb",
    *,
    ensure_dir_exists=True,
):
    """
    Writes a file with the given content and sets the file mode as specified.

    @param filename: The full path of the file to write.
    @param content: The content to write to the file.
    @param mode: The filesystem mode to set on the file.
    @param omode: The open mode used when opening the file (w, wb, a, etc.)
    @param ensure_dir_exists: If True (the default), ensure that the directory
                              containing `filename` exists before writing to
                              the file.
    """
    if ensure_dir_exists:
        ensure_dir(os.path.dirname(filename))
    if "b" in omode.lower():
        content = encode_text(content)
        write_type = "bytes"
    else:
        content = decode_binary(content)
        write_type = "characters"
    LOG.debug(
        "Writing to %s - %s: [%o] %s %s",
        filename,
        omode,
        mode,
        len(content),
        write_type,
    )
    with open(filename, omode) as fh:
        fh.write(content)
        fh.flush()
    chmod(filename, mode)


def wait_for_files(flist, maxwait, naplen=0.5, log_pre="", cancel=None):
    """Wait up to maxwait seconds for every file in flist to exist.

    Returns the set of files still missing. When the threading.Event
    cancel gets set the wait stops early.
    """
    need = set(flist)
    waited = 0
    while True:
        need -= set([f for f in need if os.path.exists(f)])
        if len(need) == 0:
            LOG.debug(
                "%sAll files appeared after %s seconds: %s",
                log_pre,
                waited,
                flist,
            )
            return []
        if waited == 0:
            LOG.debug(
                "%sWaiting up to %s seconds for the following files: %s",
                log_pre,
                maxwait,
                flist,
            )
        if waited + naplen > maxwait:
            break
        if cancel is None:
            time.sleep(naplen)
        elif cancel.wait(naplen):
            LOG.debug("%sWait for files cancelled: %s", log_pre, need)
            return need
        waited += naplen

    LOG.debug(
        "%sStill missing files after %s seconds: %s", log_pre, maxwait, need
    )
    return need
