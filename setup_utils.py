import os
import re
from typing import List

TOPDIR = os.path.dirname(os.path.realpath(__file__))


def is_f(p: str) -> bool:
    return os.path.isfile(p)


def version_to_pep440(version: str) -> str:
    # git describe style versions like 0.4.0-15-g7f97aee24 are invalid under
    # PEP 440, replacing the first - with a + gives a valid local version.
    return version.replace("-", "+", 1)


def get_version() -> str:
    with open(os.path.join(TOPDIR, "hostnetd", "version.py")) as fp:
        match = re.search(r'^__VERSION__ = "([^"]+)"', fp.read(), re.M)
    if not match:
        raise RuntimeError("Unable to find __VERSION__ in hostnetd/version.py")
    return version_to_pep440(match.group(1))


def read_requires(fname: str = "requirements.txt") -> List[str]:
    """Return the requirement lines of ``fname``, skipping comments."""
    path = os.path.join(TOPDIR, fname)
    if not is_f(path):
        return []
    deps = []
    with open(path) as fp:
        for line in fp:
            line = line.split("#", 1)[0].strip()
            if line and not line.startswith("-"):
                deps.append(line)
    return deps
