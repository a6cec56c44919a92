# This file is part of hostnetd. See LICENSE file for license information.

# Distutils magic for hostnetd

import os
import sys

import setuptools

# Python-path here is a little unpredictable as setup.py could be run
# from a directory other than the root of the repo, so ensure we can find
# our utils
sys.path.insert(0, os.path.dirname(os.path.realpath(__file__)))
# isort: off
from setup_utils import get_version, read_requires  # noqa: E402

# isort: on
del sys.path[0]

ETC = "/etc"

data_files = [
    (ETC + "/hostnetd", ["config/hostnetd.cfg"]),
]

requirements = read_requires()

setuptools.setup(
    name="hostnetd",
    version=get_version(),
    description="Render and apply systemd-networkd host network configuration",
    package_data={
        "hostnetd.net": ["schemas/*.json"],
    },
    packages=setuptools.find_packages(exclude=["tests.*", "tests"]),
    license="Apache-2.0",
    data_files=data_files,
    install_requires=requirements,
    extras_require={
        "test": read_requires("test-requirements.txt"),
    },
    python_requires=">=3.8",
    entry_points={
        "console_scripts": [
            "hostnetd = hostnetd.cmd.main:main",
        ],
    },
)
