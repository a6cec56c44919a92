# This file is part of hostnetd. See LICENSE file for license information.
import logging
import os

from hostnetd import settings

LOG = logging.getLogger(__name__)

NETWORK_SEED_FILES = ("network.yaml", "network.yml", "network.json")


def network_seed_exists(seed_dir=None) -> bool:
    """Return True when first boot network seed data is present.

    A seed means the host is being provisioned and has no prior working
    connectivity, so every configured device has to come up.
    """
    if seed_dir is None:
        seed_dir = settings.CFG_BUILTIN["seed_dir"]
    for fname in NETWORK_SEED_FILES:
        if os.path.isfile(os.path.join(seed_dir, fname)):
            LOG.debug("Found network seed %s in %s", fname, seed_dir)
            return True
    return False
