# This file is part of hostnetd. See LICENSE file for license information.

import pytest

from hostnetd import seed


class TestNetworkSeedExists:
    @pytest.mark.parametrize("fname", seed.NETWORK_SEED_FILES)
    def test_seed_present(self, fname, tmp_path):
        (tmp_path / fname).write_text("{}")
        assert seed.network_seed_exists(str(tmp_path))

    def test_other_files_are_not_a_network_seed(self, tmp_path):
        (tmp_path / "install.yaml").write_text("{}")
        (tmp_path / "network.yaml.d").mkdir()
        assert not seed.network_seed_exists(str(tmp_path))

    def test_missing_seed_dir(self, tmp_path):
        assert not seed.network_seed_exists(str(tmp_path / "missing"))

    def test_default_seed_dir(self, mocker):
        m_isfile = mocker.patch("hostnetd.seed.os.path.isfile")
        m_isfile.return_value = False
        assert not seed.network_seed_exists()
        m_isfile.assert_any_call("/root/seed/network.yaml")
