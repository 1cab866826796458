"""Tests for spheretiles.naming."""

import pytest

from spheretiles.naming import tile_db_name


class TestTileDbName:
    @pytest.mark.parametrize(
        "db_name, expected",
        [
            ("/path/to/database/ola.db", "/path/to/database/ola.6.db"),
            ("./ola.db", "./ola.6.db"),
            ("ola.db", "./ola.6.db"),
            ("data/ola", "data/ola.6"),
            ("/tmp/lidar.points.sqlite", "/tmp/lidar.points.6.sqlite"),
        ],
    )
    def test_inserts_tile_before_extension(self, db_name, expected):
        assert tile_db_name(db_name, 6) == expected

    def test_multi_digit_tile(self):
        assert tile_db_name("ola.db", 12345) == "./ola.12345.db"
