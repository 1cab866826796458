"""File naming for data partitioned by tile."""

from __future__ import annotations

import os


def tile_db_name(db_name: str, tile: int) -> str:
    """Path of the per-tile file derived from a base name.

    Examples::

        tile_db_name("/path/to/database/ola.db", 6)  # "/path/to/database/ola.6.db"
        tile_db_name("./ola.db", 6)                   # "./ola.6.db"
        tile_db_name("ola.db", 6)                     # "./ola.6.db"
    """
    directory, filename = os.path.split(db_name)
    if not directory.strip():
        directory = "."
    stem, ext = os.path.splitext(filename)
    return os.path.join(directory, f"{stem}.{tile}{ext}")
