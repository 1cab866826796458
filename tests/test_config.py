"""Tests for spheretiles.config."""

import pytest

from spheretiles.abrate import AbrateTessellation
from spheretiles.config import TessellationConfig
from spheretiles.fibonacci import FibonacciSphere


class TestTessellationConfig:
    def test_defaults_need_sizing(self):
        with pytest.raises(ValueError, match="requires num_tiles or both n and m"):
            TessellationConfig()

    def test_default_scheme(self, sample_config):
        assert sample_config.scheme == "abrate"
        assert sample_config.n is None

    def test_rejects_non_positive(self):
        with pytest.raises(ValueError, match="must be positive"):
            TessellationConfig(num_tiles=0)
        with pytest.raises(ValueError, match="must be positive"):
            TessellationConfig(n=-3, m=100)

    def test_rejects_unknown_scheme(self):
        with pytest.raises(ValueError):
            TessellationConfig(scheme="healpix", num_tiles=12)

    def test_rejects_half_spiral(self):
        with pytest.raises(ValueError, match="requires num_tiles or both n and m"):
            TessellationConfig(n=10)

    def test_rejects_both_sizings(self):
        with pytest.raises(ValueError, match="not both"):
            TessellationConfig(num_tiles=100, n=10, m=100)

    def test_fibonacci_needs_count(self):
        with pytest.raises(ValueError, match="fibonacci scheme requires num_tiles"):
            TessellationConfig(scheme="fibonacci")

    def test_fibonacci_rejects_spiral(self):
        with pytest.raises(ValueError, match="only apply to the abrate scheme"):
            TessellationConfig(scheme="fibonacci", num_tiles=100, n=3)


class TestBuild:
    def test_abrate_from_count(self, sample_config):
        tessellation = sample_config.build()
        assert tessellation == AbrateTessellation.from_num_tiles(1000)

    def test_abrate_from_spiral(self):
        tessellation = TessellationConfig(n=12, m=180).build()
        assert tessellation == AbrateTessellation(12, 180)

    def test_fibonacci(self):
        tessellation = TessellationConfig(scheme="fibonacci", num_tiles=250).build()
        assert isinstance(tessellation, FibonacciSphere)
        assert tessellation.num_tiles == 250


class TestYaml:
    def test_yaml_round_trip(self, sample_config, tmp_path):
        path = tmp_path / "config.yaml"
        sample_config.to_yaml(path)
        loaded = TessellationConfig.from_yaml(path)
        assert loaded == sample_config

    def test_content_round_trip(self):
        cfg = TessellationConfig(scheme="abrate", n=12, m=180)
        assert TessellationConfig.from_yaml_content(cfg.to_yaml_content()) == cfg

    def test_omits_unset_fields(self, sample_config):
        content = sample_config.to_yaml_content()
        assert "scheme: abrate" in content
        assert "num_tiles: 1000" in content
        assert "n:" not in content

    def test_from_content(self):
        cfg = TessellationConfig.from_yaml_content(
            "scheme: fibonacci\nnum_tiles: 4000\n"
        )
        assert cfg.scheme == "fibonacci"
        assert cfg.num_tiles == 4000

    def test_invalid_content(self):
        with pytest.raises(ValueError, match="must be positive"):
            TessellationConfig.from_yaml_content("num_tiles: -5\n")

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            TessellationConfig.from_yaml(tmp_path / "nope.yaml")
