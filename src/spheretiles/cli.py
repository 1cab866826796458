"""CLI entry point for spheretiles."""

from __future__ import annotations

import logging
import math
import sys

import click
from astropy import units as u
from astropy.coordinates import Latitude, Longitude
from pydantic import ValidationError

from spheretiles.abrate import AbrateTessellation
from spheretiles.config import TessellationConfig
from spheretiles.coords import LatLon
from spheretiles.fibonacci import FibonacciSphere
from spheretiles.naming import tile_db_name
from spheretiles.tessellation import SphericalTessellation

logger = logging.getLogger(__name__)

# negative angles must not be taken for options
_ANGLE_ARGS = {"ignore_unknown_options": True}


def _parse_latlon(lat: str, lon: str) -> LatLon:
    """Parse angles with astropy; bare numbers are degrees."""
    try:
        lat_angle = Latitude(lat, unit=u.deg)
        lon_angle = Longitude(lon, unit=u.deg, wrap_angle=180 * u.deg)
    except (ValueError, u.UnitsError) as exc:
        raise click.BadParameter(f"cannot parse coordinates ({lat}, {lon}): {exc}")
    return LatLon(float(lat_angle.radian), float(lon_angle.radian))


def _load(ctx: click.Context) -> SphericalTessellation:
    opts = ctx.obj
    try:
        if opts["config_yaml"]:
            config = TessellationConfig.from_yaml(opts["config_yaml"])
        else:
            config = TessellationConfig(
                scheme=opts["scheme"],
                num_tiles=opts["num_tiles"],
                n=opts["n"],
                m=opts["m"],
            )
        tessellation = config.build()
    except (ValidationError, ValueError, OSError) as exc:
        click.echo(f"Invalid tessellation configuration: {exc}", err=True)
        raise SystemExit(1)
    logger.debug("Using %r", tessellation)
    return tessellation


def _require_abrate(tessellation: SphericalTessellation) -> AbrateTessellation:
    if not isinstance(tessellation, AbrateTessellation):
        click.echo("This command needs the abrate scheme.", err=True)
        raise SystemExit(1)
    return tessellation


def _fmt(lv: LatLon) -> str:
    lat, lon = lv.to_degrees()
    return f"{lon % 360.0:10.5f}, {lat:9.5f}"


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.option(
    "--config", "config_yaml", default=None, help="Path to tessellation config YAML."
)
@click.option(
    "--scheme",
    type=click.Choice(["abrate", "fibonacci"]),
    default="abrate",
    show_default=True,
    help="Tessellation scheme when no config file is given.",
)
@click.option("--tiles", "num_tiles", type=int, default=None, help="Number of tiles.")
@click.option("--turns", "n", type=int, default=None, help="Spiral turns (abrate).")
@click.option("--quads", "m", type=int, default=None, help="Non-polar tiles (abrate).")
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    config_yaml: str | None,
    scheme: str,
    num_tiles: int | None,
    n: int | None,
    m: int | None,
) -> None:
    """spheretiles: equal-area tessellations of the unit sphere."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
        stream=sys.stderr,
    )
    ctx.obj = {
        "config_yaml": config_yaml,
        "scheme": scheme,
        "num_tiles": num_tiles,
        "n": n,
        "m": m,
    }


@cli.command()
@click.pass_context
def info(ctx: click.Context) -> None:
    """Describe the tessellation."""
    tessellation = _load(ctx)
    click.echo(f"Scheme:     {type(tessellation).__name__}")
    click.echo(f"Tiles:      {tessellation.num_tiles}")
    if isinstance(tessellation, AbrateTessellation):
        area = tessellation.tile_area
        click.echo(f"Turns (n):  {tessellation.n}")
        click.echo(f"Quads (m):  {tessellation.m}")
    else:
        area = 4.0 * math.pi / tessellation.num_tiles
    click.echo(f"Tile area:  {area:.6g} sr ({area * (180.0 / math.pi) ** 2:.6g} deg2)")


@cli.command(context_settings=_ANGLE_ARGS)
@click.argument("lat")
@click.argument("lon")
@click.option("--db", default=None, help="Base database name; prints the per-tile file.")
@click.pass_context
def lookup(ctx: click.Context, lat: str, lon: str, db: str | None) -> None:
    """Find the tile containing LAT LON (degrees unless a unit is given)."""
    tessellation = _load(ctx)
    index = tessellation.tile_index(_parse_latlon(lat, lon))
    click.echo(str(index))
    if db:
        click.echo(tile_db_name(db, index))


@cli.command()
@click.argument("index", type=int)
@click.pass_context
def center(ctx: click.Context, index: int) -> None:
    """Print the center (and vertices) of tile INDEX."""
    tessellation = _load(ctx)
    try:
        lv = tessellation.tile_center(index)
    except IndexError as exc:
        click.echo(str(exc), err=True)
        raise SystemExit(1)
    click.echo(f"{'# vertex':>8}, {'longitude':>10}, {'latitude':>9}")
    click.echo(f"{'center':>8}, {_fmt(lv)}")
    if isinstance(tessellation, AbrateTessellation):
        for vnum in range(4):
            click.echo(f"{vnum:8d}, {_fmt(tessellation.tile_vertex(index, vnum))}")


@cli.command()
@click.pass_context
def coords(ctx: click.Context) -> None:
    """Print every tile center (degrees, longitude in [0, 360))."""
    tessellation = _load(ctx)
    click.echo(f"{'# index':>7}, {'longitude':>10}, {'latitude':>9}")
    for i in range(tessellation.num_tiles):
        click.echo(f"{i:7d}, {_fmt(tessellation.tile_center(i))}")


@cli.command(context_settings=_ANGLE_ARGS)
@click.argument("lat")
@click.argument("lon")
@click.option("--limit", default=0, help="Print only the nearest LIMIT tiles.")
@click.pass_context
def distance(ctx: click.Context, lat: str, lon: str, limit: int) -> None:
    """Print tiles sorted by distance from LAT LON."""
    tessellation = _load(ctx)
    rows = tessellation.distance_map(_parse_latlon(lat, lon))
    if limit > 0:
        rows = rows[:limit]
    click.echo(f"{'#  distance':>11}, {'index':>5}, {'longitude':>10}, {'latitude':>9}")
    click.echo(f"{'# (degrees)':>11}, {'':>5}, {'(degrees)':>10}, {'(degrees)':>9}")
    for angle, index in rows:
        click.echo(
            f"{math.degrees(angle):11.5f}, {index:5d}, "
            f"{_fmt(tessellation.tile_center(index))}"
        )


@cli.command()
@click.pass_context
def stats(ctx: click.Context) -> None:
    """Statistics on the distance from each point to its nearest neighbor."""
    tessellation = _load(ctx)
    if not isinstance(tessellation, FibonacciSphere):
        click.echo("This command needs the fibonacci scheme.", err=True)
        raise SystemExit(1)
    click.echo(
        "Statistics on distances between each point and its nearest neighbor (degrees):"
    )
    click.echo(str(tessellation.distance_stats()))


@cli.command()
@click.argument("index", type=int)
@click.pass_context
def neighbors(ctx: click.Context, index: int) -> None:
    """Print the tiles adjacent to tile INDEX."""
    tessellation = _require_abrate(_load(ctx))
    try:
        left = tessellation.left_tile(index)
    except IndexError as exc:
        click.echo(str(exc), err=True)
        raise SystemExit(1)
    click.echo(f"Left:  {left}")
    click.echo(f"Right: {tessellation.right_tile(index)}")
    click.echo(f"Above: {' '.join(str(t) for t in tessellation.above_tiles(index))}")
    click.echo(f"Below: {' '.join(str(t) for t in tessellation.below_tiles(index))}")


@cli.command(context_settings=_ANGLE_ARGS)
@click.argument("vertices", nargs=-1, required=True)
@click.pass_context
def within(ctx: click.Context, vertices: tuple[str, ...]) -> None:
    """Print tiles whose centers lie inside the polygon VERTICES (LAT,LON ...)."""
    tessellation = _require_abrate(_load(ctx))
    outline = []
    for vertex in vertices:
        parts = vertex.split(",")
        if len(parts) != 2:
            raise click.BadParameter(f"expected LAT,LON, got {vertex!r}")
        outline.append(_parse_latlon(parts[0].strip(), parts[1].strip()))

    tiles = sorted(tessellation.tiles_within(outline))
    click.echo(" ".join(str(t) for t in tiles))
    click.echo(f"{len(tiles)} tiles inside the polygon.", err=True)
