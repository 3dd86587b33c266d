"""CLI entry point for inspecting IIIF image pyramids."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
import requests

from pyramidview.config import HTTP_TIMEOUT_SECS
from pyramidview.core.iiif import IiifError, ImageFeature, image_info_url
from pyramidview.core.tiled_image import TiledImage

logger = logging.getLogger(__name__)

INFO_SUFFIX = "/info.json"


def _is_remote(source: str) -> bool:
    return source.startswith(("http://", "https://"))


def _load_tiled_image(source: str, endpoint: str | None) -> TiledImage:
    """Build a pyramid from a remote endpoint or a local ``info.json`` file.

    Exits the process with an error message if the description cannot be
    fetched or parsed.
    """
    try:
        if _is_remote(source):
            base = source[: -len(INFO_SUFFIX)] if source.endswith(INFO_SUFFIX) else source
            url = image_info_url(base)
            logger.info("Fetching %s", url)
            response = requests.get(url, timeout=HTTP_TIMEOUT_SECS)
            response.raise_for_status()
            payload = response.content
            endpoint = endpoint or base
        else:
            path = Path(source)
            payload = path.read_bytes()
            endpoint = endpoint or str(path.parent)
        return TiledImage.from_json(payload, endpoint)
    except requests.RequestException as e:
        click.echo(click.style(f"Error: failed to fetch {source}: {e}", fg="red"), err=True)
    except OSError as e:
        click.echo(click.style(f"Error: cannot read {source}: {e}", fg="red"), err=True)
    except IiifError as e:
        click.echo(click.style(f"Error: invalid image description: {e}", fg="red"), err=True)
    sys.exit(1)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
def main(verbose: bool) -> None:
    """Inspect deep-zoom images served by an IIIF Image API endpoint.

    SOURCE is an image service endpoint (http/https) or a local info.json file.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@main.command()
@click.argument("source")
@click.option("--endpoint", help="Image service endpoint used in URLs (local files only)")
def info(source: str, endpoint: str | None) -> None:
    """Print the dimensions, tiling and levels of an image."""
    image = _load_tiled_image(source, endpoint)
    max_size = image.max_size
    tiling = (
        ImageFeature.REGION_BY_PX in image.supported_features
        and ImageFeature.SIZE_BY_WH in image.supported_features
    )

    click.echo(click.style(image.endpoint, fg="cyan", bold=True))
    click.echo(f"Size: {max_size.width}x{max_size.height}")
    click.echo(f"Tile size: {image.tile_size.width}x{image.tile_size.height}")
    click.echo(f"Format: {image.image_format.extension}")
    click.echo(f"Mode: {'tiled' if tiling else 'whole image'}")
    click.echo(f"Levels: {image.num_levels}")
    for level, size in enumerate(image.levels):
        click.echo(f"  {level}: {size.width}x{size.height}")
    thumbnail_url, _ = image.get_image_thumbnail(256)
    click.echo(f"Thumbnail: {thumbnail_url}")


@main.command()
@click.argument("source")
@click.option("--endpoint", help="Image service endpoint used in URLs (local files only)")
@click.option(
    "--zoom",
    "-z",
    type=click.FloatRange(min=0.0, min_open=True),
    required=True,
    help="Camera zoom scale in world units per screen pixel",
)
@click.option(
    "--viewport",
    nargs=2,
    type=click.FloatRange(min=0.0, min_open=True),
    default=(1024.0, 768.0),
    show_default=True,
    help="Viewport width and height in screen pixels",
)
@click.option(
    "--center",
    nargs=2,
    type=float,
    default=None,
    help="World position of the viewport centre (default: image centre)",
)
def tiles(
    source: str,
    endpoint: str | None,
    zoom: float,
    viewport: tuple[float, float],
    center: tuple[float, float] | None,
) -> None:
    """Print the level and tile URLs needed to show a viewport."""
    image = _load_tiled_image(source, endpoint)

    if center is None:
        center = image.get_world_max_size_rect().center
    half_w = viewport[0] * zoom / 2.0
    half_h = viewport[1] * zoom / 2.0
    world_min = (center[0] - half_w, center[1] - half_h)
    world_max = (center[0] + half_w, center[1] + half_h)

    level = image.get_level_at(zoom)
    required = image.get_required_tiles(level, world_min, world_max)

    click.echo(f"Level: {level} ({image.levels[level].width}x{image.levels[level].height})")
    click.echo(f"Tiles: {len(required.tiles)}")
    for tile in required.tiles:
        x, y, z = tile.index
        click.echo(f"  ({x}, {y}, {z}) {image.get_image_tile_url_at(tile.image_rect)}")


if __name__ == "__main__":
    main()
