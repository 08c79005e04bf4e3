"""Borough and ZIP code boundary polygons used for the report maps."""

import logging
from pathlib import Path
from typing import Optional, Union

import geopandas as gpd

from . import config


logger = logging.getLogger(__name__)


def _load_boundaries(path: Union[str, Path], key: str) -> gpd.GeoDataFrame:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Boundary file not found: {path}")

    gdf = gpd.read_file(path)
    if key not in gdf.columns:
        raise ValueError(f"Boundary file {path} has no '{key}' column")

    if gdf.crs is None:
        gdf = gdf.set_crs("EPSG:4326")
    else:
        gdf = gdf.to_crs("EPSG:4326")  # Ensure consistent CRS

    gdf[key] = gdf[key].astype(str)
    logger.info("Loaded %d boundary polygons from %s", len(gdf), path)
    return gdf[[key, "geometry"]]


def load_borough_boundaries(path: Optional[Union[str, Path]] = None) -> gpd.GeoDataFrame:
    """Load borough polygons keyed by ``boro_name``."""
    if path is None:
        path = config.BOROUGH_BOUNDARIES_PATH
    return _load_boundaries(path, config.BOROUGH_BOUNDARY_KEY)


def load_zip_boundaries(
    path: Optional[Union[str, Path]] = None, key: Optional[str] = None
) -> gpd.GeoDataFrame:
    """Load ZIP code polygons keyed by ``key`` (``modzcta`` by default).

    Multiple polygons per ZIP are dissolved into one so the key is unique.
    """
    if path is None:
        path = config.ZIP_BOUNDARIES_PATH
    if key is None:
        key = config.ZIP_BOUNDARY_KEY

    gdf = _load_boundaries(path, key)
    if gdf[key].duplicated().any():
        gdf = gdf.dissolve(by=key, as_index=False)
    return gdf
