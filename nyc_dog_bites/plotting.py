"""
Plotting functions for the NYC dog bite report.
"""

import matplotlib.pyplot as plt
import pandas as pd

from . import config


def _label_boroughs(ax, gdf_boros, label_col, fontsize=8):
    """Write each borough name at a point guaranteed to fall inside its polygon."""
    points = gdf_boros.geometry.representative_point()
    for name, point in zip(gdf_boros[label_col], points):
        ax.text(
            point.x,
            point.y,
            name,
            ha="center",
            va="center",
            fontsize=fontsize,
            fontweight="bold",
            bbox={"boxstyle": "round,pad=0.25", "facecolor": "white", "edgecolor": "none", "alpha": 0.7},
        )


def plot_borough_choropleth(
    df,
    gdf_boros,
    borough_col="county_borough",
    title="Dog Bites by Borough",
    cmap="Reds",
    figsize=(10, 10),
):
    """
    Create a choropleth of incident counts per borough.

    Parameters:
    -----------
    df : pandas.DataFrame
        Final incidents
    gdf_boros : geopandas.GeoDataFrame
        Borough polygons keyed by ``boro_name``
    borough_col : str
        Column in ``df`` holding the borough name matching ``boro_name``
    title : str
        Title for the plot
    cmap : str
        Colormap name
    figsize : tuple
        Figure size (width, height)

    Returns:
    --------
    fig, ax : matplotlib figure and axes objects
    """
    key = config.BOROUGH_BOUNDARY_KEY
    counts = df.groupby(borough_col, observed=True).size().rename("incidents").reset_index()
    counts[borough_col] = counts[borough_col].astype(str)

    gdf = gdf_boros.merge(counts, left_on=key, right_on=borough_col, how="left")
    gdf["incidents"] = gdf["incidents"].fillna(0)
    gdf_3857 = gdf.to_crs(3857)

    fig, ax = plt.subplots(figsize=figsize)
    gdf_3857.plot(
        ax=ax,
        column="incidents",
        cmap=cmap,
        edgecolor="white",
        linewidth=0.8,
        legend=True,
        legend_kwds={"label": "Incidents", "shrink": 0.6},
    )
    _label_boroughs(ax, gdf_3857, key, fontsize=9)

    ax.set_title(title, fontsize=14)
    ax.set_axis_off()

    plt.tight_layout()
    return fig, ax


def plot_zip_choropleth(
    df_rates,
    gdf_zip,
    zip_key=None,
    gdf_boros=None,
    value_col="rate_per_10k",
    title="Dog Bites per 10,000 Residents by ZIP Code",
    cmap="YlOrRd",
    figsize=(12, 12),
):
    """
    Create a ZIP-level choropleth with optional borough outlines.

    ZIP areas with no incidents or no population are drawn in light grey.

    Parameters:
    -----------
    df_rates : pandas.DataFrame
        Output of ``reporting.zip_rates`` (``zip_code`` plus ``value_col``)
    gdf_zip : geopandas.GeoDataFrame
        ZIP polygons
    zip_key : str, optional
        ZIP column in ``gdf_zip``. Defaults to ``config.ZIP_BOUNDARY_KEY``
    gdf_boros : geopandas.GeoDataFrame, optional
        Borough polygons drawn as outlines and labels
    value_col : str
        Column to color by
    title : str
        Title for the plot
    cmap : str
        Colormap name
    figsize : tuple
        Figure size (width, height)

    Returns:
    --------
    fig, ax : matplotlib figure and axes objects
    """
    if zip_key is None:
        zip_key = config.ZIP_BOUNDARY_KEY

    rates = df_rates[["zip_code", value_col]].copy()
    rates["zip_code"] = rates["zip_code"].astype(str)
    rates[value_col] = pd.to_numeric(rates[value_col], errors="coerce").astype("float64")

    gdf = gdf_zip.merge(rates, left_on=zip_key, right_on="zip_code", how="left")
    gdf_3857 = gdf.to_crs(3857)

    fig, ax = plt.subplots(figsize=figsize)
    gdf_3857.plot(
        ax=ax,
        column=value_col,
        cmap=cmap,
        edgecolor="white",
        linewidth=0.3,
        legend=True,
        legend_kwds={"label": value_col.replace("_", " "), "shrink": 0.6},
        missing_kwds={"color": "lightgrey", "label": "No data"},
    )

    if gdf_boros is not None:
        gdf_boros_3857 = gdf_boros.to_crs(3857)
        gdf_boros_3857.boundary.plot(ax=ax, color="black", linewidth=0.8)
        _label_boroughs(ax, gdf_boros_3857, config.BOROUGH_BOUNDARY_KEY)

    ax.set_title(title, fontsize=14)
    ax.set_axis_off()

    plt.tight_layout()
    return fig, ax


def plot_monthly_time_series(
    df_monthly,
    title="Reported Dog Bites per Month",
    rolling_window=12,
    figsize=(12, 5),
):
    """
    Plot monthly incident counts with a trailing rolling mean.

    Parameters:
    -----------
    df_monthly : pandas.DataFrame
        Output of ``reporting.monthly_counts`` (``month``, ``incidents``)
    title : str
        Title for the plot
    rolling_window : int
        Window in months for the smoothed line
    figsize : tuple
        Figure size (width, height)

    Returns:
    --------
    fig, ax : matplotlib figure and axes objects
    """
    fig, ax = plt.subplots(figsize=figsize)

    ax.plot(df_monthly["month"], df_monthly["incidents"], color="steelblue", linewidth=1, label="Monthly")
    if len(df_monthly) >= rolling_window:
        smoothed = df_monthly["incidents"].rolling(rolling_window).mean()
        ax.plot(
            df_monthly["month"],
            smoothed,
            color="darkred",
            linewidth=2,
            label=f"{rolling_window}-month mean",
        )

    ax.set_title(title, fontsize=14)
    ax.set_xlabel("Month")
    ax.set_ylabel("Incidents")
    ax.grid(alpha=0.3)
    ax.legend(loc="upper left")

    plt.tight_layout()
    return fig, ax
