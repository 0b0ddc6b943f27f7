"""Plotly diagnostics of well-to-grid bindings."""

import logging
import typing

import numpy as np
import plotly.graph_objects as go

from wellbores.grids.base import MeshAdapter
from wellbores.wells.base import Wellbore

logger = logging.getLogger(__name__)

__all__ = ["plot_well_binding"]

_WELL_COLORS = (
    "#1f77b4",
    "#d62728",
    "#2ca02c",
    "#9467bd",
    "#ff7f0e",
    "#17becf",
)


def plot_well_binding(
    wellbores: typing.Iterable[Wellbore],
    mesh: typing.Optional[MeshAdapter] = None,
    figure: typing.Optional[go.Figure] = None,
    wellbore_width: float = 6.0,
    marker_size: float = 5.0,
    title: str = "Well binding",
) -> go.Figure:
    """
    Plot well trajectories against the cells they are bound to.

    Each trajectory is drawn as a line through its control points, and the centers of its
    bound cells as markers. Markers are colored by productivity when the productivities
    are up to date. Comparing both shows where the binding deviates from the real path.

    :param wellbores: The wellbores to plot. Located wellbores also show their bound cells.
    :param mesh: Mesh used to place the bound cells. Defaults to the mesh each wellbore
        was located on.
    :param figure: Figure to draw on. A new figure is created if not given.
    :param wellbore_width: Width of the trajectory lines.
    :param marker_size: Size of the cell markers.
    :param title: Figure title.
    :return: The figure.
    """
    figure = figure or go.Figure()
    for index, wellbore in enumerate(wellbores):
        name = wellbore.name or f"well {index}"
        color = _WELL_COLORS[index % len(_WELL_COLORS)]
        points = wellbore.trajectory.points
        figure.add_trace(
            go.Scatter3d(
                x=points[:, 0],
                y=points[:, 1],
                z=points[:, 2],
                mode="lines+markers" if wellbore.trajectory.is_point_well else "lines",
                line=dict(color=color, width=wellbore_width),
                name=f"{name} (trajectory)",
                legendgroup=name,
                hovertemplate=(
                    f"<b>{name}</b><br>"
                    f"Radius: {wellbore.trajectory.radius:.4g}<br>"
                    f"Skin: {wellbore.skin_factor:.4g}<br>"
                    "<extra></extra>"
                ),
            )
        )

        cell_mesh = mesh if mesh is not None else wellbore.mesh
        if not wellbore.is_located or cell_mesh is None or not wellbore.cells:
            continue

        cells = wellbore.cells
        centers = np.array([cell_mesh.center(cell) for cell in cells], dtype=np.float64)
        if wellbore.is_stale:
            marker = dict(size=marker_size, color=color, symbol="square")
            customdata = np.column_stack([cells, wellbore.binding.lengths])
            hovertemplate = (
                "Cell %{customdata[0]}<br>Length: %{customdata[1]:.4g}<extra></extra>"
            )
        else:
            productivities = np.asarray(wellbore.productivities, dtype=np.float64)
            marker = dict(
                size=marker_size,
                color=productivities,
                colorscale="Viridis",
                symbol="square",
                colorbar=dict(title="Productivity"),
            )
            customdata = np.column_stack(
                [cells, wellbore.binding.lengths, productivities]
            )
            hovertemplate = (
                "Cell %{customdata[0]}<br>Length: %{customdata[1]:.4g}<br>"
                "Productivity: %{customdata[2]:.4g}<extra></extra>"
            )

        figure.add_trace(
            go.Scatter3d(
                x=centers[:, 0],
                y=centers[:, 1],
                z=centers[:, 2],
                mode="markers",
                marker=marker,
                name=f"{name} (bound cells)",
                legendgroup=name,
                customdata=customdata,
                hovertemplate=hovertemplate,
            )
        )
        logger.debug(f"Plotted {len(cells)} bound cells of well {name}")

    figure.update_layout(
        title=title,
        scene=dict(xaxis_title="x", yaxis_title="y", zaxis_title="z", aspectmode="data"),
    )
    return figure
