import numpy as np
import pytest

from wellbores import BoxMesh, UniformPermeability, WellTrajectory


@pytest.fixture
def two_cell_mesh() -> BoxMesh:
    """Two unit cubes side by side along x, sharing the face x = 1."""
    return BoxMesh.uniform((2, 1, 1), bounds=((0.0, 2.0), (0.0, 1.0), (0.0, 1.0)))


@pytest.fixture
def column_mesh() -> BoxMesh:
    """A column of four unit cubes along z."""
    return BoxMesh.uniform((1, 1, 4), bounds=((0.0, 1.0), (0.0, 1.0), (0.0, 4.0)))


@pytest.fixture
def layer_mesh() -> BoxMesh:
    """A single layer of 4 x 4 unit cubes."""
    return BoxMesh.uniform((4, 4, 1), bounds=((0.0, 4.0), (0.0, 4.0), (0.0, 1.0)))


@pytest.fixture
def deviated_trajectory() -> WellTrajectory:
    """Horizontal well crossing the layer mesh diagonally, avoiding cell corners."""
    return WellTrajectory(
        points=np.array([[0.2, 0.3, 0.5], [3.7, 2.9, 0.5]]),
        radius=0.05,
        name="deviated",
    )


@pytest.fixture
def permeability() -> UniformPermeability:
    return UniformPermeability(100.0)
