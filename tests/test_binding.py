import numpy as np
import pytest

from wellbores import BoundCell, BoxMesh, CellBinder, CellBinding, Config, WellTrajectory
from wellbores.errors import ValidationError


class ReversedMesh:
    """Mesh view yielding cells in reverse order."""

    def __init__(self, mesh: BoxMesh) -> None:
        self.mesh = mesh

    def cells(self):
        return list(reversed(list(self.mesh.cells())))

    def __getattr__(self, name):
        return getattr(self.mesh, name)


def vertical_well(x: float, y: float, top: float, bottom: float) -> WellTrajectory:
    return WellTrajectory(points=[(x, y, top), (x, y, bottom)], radius=0.05)


def test_point_well_inside_a_cell():
    mesh = BoxMesh.uniform((2, 2, 2), bounds=((0.0, 2.0), (0.0, 2.0), (0.0, 2.0)))
    trajectory = WellTrajectory(points=[(0.3, 0.4, 0.6)], radius=0.05)

    binding = CellBinder().bind(mesh, trajectory)

    assert binding.cells == (0,)
    assert binding[0].length == pytest.approx(1.0)
    assert np.array_equal(binding[0].direction, [0.0, 0.0, 1.0])


def test_point_well_on_shared_face_binds_highest_index(two_cell_mesh):
    trajectory = WellTrajectory(points=[(1.0, 0.5, 0.5)], radius=0.05)

    binding = CellBinder().bind(two_cell_mesh, trajectory)

    assert binding.cells == (1,)


def test_segment_on_shared_face_binds_higher_index(two_cell_mesh):
    trajectory = vertical_well(1.0, 0.5, 0.0, 1.0)

    binding = CellBinder().bind(two_cell_mesh, trajectory)

    assert binding.cells == (1,)
    assert binding[1].length == pytest.approx(1.0, abs=5e-3)


def test_vertical_well_crossing_a_column(column_mesh):
    trajectory = vertical_well(0.5, 0.5, 0.0, 4.0)

    binding = CellBinder().bind(column_mesh, trajectory)

    assert binding.cells == (0, 1, 2, 3)
    assert binding.total_length == pytest.approx(trajectory.length, abs=0.05)
    assert np.allclose(binding.lengths, 1.0, atol=0.01)
    assert np.allclose(binding.directions, [[0.0, 0.0, 1.0]] * 4)


def test_partial_well_only_binds_crossed_cells(column_mesh):
    trajectory = vertical_well(0.5, 0.5, 0.5, 2.5)

    binding = CellBinder().bind(column_mesh, trajectory)

    assert binding.cells == (0, 1, 2)
    assert binding.total_length == pytest.approx(2.0, abs=0.05)
    assert binding[0].length == pytest.approx(0.5, abs=0.01)
    assert binding[2].length == pytest.approx(0.5, abs=0.01)


def test_cell_crossed_by_two_segments_merges_length_and_direction():
    mesh = BoxMesh.uniform((1, 1, 1))
    trajectory = WellTrajectory(
        points=[(0.2, 0.5, 0.5), (0.5, 0.5, 0.5), (0.5, 0.5, 0.9)], radius=0.01
    )

    binding = CellBinder().bind(mesh, trajectory)

    assert binding.cells == (0,)
    assert binding[0].length == pytest.approx(0.7, abs=2e-3)
    assert np.allclose(binding[0].direction, [0.5, 0.0, 0.5])


def test_well_crossing_into_coarser_cell():
    mesh = BoxMesh.uniform((2, 1, 1), bounds=((0.0, 2.0), (0.0, 1.0), (0.0, 1.0)))
    mesh = mesh.refine([0])
    trajectory = WellTrajectory(
        points=[(0.1, 0.25, 0.25), (1.9, 0.25, 0.25)], radius=0.01
    )

    binding = CellBinder().bind(mesh, trajectory)

    assert binding.cells == (0, 1, 8)
    assert binding[0].length == pytest.approx(0.4, abs=0.01)
    assert binding[1].length == pytest.approx(0.5, abs=0.01)
    assert binding[8].length == pytest.approx(0.9, abs=0.01)


def test_segment_off_center_on_shared_face_binds_higher_index(two_cell_mesh):
    trajectory = vertical_well(1.0, 0.3, 0.0, 1.0)

    binding = CellBinder().bind(two_cell_mesh, trajectory)

    assert binding.cells == (1,)
    assert binding.total_length == pytest.approx(trajectory.length, abs=5e-3)


def test_segment_on_shared_edge_binds_one_cell(layer_mesh):
    trajectory = vertical_well(1.0, 1.0, 0.0, 1.0)

    binding = CellBinder().bind(layer_mesh, trajectory)

    assert binding.cells == (5,)
    assert binding.total_length == pytest.approx(trajectory.length, abs=5e-3)


def test_well_on_hanging_face_is_bound_to_finer_cells(two_cell_mesh):
    mesh = two_cell_mesh.refine([0])
    trajectory = vertical_well(1.0, 0.5, 0.0, 1.0)

    binding = CellBinder().bind(mesh, trajectory)

    # Children across the face, one per refined layer
    assert binding.cells == (3, 7)
    assert binding.total_length == pytest.approx(trajectory.length, abs=0.01)


def test_well_inside_coarse_cell_next_to_refined_face():
    mesh = BoxMesh.uniform((1, 1, 2), bounds=((0.0, 1.0), (0.0, 1.0), (0.0, 2.0)))
    mesh = mesh.refine([1])
    trajectory = WellTrajectory(
        points=[(0.0, 0.5, 0.98), (1.0, 0.5, 0.98)], radius=0.01
    )

    binding = CellBinder().bind(mesh, trajectory)

    assert binding.cells == (0,)
    assert binding[0].length == pytest.approx(1.0, abs=0.01)


def test_duplicate_bound_cells_are_rejected():
    entry = BoundCell(cell=0, length=1.0, direction=np.array([0.0, 0.0, 1.0]))

    with pytest.raises(ValidationError):
        CellBinding((entry, entry))


@pytest.mark.parametrize(
    "points",
    [
        [(10.0, 10.0, 10.0)],
        [(10.0, 10.0, 0.0), (10.0, 10.0, 1.0)],
    ],
    ids=["point", "segment"],
)
def test_well_outside_mesh_binds_no_cells(layer_mesh, points):
    trajectory = WellTrajectory(points=points, radius=0.05)

    binding = CellBinder().bind(layer_mesh, trajectory)

    assert len(binding) == 0
    assert binding.total_length == 0.0
    assert binding.directions.shape == (0, 3)


def test_binding_does_not_depend_on_visitation_order(layer_mesh, deviated_trajectory):
    binder = CellBinder()
    forward = binder.bind(layer_mesh, deviated_trajectory)
    backward = binder.bind(ReversedMesh(layer_mesh), deviated_trajectory)

    assert len(forward) > 0
    assert forward.cells == backward.cells
    assert np.allclose(forward.lengths, backward.lengths)
    assert np.allclose(forward.directions, backward.directions)


def test_binding_does_not_depend_on_partitioning(layer_mesh, deviated_trajectory):
    binder = CellBinder()
    full = binder.bind(layer_mesh, deviated_trajectory)

    partitions = [range(0, 8), range(8, 16)]
    entries = []
    for cells in partitions:
        entries.extend(binder.bind(layer_mesh.restrict(cells), deviated_trajectory))
    merged = CellBinding(entries)

    assert merged.cells == full.cells
    assert np.allclose(merged.lengths, full.lengths)


def test_bound_cells_are_sorted_and_unique(layer_mesh, deviated_trajectory):
    binding = CellBinder().bind(layer_mesh, deviated_trajectory)

    assert list(binding.cells) == sorted(set(binding.cells))
    assert all(length >= 0.0 for length in binding.lengths)


def test_finer_marching_step_is_more_accurate(column_mesh):
    trajectory = vertical_well(0.5, 0.5, 0.0, 4.0)
    coarse = CellBinder(Config(march_step_fraction=0.05)).bind(column_mesh, trajectory)
    fine = CellBinder(Config(march_step_fraction=1e-4)).bind(column_mesh, trajectory)

    assert coarse.cells == fine.cells
    assert abs(fine.total_length - 4.0) <= abs(coarse.total_length - 4.0) + 1e-12


def test_binding_lookup(column_mesh):
    binding = CellBinder().bind(column_mesh, vertical_well(0.5, 0.5, 0.0, 2.0))

    assert 0 in binding and 1 in binding
    assert 3 not in binding
    assert binding.get(3) is None
    assert binding.position(1) == 1
    with pytest.raises(KeyError):
        binding[3]
