import numpy as np
import pytest

from wellbores import (
    BoxMesh,
    CellBinder,
    ProductivityCalculator,
    UniformPermeability,
    WellTrajectory,
    compute_directional_well_indices,
    compute_peaceman_radius,
    compute_productivity_index,
    with_precision,
)
from wellbores.errors import ComputationError, ValidationError


def expected_vertical_index(k: float, dx: float, length: float, radius: float) -> float:
    equivalent_radius = 0.14 * np.sqrt(2.0) * dx
    return 2.0 * np.pi * k * length / np.log(equivalent_radius / radius)


def test_isotropic_square_cell_radius():
    assert compute_peaceman_radius(100.0, 100.0, 10.0, 10.0) == pytest.approx(
        0.14 * np.sqrt(2.0) * 10.0
    )


def test_isotropic_rectangular_cell_radius():
    assert compute_peaceman_radius(5.0, 5.0, 3.0, 4.0) == pytest.approx(0.14 * 5.0)


def test_radius_is_symmetric_under_axis_swap():
    assert compute_peaceman_radius(100.0, 25.0, 10.0, 20.0) == pytest.approx(
        compute_peaceman_radius(25.0, 100.0, 20.0, 10.0)
    )


def test_vertical_well_productivity():
    productivity = compute_productivity_index(
        extents=(10.0, 10.0, 5.0),
        permeability=(100.0, 100.0, 100.0),
        length=5.0,
        direction=(0.0, 0.0, 1.0),
        wellbore_radius=0.1,
    )

    assert np.isfinite(productivity) and productivity > 0.0
    assert productivity == pytest.approx(expected_vertical_index(100.0, 10.0, 5.0, 0.1))


def test_productivity_is_invariant_under_horizontal_swap():
    first = compute_productivity_index(
        extents=(10.0, 20.0, 5.0),
        permeability=(100.0, 50.0, 10.0),
        length=5.0,
        direction=(0.0, 0.0, 1.0),
        wellbore_radius=0.1,
    )
    second = compute_productivity_index(
        extents=(20.0, 10.0, 5.0),
        permeability=(50.0, 100.0, 10.0),
        length=5.0,
        direction=(0.0, 0.0, 1.0),
        wellbore_radius=0.1,
    )

    assert first == pytest.approx(second)


def test_axes_without_projection_contribute_nothing():
    indices = compute_directional_well_indices(
        # Tiny z extent would give an invalid radius along x and y
        extents=(10.0, 10.0, 1e-3),
        permeability=(100.0, 100.0, 100.0),
        length=5.0,
        direction=(0.0, 0.0, 1.0),
        wellbore_radius=0.1,
    )

    assert indices[0] == 0.0 and indices[1] == 0.0
    assert indices[2] > 0.0


def test_oblique_well_combines_axis_indices():
    direction = np.array([1.0, 0.0, 1.0]) / np.sqrt(2.0)
    indices = compute_directional_well_indices(
        extents=(10.0, 10.0, 10.0),
        permeability=(100.0, 100.0, 100.0),
        length=4.0,
        direction=direction,
        wellbore_radius=0.1,
    )
    productivity = compute_productivity_index(
        extents=(10.0, 10.0, 10.0),
        permeability=(100.0, 100.0, 100.0),
        length=4.0,
        direction=direction,
        wellbore_radius=0.1,
    )

    assert indices[0] == pytest.approx(indices[2])
    assert indices[1] == 0.0
    assert productivity == pytest.approx(np.linalg.norm(indices))


def test_skin_reduces_productivity():
    kwargs = dict(
        extents=(10.0, 10.0, 5.0),
        permeability=(100.0, 100.0, 100.0),
        length=5.0,
        direction=(0.0, 0.0, 1.0),
        wellbore_radius=0.1,
    )
    assert compute_productivity_index(skin_factor=2.0, **kwargs) < compute_productivity_index(
        **kwargs
    )


@pytest.mark.parametrize(
    "extents, skin_factor",
    [((0.1, 0.1, 5.0), 0.0), ((10.0, 10.0, 5.0), -5.0)],
    ids=["cell-smaller-than-wellbore", "large-negative-skin"],
)
def test_invalid_log_term_raises(extents, skin_factor):
    with pytest.raises(ComputationError):
        compute_productivity_index(
            extents=extents,
            permeability=(100.0, 100.0, 100.0),
            length=5.0,
            direction=(0.0, 0.0, 1.0),
            wellbore_radius=0.1,
            skin_factor=skin_factor,
        )


@pytest.fixture
def block_mesh() -> BoxMesh:
    return BoxMesh.uniform((1, 1, 1), bounds=((0.0, 10.0), (0.0, 10.0), (0.0, 5.0)))


def test_calculator_on_point_well(block_mesh, permeability):
    trajectory = WellTrajectory(points=[(5.0, 5.0, 2.5)], radius=0.1)
    binding = CellBinder().bind(block_mesh, trajectory)

    productivities = ProductivityCalculator(block_mesh, permeability).compute(
        binding, wellbore_radius=trajectory.radius
    )

    assert productivities.shape == (1,)
    assert productivities[0] == pytest.approx(
        expected_vertical_index(100.0, 10.0, 5.0, 0.1)
    )


def test_calculator_uses_current_precision(block_mesh, permeability):
    trajectory = WellTrajectory(points=[(5.0, 5.0, 2.5)], radius=0.1)
    binding = CellBinder().bind(block_mesh, trajectory)

    with with_precision(np.float32):
        productivities = ProductivityCalculator(block_mesh, permeability).compute(
            binding, wellbore_radius=0.1
        )

    assert productivities.dtype == np.float32


def test_calculator_rejects_non_positive_permeability(block_mesh):
    trajectory = WellTrajectory(points=[(5.0, 5.0, 2.5)], radius=0.1)
    binding = CellBinder().bind(block_mesh, trajectory)
    calculator = ProductivityCalculator(block_mesh, lambda point: (100.0, 0.0, 100.0))

    with pytest.raises(ValidationError):
        calculator.compute(binding, wellbore_radius=0.1)


def test_calculator_error_names_the_cell(permeability):
    mesh = BoxMesh.uniform((2, 1, 1), bounds=((0.0, 0.2), (0.0, 0.1), (0.0, 1.0)))
    trajectory = WellTrajectory(points=[(0.15, 0.05, 0.5)], radius=0.1)
    binding = CellBinder().bind(mesh, trajectory)

    with pytest.raises(ComputationError, match="Cell 1"):
        ProductivityCalculator(mesh, permeability).compute(binding, wellbore_radius=0.1)


def test_uniform_permeability_anisotropy():
    field = UniformPermeability.from_anisotropy(100.0, anisotropy=(1.0, 0.5, 0.1))

    assert field(np.zeros(3)) == pytest.approx((100.0, 50.0, 10.0))
    with pytest.raises(ValidationError):
        UniformPermeability(-1.0)
