import numpy as np
import pytest

from wellbores import (
    BHPControl,
    BoxMesh,
    Config,
    TotalRateControl,
    UniformPermeability,
    Wellbore,
    Wells,
    WellTrajectory,
)
from wellbores.errors import ComputationError, ValidationError


@pytest.fixture
def mesh() -> BoxMesh:
    return BoxMesh.uniform((2, 2, 2), bounds=((0.0, 20.0), (0.0, 20.0), (0.0, 10.0)))


def make_wellbore(name: str, x: float, y: float, control=None) -> Wellbore:
    trajectory = WellTrajectory(
        points=[(x, y, 0.0), (x, y, 10.0)], radius=0.1, name=name
    )
    if control is None:
        return Wellbore(trajectory)
    return Wellbore(trajectory, control=control)


def test_wellbore_lifecycle(mesh, permeability):
    wellbore = make_wellbore("P1", 5.0, 5.0, control=TotalRateControl(-100.0))

    assert not wellbore.is_located
    with pytest.raises(ComputationError):
        wellbore.cells

    wellbore.locate(mesh)
    assert wellbore.is_located
    assert wellbore.is_stale
    assert wellbore.cells == (0, 4)
    with pytest.raises(ComputationError):
        wellbore.productivities

    productivities = wellbore.update_productivity(permeability)
    assert not wellbore.is_stale
    assert productivities.shape == (2,)
    assert np.all(productivities > 0.0)
    assert wellbore.local_productivity_sum() == pytest.approx(productivities.sum())

    j, q = wellbore.get_J_and_Q(0)
    assert j == 0.0
    assert q == pytest.approx(-100.0 * productivities[0] / productivities.sum())
    assert wellbore.get_J_and_Q(1) == (0.0, 0.0)
    assert wellbore.get_transmissibility(4) == pytest.approx(productivities[1])
    assert wellbore.get_transmissibility(1) == 0.0


def test_default_control_is_zero_rate(mesh, permeability):
    wellbore = make_wellbore("P1", 5.0, 5.0)
    wellbore.locate(mesh)
    wellbore.update_productivity(permeability)

    _, q = wellbore.allocate()
    assert np.all(q == 0.0)


def test_skin_change_makes_productivities_stale(mesh, permeability):
    wellbore = make_wellbore("P1", 5.0, 5.0, control=BHPControl(50.0))
    wellbore.locate(mesh)
    before = wellbore.update_productivity(permeability)

    wellbore.set_control(BHPControl(80.0))
    assert not wellbore.is_stale

    wellbore.set_control(BHPControl(80.0, skin_factor=3.0))
    assert wellbore.skin_factor == 3.0
    assert wellbore.is_stale
    with pytest.raises(ComputationError):
        wellbore.get_J_and_Q(0)

    after = wellbore.update_productivity(permeability)
    assert np.all(after < before)
    assert wellbore.get_J_and_Q(0) == (after[0], 80.0 * after[0])


def test_set_control_rejects_unknown_control(mesh):
    wellbore = make_wellbore("P1", 5.0, 5.0)
    with pytest.raises(ValidationError):
        wellbore.set_control("shut")
    with pytest.raises(ValidationError):
        Wellbore(wellbore.trajectory, control=42)


def test_relocation_discards_productivities(mesh, permeability):
    wellbore = make_wellbore("P1", 5.0, 5.0)
    wellbore.locate(mesh)
    wellbore.update_productivity(permeability)

    wellbore.locate(mesh.refine([0]))
    assert wellbore.is_stale
    assert len(wellbore.cells) > 2


def test_wells_registry():
    wells = Wells([make_wellbore("P1", 5.0, 5.0), make_wellbore("I1", 15.0, 15.0)])

    assert len(wells) == 2
    assert wells.names == ["P1", "I1"]
    assert wells["I1"] is wells[1]
    assert wells.get_by_name("X") is None
    with pytest.raises(KeyError):
        wells["X"]
    with pytest.raises(ValidationError):
        wells.add(make_wellbore("P1", 15.0, 5.0))


@pytest.mark.parametrize("max_workers", [None, 4])
def test_wells_assemble_sources(mesh, permeability, max_workers):
    wells = Wells(
        [
            make_wellbore("P1", 5.0, 5.0, control=TotalRateControl(-100.0)),
            make_wellbore("I1", 15.0, 15.0, control=BHPControl(300.0)),
        ]
    )
    wells.locate(mesh, max_workers=max_workers)
    wells.update_productivities(permeability)

    j, q = wells.assemble_sources(mesh.n_cells)

    assert j.shape == q.shape == (mesh.n_cells,)
    assert q[[0, 4]].sum() == pytest.approx(-100.0)
    assert np.all(j[[0, 4]] == 0.0)
    assert np.allclose(j[[3, 7]], wells["I1"].productivities)
    assert np.allclose(q[[3, 7]], 300.0 * j[[3, 7]])
    assert np.all(j[[1, 2, 5, 6]] == 0.0) and np.all(q[[1, 2, 5, 6]] == 0.0)
    assert wells.get_J_and_Q(3) == [wells["I1"].get_J_and_Q(3)]
    assert wells.get_J_and_Q(1) == []


def test_wells_set_controls(mesh, permeability):
    wells = Wells([make_wellbore("P1", 5.0, 5.0)])
    wells.locate(mesh)
    wells.update_productivities(permeability)

    wells.set_controls({"P1": BHPControl(10.0)})

    assert isinstance(wells["P1"].control, BHPControl)
    with pytest.raises(KeyError):
        wells.set_controls({"X": BHPControl(10.0)})


def test_distributed_rate_allocation(mesh, permeability):
    """Rate allocation over two partitions matches the unpartitioned allocation."""
    control = TotalRateControl(-60.0)
    full = Wells([make_wellbore("P1", 5.0, 5.0, control=control)])
    full.locate(mesh)
    full.update_productivities(permeability)
    _, expected = full.assemble_sources(mesh.n_cells)

    partitions = []
    for cells in ([0, 1, 2, 3], [4, 5, 6, 7]):
        wells = Wells([make_wellbore("P1", 5.0, 5.0, control=control)])
        wells.locate(mesh.restrict(cells))
        wells.update_productivities(permeability)
        partitions.append(wells)

    # Emulate an allreduce by summing the partial sums of all partitions
    partial_sums = [wells["P1"].local_productivity_sum() for wells in partitions]
    reduce_sum = lambda value: sum(partial_sums)  # noqa: E731

    q = np.zeros(mesh.n_cells)
    for wells in partitions:
        q += wells.assemble_sources(mesh.n_cells, reduce_sum=reduce_sum)[1]

    assert np.allclose(q, expected)
    assert q.sum() == pytest.approx(-60.0)


def test_anisotropic_permeability_changes_productivity(mesh):
    isotropic = make_wellbore("P1", 5.0, 5.0)
    isotropic.locate(mesh)
    anisotropic = make_wellbore("P2", 5.0, 5.0)
    anisotropic.locate(mesh)

    low = anisotropic.update_productivity(UniformPermeability(100.0, ky=10.0))
    high = isotropic.update_productivity(UniformPermeability(100.0))

    assert np.all(low < high)


def test_wellbore_config_defaults_when_none():
    wellbore = Wellbore(
        WellTrajectory(points=[(1.0, 1.0, 0.0), (1.0, 1.0, 10.0)], radius=0.1),
        config=None,
    )
    assert wellbore.config == Config()
