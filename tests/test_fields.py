import numpy as np
import pytest

from fluid2d.fields import FieldId, FieldStore, DTYPE
from fluid2d.grid import Grid


@pytest.fixture
def store():
    return FieldStore(Grid(6))


def test_fields_start_zeroed(store):
    for fid in FieldId:
        buf = store.get(fid)
        assert buf.shape == (36,)
        assert buf.dtype == DTYPE
        assert not buf.any()


def test_view_is_indexed_y_then_x(store):
    index = store.grid.index(4, 1)
    store.set_at(FieldId.DENSITY, index, 2.5)
    assert store.view(FieldId.DENSITY)[1, 4] == 2.5
    assert np.shares_memory(store.view(FieldId.DENSITY), store.get(FieldId.DENSITY))


def test_swap_exchanges_identity_without_copy(store):
    a_before = store.get(FieldId.U)
    b_before = store.get(FieldId.U0)
    store.set_at(FieldId.U, 7, 1.0)
    store.set_at(FieldId.U0, 7, -1.0)

    store.swap(FieldId.U, FieldId.U0)

    assert np.shares_memory(store.get(FieldId.U), b_before)
    assert np.shares_memory(store.get(FieldId.U0), a_before)
    assert store.get(FieldId.U)[7] == -1.0
    assert store.get(FieldId.U0)[7] == 1.0


def test_swap_is_seen_by_every_lookup(store):
    store.set_at(FieldId.DENSITY0, 3, 9.0)
    store.swap(FieldId.DENSITY, FieldId.DENSITY0)
    assert store.view(FieldId.DENSITY).ravel()[3] == 9.0
    assert store.read_only(FieldId.DENSITY).ravel()[3] == 9.0
    store.swap(FieldId.DENSITY, FieldId.DENSITY0)
    assert store.get(FieldId.DENSITY0)[3] == 9.0


def test_add_at_and_clear(store):
    store.add_at(FieldId.V0, 10, 1.5)
    store.add_at(FieldId.V0, 10, 1.5)
    assert store.get(FieldId.V0)[10] == 3.0
    store.clear(FieldId.V0)
    assert not store.get(FieldId.V0).any()


def test_clear_all(store):
    for fid in FieldId:
        store.set_at(fid, 0, 1.0)
    store.clear_all()
    for fid in FieldId:
        assert not store.get(fid).any()


def test_read_only_view_rejects_writes(store):
    out = store.read_only(FieldId.PRESSURE)
    with pytest.raises(ValueError):
        out[0, 0] = 1.0
    # The store itself stays writeable
    store.set_at(FieldId.PRESSURE, 0, 1.0)
    assert out[0, 0] == 1.0


def test_release_drops_buffers(store):
    store.release()
    assert store.released
    with pytest.raises(RuntimeError):
        store.get(FieldId.U)
