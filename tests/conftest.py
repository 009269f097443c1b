import numpy as np
import pytest

from swarm_dataset import Dataset, GroupRecord
from swarm_simulation import ParticleGroup, SimParams


class FirstPickRng:
    """Random source that always picks index 0 and the low end of ranges."""

    def integers(self, n):
        return 0

    def uniform(self, low, high, size=None):
        if size is None:
            return low
        return np.full(size, low, dtype=np.float64)


@pytest.fixture
def params():
    return SimParams()


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def first_pick_rng():
    return FirstPickRng()


def make_group(positions, params, gid=0, label="g", day_values=None):
    positions = np.asarray(positions, dtype=np.float64).reshape(-1, 2)
    if day_values is None:
        day_values = [len(positions)]
    return ParticleGroup(gid, label, day_values, list(day_values), positions, params)


def make_dataset(*day_values_per_group, start="1-6-2020", end="8-6-2020"):
    groups = [
        GroupRecord(key=f"group{i}", index=i, day_values=list(days),
                    display_values=[100 * v for v in days])
        for i, days in enumerate(day_values_per_group)
    ]
    return Dataset(groups=groups, start_date=start, end_date=end)
