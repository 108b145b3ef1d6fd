import pytest

from env.field import NodeField


@pytest.fixture
def random_field():
    return NodeField.initialize(60, seed=7)


@pytest.fixture
def line_field():
    """
    0 - 1 - 2 - 3 沿 x 軸每 80m 一個節點（range 100 時只有相鄰節點互連），
    離 sink 夠遠（y = -200）。
    """
    return NodeField.from_positions([
        (0.0, -200.0, 0.0),
        (80.0, -200.0, 0.0),
        (160.0, -200.0, 0.0),
        (240.0, -200.0, 0.0),
    ])


def field_with_depths(depths, energies=None):
    positions = [(10.0 * i, -d, 0.0) for i, d in enumerate(depths)]
    return NodeField.from_positions(positions, energies=energies)
