import numpy as np
import pytest

from qina_env.detection.field import SensorFieldGenerator, cell_intensity
from qina_env.sim.warehouse import TargetEntity


def test_background_noise_and_box_cells():
    gen = SensorFieldGenerator(10, noise_level=0.1, rng=np.random.default_rng(0))
    boxes = [
        TargetEntity(0, (8.0, 0.0, 8.0), rotation=0.0, scale=1.0),
        TargetEntity(1, (5.4, 0.2, 3.9), rotation=90.0, scale=0.5),
    ]
    field = gen.generate(boxes)
    assert field.shape == (10, 10, 10)
    assert field[8, 0, 8] == pytest.approx(1.0)
    assert field[5, 0, 3] == pytest.approx(0.7 + 0.3 * 0.5 * 0.7)
    mask = np.ones_like(field, dtype=bool)
    mask[8, 0, 8] = mask[5, 0, 3] = False
    assert np.all(field[mask] >= 0.0)
    assert np.all(field[mask] < 0.1)


def test_out_of_range_box_ignored():
    gen = SensorFieldGenerator(4, noise_level=0.0, rng=np.random.default_rng(0))
    field = gen.generate([TargetEntity(0, (7.0, 0.0, 1.0))])
    assert np.all(field == 0.0)


def test_intensity_grows_with_scale():
    assert cell_intensity(0.0, 1.5) > cell_intensity(0.0, 1.0) > cell_intensity(0.0, 0.5)
    assert cell_intensity(0.0, 1.0) > cell_intensity(90.0, 1.0)
