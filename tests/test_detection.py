import numpy as np
import pytest

from qina_env.detection import models
from qina_env.detection.models import (
    BASELINE,
    QINA,
    Detector,
    DetectorParams,
    ModelStats,
    detection_probability,
    make_detector,
    miss_probability,
)
from qina_env.sim.warehouse import TargetEntity


class ScriptedRng:
    """Stand-in generator returning a fixed sequence of uniform draws."""

    def __init__(self, values):
        self._values = list(values)

    def random(self):
        return self._values.pop(0)


def box(i=0, rotation=0.0, scale=1.0):
    return TargetEntity(entity_id=i, position=(float(i), 0.0, 1.0), rotation=rotation, scale=scale)


FIELD = np.zeros((10, 10, 10))


def test_preset_constants():
    assert (BASELINE.threshold, BASELINE.k_rot, BASELINE.k_scale, BASELINE.k_noise, BASELINE.p_sys) == (
        0.5, 0.5, 0.5, 0.2, 0.10,
    )
    assert (QINA.threshold, QINA.k_rot, QINA.k_scale, QINA.k_noise, QINA.p_sys) == (0.3, 0.2, 0.2, 0.1, 0.02)
    assert BASELINE.time_scale == 1.0
    assert QINA.time_scale == 0.85


def test_probability_penalties():
    # rotation 45 deg -> |sin(pi/2)| = 1
    p = detection_probability(BASELINE, rotation=45.0, scale=1.5, noise_u=0.5)
    assert p == pytest.approx(1.0 - 0.5 - 0.25 - 0.1)
    assert detection_probability(QINA, 0.0, 1.0, 0.0) == 1.0


def test_qina_miss_probability_never_exceeds_baseline():
    for rotation in np.arange(0.0, 360.0, 5.0):
        for scale in np.linspace(0.5, 1.5, 11):
            for noise_u in np.linspace(0.0, 1.0, 11):
                q = miss_probability(QINA, rotation, scale, noise_u)
                b = miss_probability(BASELINE, rotation, scale, noise_u)
                assert q <= b


def test_systematic_miss_draw_is_independent():
    # noise draw 0.0, systematic draw 0.05: inside Baseline's 10%, outside QINA's 2%
    base = Detector(BASELINE, rng=ScriptedRng([0.0, 0.05]))
    qina = Detector(QINA, rng=ScriptedRng([0.0, 0.05]))
    assert base.evaluate(FIELD, [box()]).detections == []
    res = qina.evaluate(FIELD, [box()])
    assert len(res.detections) == 1
    assert res.detections[0].confidence == 1.0
    assert res.detections[0].position == (0.0, 0.0, 1.0)


def test_threshold_rejects_hard_box():
    hard = box(rotation=45.0, scale=1.5)
    base = Detector(BASELINE, rng=ScriptedRng([0.0, 0.99]))
    qina = Detector(QINA, rng=ScriptedRng([0.0, 0.99]))
    assert base.evaluate(FIELD, [hard]).miss_rate == 100.0
    res = qina.evaluate(FIELD, [hard])
    assert res.miss_rate == 0.0
    assert res.detections[0].confidence == pytest.approx(0.7)


def test_cumulative_miss_rate_is_pooled():
    det = make_detector("baseline", rng=np.random.default_rng(3))
    evaluated = missed = 0
    for n in (1, 5, 2, 8, 3):
        entities = [box(i, rotation=float(30 * i), scale=0.5 + 0.1 * i) for i in range(n)]
        res = det.evaluate(FIELD, entities)
        evaluated += n
        missed += n - len(res.detections)
        assert res.miss_rate == pytest.approx(missed / evaluated * 100.0)
    assert det.stats.total_evaluated == evaluated
    assert det.stats.total_missed == missed


def test_empty_entities_hold_miss_rate():
    det = make_detector("qina", rng=np.random.default_rng(1))
    det.evaluate(FIELD, [box(0), box(1, rotation=45.0, scale=1.5), box(2)])
    before = det.miss_rate
    res = det.evaluate(FIELD, [])
    assert res.detections == []
    assert res.miss_rate == before
    assert det.stats.total_evaluated == 3


def test_model_stats_zero_when_empty():
    assert ModelStats().miss_rate == 0.0


def test_reset_clears_stats_and_detections():
    det = make_detector("qina", rng=np.random.default_rng(0))
    det.evaluate(FIELD, [box(0), box(1)])
    det.reset()
    assert det.stats.total_evaluated == 0
    assert det.stats.total_missed == 0
    assert det.detections == []
    assert det.process_time == 0.0
    assert det.miss_rate == 0.0


def test_qina_reports_scaled_time(monkeypatch):
    for params, expected in ((BASELINE, 2.0), (QINA, 1.7)):
        clock = iter([10.0, 12.0])
        monkeypatch.setattr(models.time, "perf_counter", lambda: next(clock))
        res = Detector(params, rng=np.random.default_rng(0)).evaluate(FIELD, [box()])
        assert res.process_time == pytest.approx(expected)


def test_as_dict_keys():
    det = Detector(QINA, rng=ScriptedRng([0.0, 0.5]))
    d = det.evaluate(FIELD, [box(4)]).as_dict()
    assert set(d) == {"detections", "processTime", "missRate"}
    assert d["detections"][0]["id"] == 4


def test_rejects_non_3d_field():
    det = make_detector("baseline")
    with pytest.raises(ValueError):
        det.evaluate(np.zeros((10, 10)), [box()])


def test_unknown_detector_name():
    with pytest.raises(ValueError):
        make_detector("yolo")


def test_params_validation():
    with pytest.raises(AssertionError):
        DetectorParams("bad", threshold=0.5, k_rot=0.1, k_scale=0.1, k_noise=0.1, p_sys=1.5)
