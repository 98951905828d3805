import json

import pytest

from insole_gait.config import GaitConfig, RegionLayout, load_config


def test_defaults():
    config = GaitConfig()
    assert config.contact_threshold == 50.0
    assert config.min_contact_ms == 100.0
    assert config.complementary_alpha == 0.98
    assert config.regions == RegionLayout(medial=(0, 2), lateral=(1, 3))


def test_from_dict_partial():
    config = GaitConfig.from_dict({'contact_threshold': 80.0,
                                   'regions': {'medial': [0, 1, 4], 'lateral': [2, 3]}})
    assert config.contact_threshold == 80.0
    assert config.min_contact_ms == 100.0
    assert config.regions.medial == (0, 1, 4)


def test_from_dict_unknown_key():
    with pytest.raises(ValueError, match='threshhold'):
        GaitConfig.from_dict({'contact_threshhold': 80.0})


def test_dict_form_survives_json():
    config = GaitConfig(madgwick_beta=0.05, clamp_backward_steps=False)
    assert GaitConfig.from_dict(json.loads(json.dumps(config.to_dict()))) == config


def test_load_config(tmp_path):
    path = tmp_path / 'gait.json'
    path.write_text(json.dumps({'min_contact_ms': 150.0}), encoding='utf-8')
    assert load_config(path).min_contact_ms == 150.0


@pytest.mark.parametrize('medial, lateral', [((0, 2), (2, 3)), ((0, 5), (1,)), ((-1,), (1,))])
def test_invalid_region_layout(medial, lateral):
    with pytest.raises(ValueError):
        RegionLayout(medial=medial, lateral=lateral)
