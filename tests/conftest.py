"""Shared fixtures for stormrank tests."""

import pytest

from tests.factories import raw


@pytest.fixture
def scenario_records():
    """Tornado / flood / heat records with known decoded values."""
    return [
        raw("TORNADO", fat=5, inj=0, prop=10, prop_exp="K", crop=0, crop_exp=""),
        raw("FLOOD", fat=0, inj=2, prop=3, prop_exp="M", crop=1, crop_exp="K"),
        raw("EXCESSIVE HEAT", fat=1, inj=0, prop=0, prop_exp="", crop=0, crop_exp=""),
    ]


@pytest.fixture
def mixed_records():
    """A larger sample with synonyms, harmless rows and odd exponent codes."""
    return [
        raw("TORNADO", fat=5, inj=30, prop=2.5, prop_exp="M"),
        raw("TORNADO F2", fat=1, inj=4, prop=100, prop_exp="K"),
        raw("TSTM WIND", inj=3, prop=50, prop_exp="k", crop=5, crop_exp="K"),
        raw("THUNDERSTORM WINDS", prop=20, prop_exp="K"),
        raw("FLASH FLOOD", fat=2, prop=1.2, prop_exp="B", crop=10, crop_exp="M"),
        raw("RECORD HEAT", fat=7, inj=12),
        raw("EXCESSIVE HEAT", fat=3),
        raw("HAIL", prop=10, prop_exp="?", crop=40, crop_exp="K"),
        raw("DROUGHT", crop=2, crop_exp="B"),
        raw("HIGH WIND", inj=1, prop=5, prop_exp="5"),
        raw("DENSE FOG"),
        raw("   marsh   erosion  ", prop=3, prop_exp="m"),
    ]
