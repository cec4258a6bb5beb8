import pytest

from api_schema import DrugRecord
from drug_matcher import build_index
from tests.sample_data import AUGMENTIN, BRUFEN, PANADOL


@pytest.fixture
def records():
    return [DrugRecord.model_validate(d) for d in (PANADOL, BRUFEN, AUGMENTIN)]


@pytest.fixture
def index(records):
    return build_index(records)
