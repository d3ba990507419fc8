import pytest

from data_mocker import OpenApiDataMocker

SEED = 1234


@pytest.fixture
def openapi_mocker() -> OpenApiDataMocker:
    """A seeded mocker so failures reproduce."""
    return OpenApiDataMocker(seed=SEED)
