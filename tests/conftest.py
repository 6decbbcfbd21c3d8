from __future__ import annotations

import pytest

from tests.fakes import build_pipeline, seed


@pytest.fixture()
def pipeline():
    return seed(build_pipeline())


@pytest.fixture()
def make_pipeline():
    def _make(**kwargs):
        return seed(build_pipeline(**kwargs))

    return _make
