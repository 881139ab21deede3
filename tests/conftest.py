import pytest

from models import (GlobalAssumptions, SupervisionRules, HRRiskAssumptions,
                    Scenario, SupervisionModel, SensitivityToggles,
                    default_scenarios)


@pytest.fixture
def g():
    return GlobalAssumptions()


@pytest.fixture
def rules():
    return SupervisionRules()


@pytest.fixture
def hr():
    return HRRiskAssumptions()


@pytest.fixture
def toggles():
    return SensitivityToggles()


@pytest.fixture
def scenarios():
    return default_scenarios()


@pytest.fixture
def team_of_ten():
    """10 frontline, no peers, 1 lead FTE under the baseline model."""
    return Scenario(id="T10", name="Team of ten", frontline_count=10, peer_count=0,
                    lead_fte=1.0, supervision_model=SupervisionModel.BASELINE)


@pytest.fixture
def team_of_ten_tiered():
    """Same team with one peer-supervisor added under Configuration B."""
    return Scenario(id="T10B", name="Team of ten, tiered", frontline_count=10,
                    peer_count=1, lead_fte=1.0, is_internal_promotion=True,
                    supervision_model=SupervisionModel.CONFIG_B)
