import pytest

from intake_forms.ruleset import FormRuleStore


@pytest.fixture(scope="session")
def rules():
    """Load the shipped rule tables once for the entire test session."""
    store = FormRuleStore()
    store.load()
    return store
