import pytest
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def menu_bed():
    from menu.domain import menu

    bed = DomainFixture(menu)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(menu_bed):
    with menu_bed.domain_context():
        yield
