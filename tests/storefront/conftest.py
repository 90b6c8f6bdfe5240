import json

import pytest
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def storefront_bed():
    from storefront.domain import storefront

    bed = DomainFixture(storefront)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(storefront_bed):
    with storefront_bed.domain_context():
        yield


@pytest.fixture()
def make_product():
    """Register a purchasable product and return its id."""
    from protean.utils.globals import current_domain
    from storefront.stock.management import RegisterProduct

    def _make(name="Classic Tee", price=50.0, stock=10, sizes=("P", "M", "G"), discount_price=None, image=None):
        return current_domain.process(
            RegisterProduct(
                name=name,
                price=price,
                discount_price=discount_price,
                stock=stock,
                sizes=json.dumps(list(sizes)),
                image=image or f"https://cdn.example.com/{name.lower().replace(' ', '-')}.jpg",
            ),
            asynchronous=False,
        )

    return _make


@pytest.fixture()
def shipping_address():
    return {
        "recipient": "Ana Souza",
        "street": "Rua das Flores, 100",
        "neighborhood": "Centro",
        "city": "Sao Paulo",
        "state": "SP",
        "postal_code": "01000-000",
        "country": "BR",
    }
