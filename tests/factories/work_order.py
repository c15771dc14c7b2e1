"""
Work order payload factory.

Generates realistic create payloads for the work order API.
"""

import factory
from faker import Faker
from datetime import date, timedelta

fake = Faker()

OPERATING_COMPANIES = ["Wormos", "iShip", "Harbor Marine"]
VESSEL_TYPES = ["Bulk Carrier", "Container Ship", "Tanker", "Ro-Ro", "Tug"]
PORT_CITIES = ["Rotterdam", "Singapore", "Hamburg", "Shanghai", "Busan"]


class WorkOrderPayloadFactory(factory.Factory):
    """
    Factory for work order create payloads.

    Usage:
        payload = WorkOrderPayloadFactory()
        payload = WorkOrderPayloadFactory(operating_company="iShip")
    """

    class Meta:
        model = dict

    operating_company = factory.LazyFunction(lambda: fake.random_element(OPERATING_COMPANIES))
    order_type = factory.LazyFunction(lambda: fake.random_element(["REPAIR", "DOCKING", "SURVEY"]))
    payment_terms = "NET30"
    customer_company = factory.LazyFunction(fake.company)
    vessel_name = factory.LazyFunction(lambda: f"MV {fake.last_name()}")
    imo = factory.LazyFunction(lambda: str(fake.random_int(min=9000000, max=9999999)))
    vessel_type = factory.LazyFunction(lambda: fake.random_element(VESSEL_TYPES))
    year_built = factory.LazyFunction(lambda: fake.random_int(min=1990, max=2022))
    location_type = "PORT"
    location_name = factory.LazyFunction(lambda: f"Berth {fake.random_int(min=1, max=40)}")
    city = factory.LazyFunction(lambda: fake.random_element(PORT_CITIES))
    start_date = factory.LazyFunction(lambda: (date.today() + timedelta(days=3)).isoformat())
    end_date = factory.LazyFunction(lambda: (date.today() + timedelta(days=10)).isoformat())
    responsible_engineer_name = factory.LazyFunction(fake.name)
