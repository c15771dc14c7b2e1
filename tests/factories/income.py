"""
Income ledger payload factories: quotes, invoices and payment receipts.
"""

import factory
from faker import Faker
from datetime import date, timedelta

fake = Faker()


class QuotePayloadFactory(factory.Factory):
    class Meta:
        model = dict

    amount = factory.LazyFunction(lambda: str(fake.random_int(min=1000, max=90000)))
    currency = "USD"
    validity_date = factory.LazyFunction(lambda: (date.today() + timedelta(days=30)).isoformat())
    is_final = False


class InvoicePayloadFactory(factory.Factory):
    """
    Factory for invoice create payloads.

    Usage:
        payload = InvoicePayloadFactory(amount="1300", status="SENT")
    """

    class Meta:
        model = dict

    invoice_no = factory.Sequence(lambda n: f"INV-{n + 1:05d}")
    amount = factory.LazyFunction(lambda: str(fake.random_int(min=1000, max=90000)))
    currency = "USD"
    issue_date = factory.LazyFunction(lambda: date.today().isoformat())
    due_date = factory.LazyFunction(lambda: (date.today() + timedelta(days=30)).isoformat())
    status = "SENT"


class PaymentPayloadFactory(factory.Factory):
    class Meta:
        model = dict

    receipt_no = factory.Sequence(lambda n: f"RCPT-{n + 1:05d}")
    amount = factory.LazyFunction(lambda: str(fake.random_int(min=100, max=5000)))
    currency = "USD"
    date = factory.LazyFunction(lambda: date.today().isoformat())
    method = factory.LazyFunction(lambda: fake.random_element(["wire", "check", "card"]))
    invoice_id = None
